"""
Heuristic fallback classifier
Scores a curated waste database against the uploaded filename and basic file
properties. Needs no image decoding and no ML model, and always returns a result.
"""

import hashlib
import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Dict, List, Optional, Tuple

from ..taxonomy import WasteCategory, coarsen
from .detection import SOURCE_FALLBACK, Detection

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".heic", ".tif", ".tiff"}

EXACT_MATCH_SCORE = 10
SUBSTRING_MATCH_SCORE = 3
BASE_CONFIDENCE = 70
GUESS_CONFIDENCE = 40
MAX_CONFIDENCE = 98
MAX_PROPERTY_BONUS = 20

# Confidence boosts for strongly indicative words anywhere in the filename
KEYWORD_BOOSTS: List[Tuple[Tuple[str, ...], int]] = [
    (("bottle",), 20),
    (("plastic",), 15),
    (("glass",), 15),
    (("can",), 15),
    (("food", "organic"), 25),
    (("battery", "hazardous"), 30),
]


@dataclass
class WasteItemInfo:
    """Curated entry in the waste item database"""
    item_id: str
    name: str
    category: WasteCategory
    recyclable_rate: int
    points: int
    description: str
    disposal_method: str
    tips: List[str]
    keywords: List[str] = field(default_factory=list)
    base_confidence: int = BASE_CONFIDENCE


WASTE_DATABASE: Dict[str, WasteItemInfo] = {item.item_id: item for item in [
    # Plastic items
    WasteItemInfo(
        "plastic_bottle", "Plastic Bottle", WasteCategory.PLASTIC, 85, 10,
        "PET plastic bottle commonly used for beverages",
        "Clean and place in recycling bin",
        ["Remove cap and label for better recycling",
         "Rinse to remove any residue",
         "Crush to save space in recycling bin",
         "PET bottles have high recyclable value"],
        ["bottle", "plastic", "pet", "water"],
    ),
    WasteItemInfo(
        "plastic_bag", "Plastic Bag", WasteCategory.PLASTIC, 40, 5,
        "Polyethylene plastic bag",
        "Take to special plastic bag recycling points",
        ["Do not put in regular recycling bin",
         "Take to grocery store collection points",
         "Reuse multiple times before disposal",
         "Consider switching to reusable bags"],
        ["bag", "plastic", "wrapper", "polyethylene"],
    ),
    WasteItemInfo(
        "plastic_container", "Plastic Container", WasteCategory.PLASTIC, 75, 8,
        "Plastic food storage container",
        "Clean thoroughly and recycle",
        ["Check recycling number on bottom",
         "Remove all food residue",
         "Numbers 1-2 are most recyclable",
         "Consider reusing for storage"],
        ["container", "plastic", "takeout", "tub", "packaging"],
    ),

    # Paper items
    WasteItemInfo(
        "cardboard_box", "Cardboard Box", WasteCategory.PAPER, 90, 12,
        "Corrugated cardboard packaging",
        "Flatten and place in recycling",
        ["Remove all tape and labels",
         "Break down to save space",
         "Keep dry for better recycling",
         "One of the most recyclable materials"],
        ["cardboard", "box", "carton", "packaging"],
    ),
    WasteItemInfo(
        "newspaper", "Newspaper", WasteCategory.PAPER, 95, 8,
        "Newsprint paper",
        "Bundle and recycle",
        ["Remove plastic wrapping",
         "Can be recycled multiple times",
         "Great for composting as brown material",
         "Very high recyclable rate"],
        ["newspaper", "paper", "magazine", "mail", "envelope"],
    ),
    WasteItemInfo(
        "paper_cup", "Paper Cup", WasteCategory.OTHER, 10, 2,
        "Disposable paper cup with plastic coating",
        "Dispose in general waste",
        ["Most paper cups have plastic lining",
         "Cannot be recycled in regular systems",
         "Look for compostable alternatives",
         "Use reusable cups when possible"],
        ["cup", "coffee"],
    ),

    # Glass items
    WasteItemInfo(
        "glass_bottle", "Glass Bottle", WasteCategory.GLASS, 100, 15,
        "Glass beverage bottle",
        "Clean and recycle",
        ["Can be recycled infinitely",
         "Remove caps and labels",
         "Separate by color if required",
         "Highest recyclable rate of all materials"],
        ["glass", "bottle", "wine", "beer"],
    ),
    WasteItemInfo(
        "glass_jar", "Glass Jar", WasteCategory.GLASS, 100, 12,
        "Glass food storage jar",
        "Clean and recycle",
        ["Perfect for infinite recycling",
         "Remove metal lids separately",
         "Great for reusing as storage",
         "Clean thoroughly before recycling"],
        ["jar", "glass"],
    ),

    # Metal items
    WasteItemInfo(
        "aluminum_can", "Aluminum Can", WasteCategory.METAL, 95, 18,
        "Aluminum beverage can",
        "Clean and recycle",
        ["One of the most valuable recyclables",
         "Can be recycled back to new can in 60 days",
         "Rinse to remove sticky residue",
         "High economic value for recycling"],
        ["can", "aluminum", "aluminium", "soda", "beverage"],
    ),
    WasteItemInfo(
        "tin_can", "Tin Can", WasteCategory.METAL, 88, 15,
        "Steel/tin food can",
        "Remove labels and recycle",
        ["Remove paper labels",
         "Rinse out food residue",
         "Leave lids attached or separate",
         "Steel is highly magnetic and easily sorted"],
        ["tin", "steel", "metal"],
    ),

    # Organic waste
    WasteItemInfo(
        "apple_core", "Apple Core", WasteCategory.ORGANIC, 100, 20,
        "Organic fruit waste",
        "Compost or organic waste bin",
        ["Perfect for home composting",
         "Rich in nutrients for soil",
         "Decomposes in 2-8 weeks",
         "Can be used in worm composting"],
        ["apple", "core", "fruit"],
    ),
    WasteItemInfo(
        "banana_peel", "Banana Peel", WasteCategory.ORGANIC, 100, 18,
        "Organic fruit peel",
        "Compost or organic waste collection",
        ["Excellent for composting",
         "High in potassium for plants",
         "Can be used as natural fertilizer",
         "Decomposes quickly in compost"],
        ["banana", "peel"],
    ),
    WasteItemInfo(
        "food_scraps", "Food Scraps", WasteCategory.ORGANIC, 90, 15,
        "Mixed organic food waste",
        "Compost or organic collection",
        ["Great for home composting",
         "Avoid meat and dairy in home compost",
         "Mix with dry materials for balance",
         "Creates valuable soil amendment"],
        ["food", "scraps", "leftover", "kitchen", "vegetable", "compost", "organic"],
    ),
    WasteItemInfo(
        "green_waste", "Green Waste", WasteCategory.ORGANIC, 100, 22,
        "Garden waste including leaves, grass, and plant matter",
        "Compost or green waste collection",
        ["Perfect for composting",
         "High in nitrogen when fresh",
         "Mix with brown materials for best compost",
         "Can be used as mulch when dried"],
        ["green", "plant", "grass", "garden", "yard", "tree", "lawn", "branch", "twig"],
    ),
    WasteItemInfo(
        "leaves", "Leaves", WasteCategory.ORGANIC, 100, 20,
        "Fallen leaves from trees and plants",
        "Compost or green waste bin",
        ["Excellent brown compost material",
         "Shred for faster decomposition",
         "Great natural mulch for gardens",
         "Carbon-rich material for compost balance"],
        ["leaf", "leaves"],
    ),

    # Hazardous items
    WasteItemInfo(
        "battery", "Battery", WasteCategory.HAZARDOUS, 80, 25,
        "Electronic battery containing chemicals",
        "Take to special collection point",
        ["Never put in regular trash",
         "Contains toxic heavy metals",
         "Take to electronics stores",
         "Lithium batteries especially hazardous"],
        ["battery", "batteries", "lithium", "alkaline", "rechargeable", "hazardous"],
    ),
    WasteItemInfo(
        "light_bulb", "Light Bulb", WasteCategory.HAZARDOUS, 70, 20,
        "Electronic light bulb",
        "Special waste collection required",
        ["CFLs contain mercury",
         "LED bulbs can be recycled",
         "Wrap broken bulbs carefully",
         "Check with local waste management"],
        ["bulb", "light", "lamp", "cfl", "fluorescent"],
    ),

    # E-waste
    WasteItemInfo(
        "mobile_phone", "Mobile Phone", WasteCategory.E_WASTE, 85, 30,
        "Electronic mobile device",
        "E-waste recycling center",
        ["Contains valuable metals",
         "Remove personal data first",
         "Many manufacturers take back old phones",
         "Never throw in regular trash"],
        ["phone", "mobile", "smartphone", "electronic", "charger", "cable"],
    ),
]}

# Used when no keyword matched; deliberately free of hazardous items so an
# unrecognized filename never reads as hazardous waste
GUESS_CANDIDATES = [
    "food_scraps",
    "green_waste",
    "leaves",
    "plastic_bottle",
    "aluminum_can",
    "cardboard_box",
    "glass_bottle",
]


def get_all_waste_types() -> List[Dict]:
    """List the curated database as {id, name, category, points, recyclable_rate}"""
    return [
        {
            "id": item.item_id,
            "name": item.name,
            "category": coarsen(item.category).value,
            "points": item.points,
            "recyclable_rate": item.recyclable_rate,
        }
        for item in WASTE_DATABASE.values()
    ]


def tokenize(filename: str) -> Tuple[str, List[str]]:
    """
    Split a filename into its lower-cased stem and alphanumeric tokens

    The file extension is not part of the stem.
    """
    stem = PurePath(filename).stem.lower() if filename else ""
    tokens = [token for token in re.split(r"[^a-z0-9]+", stem) if token]
    return stem, tokens


def stable_hash(text: str) -> int:
    """Deterministic across processes, unlike the built-in hash()"""
    return int(hashlib.md5(text.encode("utf-8")).hexdigest(), 16)


class HeuristicClassifier:
    """
    Deterministic filename/metadata classifier used when the AI sources fail

    Same (filename, file size, dimensions) always yields the same item and
    confidence. Confidence never exceeds 98 to mark the result as a best guess.
    """

    def __init__(self, database: Optional[Dict[str, WasteItemInfo]] = None,
                 guess_candidates: Optional[List[str]] = None):
        self.database = database or WASTE_DATABASE
        self.guess_candidates = guess_candidates or GUESS_CANDIDATES
        self.logger = logging.getLogger(__name__)

    def score_items(self, stem: str, tokens: List[str]) -> Dict[str, int]:
        """Keyword score per database item"""
        scores = {}

        for item_id, item in self.database.items():
            score = 0
            for keyword in item.keywords:
                score += EXACT_MATCH_SCORE * tokens.count(keyword)
                if keyword in stem:
                    score += SUBSTRING_MATCH_SCORE
            scores[item_id] = score

        return scores

    def property_bonus(self, filename: str, file_size: Optional[int] = None,
                       dimensions: Optional[Tuple[int, int]] = None) -> int:
        """Small confidence bonus for plausible image files, capped at 20"""
        bonus = 0

        if filename and PurePath(filename).suffix.lower() in IMAGE_EXTENSIONS:
            bonus += 2

        if file_size:
            size_mb = file_size / (1024 * 1024)
            if 0.1 < size_mb < 10:
                bonus += 5
            if 1 < size_mb < 5:
                bonus += 5

        if dimensions:
            width, height = dimensions
            if width >= 200 and height >= 200:
                bonus += 5
            if height > 0 and 0.5 < width / height < 2:
                bonus += 3

        return min(bonus, MAX_PROPERTY_BONUS)

    def keyword_boost(self, stem: str) -> int:
        boost = 0
        for words, value in KEYWORD_BOOSTS:
            if any(word in stem for word in words):
                boost += value
        return boost

    def classify(self, filename: str, file_size: Optional[int] = None,
                 dimensions: Optional[Tuple[int, int]] = None) -> Detection:
        """
        Classify from filename and file metadata only

        Args:
            filename: Original upload filename
            file_size: Size in bytes, if known
            dimensions: (width, height) in pixels, if known

        Returns:
            Detection built from the best matching curated item
        """
        filename = filename if isinstance(filename, str) else ""
        stem, tokens = tokenize(filename)
        scores = self.score_items(stem, tokens)
        bonus = self.property_bonus(filename, file_size, dimensions)

        best_id = None
        best_score = 0
        for item_id, score in scores.items():
            if score > best_score:
                best_id, best_score = item_id, score

        if best_id is not None:
            item = self.database[best_id]
            confidence = min(item.base_confidence + self.keyword_boost(stem) + bonus, MAX_CONFIDENCE)
            matched = [keyword for keyword in item.keywords if keyword in tokens or keyword in stem]
            basis = f"Classification based on: {', '.join(matched)}"
        else:
            index = stable_hash(filename.lower()) % len(self.guess_candidates)
            item = self.database[self.guess_candidates[index]]
            confidence = min(GUESS_CONFIDENCE + bonus, MAX_CONFIDENCE)
            basis = "No descriptive keywords found - this is a best guess"

        self.logger.debug(f"Fallback picked {item.item_id} for '{filename}' (score {best_score})")

        return Detection(
            name=item.name,
            category=item.category,
            confidence=confidence,
            source=SOURCE_FALLBACK,
            tips=item.tips + [
                basis,
                f"File analyzed: {filename or 'unnamed file'}",
                "This is a fallback classification - use better lighting for more accuracy",
            ],
            item_id=item.item_id,
            recyclable_rate=item.recyclable_rate,
            description=item.description,
            disposal_method=item.disposal_method,
        )


if __name__ == "__main__":
    classifier = HeuristicClassifier()
    for name in ["plastic-bottle.jpg", "banana-peel.png", "IMG_2041.jpg"]:
        result = classifier.classify(name, file_size=850_000, dimensions=(1024, 768))
        print(f"{name}: {result.name} ({coarsen(result.category).value}) {result.confidence}%")
