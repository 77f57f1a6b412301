"""
Waste category taxonomy
Maps raw model labels to fine-grained waste categories and coarsens them
to the four user-facing categories used for rewards and disposal guidance
"""

import re
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple


class WasteCategory(str, Enum):
    """Fine-grained material category"""
    PLASTIC = "Plastic"
    PAPER = "Paper"
    GLASS = "Glass"
    METAL = "Metal"
    ORGANIC = "Organic"
    E_WASTE = "E-Waste"
    HAZARDOUS = "Hazardous"
    OTHER = "Other"


class OutwardCategory(str, Enum):
    """User-facing disposal category"""
    RECYCLABLE = "Recyclable"
    ORGANIC = "Organic"
    HAZARDOUS = "Hazardous"
    GENERAL_WASTE = "General Waste"


# Checked in this order; the first table with a matching keyword wins
CATEGORY_KEYWORDS: List[Tuple[WasteCategory, List[str]]] = [
    (WasteCategory.ORGANIC, [
        "banana", "apple", "orange", "broccoli", "carrot", "hot dog", "pizza",
        "donut", "cake", "sandwich", "fruit", "vegetable", "cabbage", "lettuce",
        "corn", "pumpkin", "mushroom", "potato", "tomato", "eggplant", "citrus",
        "grape", "strawberry", "pineapple", "mango", "papaya", "onion", "garlic",
        "ginger", "lime", "lemon", "melon", "avocado", "chili", "bread", "salad",
        "burger", "cheeseburger", "noodle", "pasta", "rice", "egg", "omelet",
        "omelette", "cookie", "peel", "leaf", "leaves", "food", "compost",
    ]),
    (WasteCategory.PAPER, [
        "book", "toilet paper", "toilet tissue", "paper towel", "napkin",
        "tissue", "paper", "newspaper", "magazine", "cardboard", "carton",
        "envelope", "comic book", "packet",
    ]),
    (WasteCategory.GLASS, [
        "wine glass", "vase", "glass", "jar", "beer bottle", "wine bottle",
        "goblet", "beer glass",
    ]),
    (WasteCategory.METAL, [
        "fork", "knife", "spoon", "scissors", "can", "tin", "aluminum",
        "aluminium", "steel", "iron", "copper", "metal", "foil", "screw", "bolt",
    ]),
    (WasteCategory.E_WASTE, [
        "laptop", "keyboard", "cell phone", "cellular telephone", "mouse", "tv",
        "television", "refrigerator", "microwave", "remote", "remote control",
        "monitor", "ipod", "hard disc", "modem", "notebook", "desktop computer",
        "charger", "cable", "phone",
    ]),
    (WasteCategory.HAZARDOUS, [
        "battery", "batteries", "paint", "chemical", "aerosol", "syringe",
        "light bulb", "lightbulb", "bulb", "toxic", "pesticide", "lighter",
    ]),
    (WasteCategory.PLASTIC, [
        "bottle", "cup", "frisbee", "toothbrush", "hair drier", "water bottle",
        "pop bottle", "water jug", "plastic bag", "plastic", "container",
        "wrapper", "straw", "lid", "bucket", "mug", "plate", "bowl", "packaging",
    ]),
]

COARSE_CATEGORIES: Dict[WasteCategory, OutwardCategory] = {
    WasteCategory.PLASTIC: OutwardCategory.RECYCLABLE,
    WasteCategory.PAPER: OutwardCategory.RECYCLABLE,
    WasteCategory.GLASS: OutwardCategory.RECYCLABLE,
    WasteCategory.METAL: OutwardCategory.RECYCLABLE,
    WasteCategory.ORGANIC: OutwardCategory.ORGANIC,
    WasteCategory.E_WASTE: OutwardCategory.HAZARDOUS,
    WasteCategory.HAZARDOUS: OutwardCategory.HAZARDOUS,
    WasteCategory.OTHER: OutwardCategory.GENERAL_WASTE,
}

DISPOSAL_METHODS: Dict[OutwardCategory, str] = {
    OutwardCategory.RECYCLABLE: "Clean and place in recycling bin",
    OutwardCategory.ORGANIC: "Compost or organic waste bin",
    OutwardCategory.HAZARDOUS: "Take to a special collection point",
    OutwardCategory.GENERAL_WASTE: "Place in general waste bin",
}

DESCRIPTIONS: Dict[OutwardCategory, str] = {
    OutwardCategory.RECYCLABLE: "Recyclable material",
    OutwardCategory.ORGANIC: "Organic, compostable waste",
    OutwardCategory.HAZARDOUS: "Hazardous or electronic waste requiring special handling",
    OutwardCategory.GENERAL_WASTE: "Non-recyclable general waste",
}

CATEGORY_TIPS: Dict[OutwardCategory, List[str]] = {
    OutwardCategory.RECYCLABLE: [
        "Rinse to remove residue",
        "Flatten cardboard if possible",
        "Place in appropriate bin",
    ],
    OutwardCategory.ORGANIC: [
        "Remove stickers or plastic ties",
        "Compost if available",
        "Keep liquids minimal",
    ],
    OutwardCategory.HAZARDOUS: [
        "Never put in regular trash",
        "Take to an electronics store or collection point",
        "Tape battery terminals before drop-off",
    ],
    OutwardCategory.GENERAL_WASTE: [
        "If unsure, dispose in general waste",
        "Avoid contaminating recyclables",
        "Check local guidelines",
    ],
}


def _keyword_pattern(keyword: str) -> "re.Pattern":
    return re.compile(r"\b" + re.escape(keyword) + r"(?:s|es)?\b")


_COMPILED_KEYWORDS = [
    (category, [_keyword_pattern(keyword) for keyword in keywords])
    for category, keywords in CATEGORY_KEYWORDS
]


def normalize_label(label) -> str:
    """Lower-case a raw label and collapse separators into single spaces"""
    if not isinstance(label, str):
        return ""
    return " ".join(re.split(r"[\s_\-]+", label.strip().lower())).strip()


def map_raw_label_to_category(label,
                              corrections: Optional[Mapping[str, WasteCategory]] = None
                              ) -> WasteCategory:
    """
    Map a raw detector/classifier label to a waste category

    Args:
        label: Raw model label, e.g. "bottle" or "water_bottle"
        corrections: Optional user overrides keyed by normalized label

    Returns:
        Matching WasteCategory, WasteCategory.OTHER when nothing matches
    """
    name = normalize_label(label)
    if not name:
        return WasteCategory.OTHER

    if corrections and name in corrections:
        return WasteCategory(corrections[name])

    for category, patterns in _COMPILED_KEYWORDS:
        if any(pattern.search(name) for pattern in patterns):
            return category

    return WasteCategory.OTHER


def coarsen(category: WasteCategory) -> OutwardCategory:
    """Reduce a fine-grained category to its user-facing category"""
    try:
        return COARSE_CATEGORIES[WasteCategory(category)]
    except (KeyError, ValueError):
        return OutwardCategory.GENERAL_WASTE


def tips_for_category(outward: OutwardCategory) -> List[str]:
    return list(CATEGORY_TIPS[OutwardCategory(outward)])
