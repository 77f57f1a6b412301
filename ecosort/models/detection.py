"""
Normalized result types shared by every classification source
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..taxonomy import OutwardCategory, WasteCategory, coarsen

# Source tags
SOURCE_DETECTOR = "AI (Object Detection)"
SOURCE_CLASSIFIER = "AI (Image Classification)"
SOURCE_FALLBACK = "Fallback (Filename Analysis)"
SOURCE_UNKNOWN = "Unknown"


def to_percent(score: float) -> int:
    """Convert a 0..1 model score to an integer percentage in [0, 100]"""
    try:
        value = float(score)
    except (TypeError, ValueError):
        return 0
    if math.isnan(value):
        return 0
    return clamp_percent(math.floor(value * 100 + 0.5))


def clamp_percent(value: float) -> int:
    return int(max(0, min(100, int(value))))


@dataclass
class Detection:
    """One identified item, whichever source produced it"""
    name: str
    category: WasteCategory
    confidence: int
    bbox: Optional[List[float]] = None  # [x, y, width, height]
    source: str = SOURCE_UNKNOWN
    tips: List[str] = field(default_factory=list)
    item_id: Optional[str] = None
    recyclable_rate: Optional[int] = None
    description: Optional[str] = None
    disposal_method: Optional[str] = None

    def __post_init__(self):
        self.category = WasteCategory(self.category)
        self.confidence = clamp_percent(self.confidence)

    @property
    def outward_category(self) -> OutwardCategory:
        return coarsen(self.category)

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "category": self.category.value,
            "outward_category": self.outward_category.value,
            "confidence": self.confidence,
            "bbox": self.bbox,
            "source": self.source,
            "item_id": self.item_id,
        }


@dataclass
class ClassificationVerdict:
    """Reconciled result for one image"""
    primary: Detection
    all_detections: List[Detection]
    source_tag: str
    points: int
    recyclable_rate: int
    tips: List[str] = field(default_factory=list)
    description: str = ""
    disposal_method: str = ""

    @property
    def category(self) -> OutwardCategory:
        return self.primary.outward_category

    @property
    def item_name(self) -> str:
        return self.primary.name

    @property
    def confidence(self) -> int:
        return self.primary.confidence

    def to_dict(self) -> Dict:
        return {
            "item": self.item_name,
            "category": self.category.value,
            "confidence": self.confidence,
            "points": self.points,
            "recyclable_rate": self.recyclable_rate,
            "source": self.source_tag,
            "description": self.description,
            "disposal_method": self.disposal_method,
            "tips": list(self.tips),
            "detections": [detection.to_dict() for detection in self.all_detections],
        }


def sort_by_confidence(detections: List[Detection]) -> List[Detection]:
    """Stable sort, highest confidence first"""
    return sorted(detections, key=lambda detection: detection.confidence, reverse=True)
