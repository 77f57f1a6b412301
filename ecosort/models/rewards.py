"""
Reward points and recyclability estimates
Points scale with classification confidence; recyclability comes from the
curated item when known, otherwise from the category default
"""

import math
from dataclasses import dataclass
from typing import Optional

from ..taxonomy import OutwardCategory
from .detection import clamp_percent

BASE_POINTS = {
    OutwardCategory.HAZARDOUS: 25,
    OutwardCategory.ORGANIC: 15,
    OutwardCategory.RECYCLABLE: 10,
    OutwardCategory.GENERAL_WASTE: 2,
}

DEFAULT_RECYCLABLE_RATES = {
    OutwardCategory.RECYCLABLE: 80,
    OutwardCategory.ORGANIC: 100,
    OutwardCategory.HAZARDOUS: 60,
    OutwardCategory.GENERAL_WASTE: 10,
}


@dataclass
class Reward:
    points: int
    recyclable_rate: int


def reward(category: OutwardCategory, confidence: int,
           recyclable_rate: Optional[int] = None) -> Reward:
    """
    Compute points and recyclable rate for a classified item

    Args:
        category: Outward category of the primary item
        confidence: Classification confidence 0-100
        recyclable_rate: Curated per-item rate, overrides the category default

    Returns:
        Reward with points = floor(base * confidence / 100)
    """
    try:
        category = OutwardCategory(category)
    except ValueError:
        category = OutwardCategory.GENERAL_WASTE

    confidence = clamp_percent(confidence)
    points = math.floor(BASE_POINTS[category] * confidence / 100)

    if recyclable_rate is None:
        recyclable_rate = DEFAULT_RECYCLABLE_RATES[category]

    return Reward(points=max(0, int(points)), recyclable_rate=clamp_percent(recyclable_rate))
