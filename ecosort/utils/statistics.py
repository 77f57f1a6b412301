"""
Statistics over classification history
Totals, category breakdown, top items, weekly activity and a rough
environmental impact estimate, recomputed from the records on every call
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Sequence

from ..taxonomy import OutwardCategory
from .records import ClassificationRecord

TOP_ITEMS_LIMIT = 10
WEEKS = 4

# Per-item estimates, not measurements
RECYCLED_WASTE_KG = 0.2
RECYCLED_CO2_KG = 0.2 * 2.5
COMPOSTED_WASTE_KG = 0.15
COMPOSTED_CO2_KG = 0.15 * 1.2


@dataclass
class EnvironmentalImpact:
    items_recycled: int = 0
    items_composted: int = 0
    waste_reduced: float = 0.0  # kg
    co2_saved: float = 0.0  # kg

    def to_dict(self) -> Dict:
        return {
            "itemsRecycled": self.items_recycled,
            "itemsComposted": self.items_composted,
            "wasteReduced": self.waste_reduced,
            "co2Saved": self.co2_saved,
        }


@dataclass
class ClassificationStats:
    """Statistics derived from the live record set"""
    total_classifications: int = 0
    total_points: int = 0
    category_breakdown: Dict[str, int] = field(default_factory=dict)
    average_recyclable_rate: float = 0.0
    top_items: List[Dict] = field(default_factory=list)
    weekly_stats: List[Dict] = field(default_factory=list)
    environmental_impact: EnvironmentalImpact = field(default_factory=EnvironmentalImpact)

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "totalClassifications": self.total_classifications,
            "totalPoints": self.total_points,
            "categoryBreakdown": dict(self.category_breakdown),
            "averageRecyclableRate": self.average_recyclable_rate,
            "topItems": [dict(item) for item in self.top_items],
            "weeklyStats": [dict(week) for week in self.weekly_stats],
            "environmentalImpact": self.environmental_impact.to_dict(),
        }


def category_breakdown(records: Sequence[ClassificationRecord]) -> Dict[str, int]:
    breakdown = {category.value: 0 for category in OutwardCategory}
    for record in records:
        key = OutwardCategory(record.category).value
        breakdown[key] += 1
    return breakdown


def top_items(records: Sequence[ClassificationRecord], limit: int = TOP_ITEMS_LIMIT) -> List[Dict]:
    """Most frequent item names with their cumulative points"""
    item_counts: Dict[str, Dict] = {}
    for record in records:
        entry = item_counts.setdefault(record.item_name, {"count": 0, "totalPoints": 0})
        entry["count"] += 1
        entry["totalPoints"] += record.points

    ranked = sorted(item_counts.items(), key=lambda kv: kv[1]["count"], reverse=True)
    return [
        {"item": item, "count": data["count"], "totalPoints": data["totalPoints"]}
        for item, data in ranked[:limit]
    ]


def weekly_stats(records: Sequence[ClassificationRecord], now: datetime,
                 weeks: int = WEEKS) -> List[Dict]:
    """
    Counts and point sums for the last `weeks` seven-day windows ending today

    Windows run from 00:00 on their first day through 23:59:59.999999 on their
    last day, both ends inclusive, oldest window first.
    """
    stats = []
    for i in range(weeks - 1, -1, -1):
        week_start = (now - timedelta(days=i * 7 + 6)).replace(hour=0, minute=0, second=0, microsecond=0)
        week_end = week_start + timedelta(days=6, hours=23, minutes=59, seconds=59, microseconds=999999)

        week_records = [r for r in records if week_start <= r.timestamp <= week_end]
        stats.append({
            "date": week_start.date().isoformat(),
            "count": len(week_records),
            "points": sum(r.points for r in week_records),
        })
    return stats


def environmental_impact(records: Sequence[ClassificationRecord]) -> EnvironmentalImpact:
    recycled = sum(1 for r in records if r.category == OutwardCategory.RECYCLABLE)
    composted = sum(1 for r in records if r.category == OutwardCategory.ORGANIC)

    return EnvironmentalImpact(
        items_recycled=recycled,
        items_composted=composted,
        waste_reduced=round(recycled * RECYCLED_WASTE_KG + composted * COMPOSTED_WASTE_KG, 2),
        co2_saved=round(recycled * RECYCLED_CO2_KG + composted * COMPOSTED_CO2_KG, 2),
    )


def compute_statistics(records: Sequence[ClassificationRecord], now: datetime) -> ClassificationStats:
    """
    Compute statistics for a record set

    Args:
        records: All current records, any order
        now: Reference time for the weekly windows

    Returns:
        ClassificationStats, all zeros for an empty record set
    """
    total = len(records)
    average_rate = sum(r.recyclable_rate for r in records) / total if total > 0 else 0.0

    return ClassificationStats(
        total_classifications=total,
        total_points=sum(r.points for r in records),
        category_breakdown=category_breakdown(records),
        average_recyclable_rate=round(average_rate, 2),
        top_items=top_items(records),
        weekly_stats=weekly_stats(records, now),
        environmental_impact=environmental_impact(records),
    )
