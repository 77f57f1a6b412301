import pytest

from ecosort.models.rewards import BASE_POINTS, reward
from ecosort.taxonomy import OutwardCategory


@pytest.mark.parametrize("category,confidence,points,rate", [
    (OutwardCategory.HAZARDOUS, 100, 25, 60),
    (OutwardCategory.ORGANIC, 72, 10, 100),
    (OutwardCategory.RECYCLABLE, 90, 9, 80),
    (OutwardCategory.GENERAL_WASTE, 20, 0, 10),
])
def test_points_scale_with_confidence(category, confidence, points, rate):
    result = reward(category, confidence)
    assert result.points == points
    assert result.recyclable_rate == rate


def test_curated_rate_overrides_default():
    assert reward(OutwardCategory.RECYCLABLE, 98, recyclable_rate=85).recyclable_rate == 85


def test_out_of_range_values_are_clamped():
    high = reward(OutwardCategory.HAZARDOUS, 150, recyclable_rate=140)
    assert high.points == BASE_POINTS[OutwardCategory.HAZARDOUS]
    assert high.recyclable_rate == 100

    low = reward(OutwardCategory.ORGANIC, -10, recyclable_rate=-5)
    assert low.points == 0
    assert low.recyclable_rate == 0


def test_accepts_category_value():
    assert reward("Organic", 100).points == 15
