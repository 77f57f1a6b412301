import pytest

from conftest import make_classifier
from ecosort.exceptions import SourceUnavailableError
from ecosort.models.detection import SOURCE_CLASSIFIER
from ecosort.taxonomy import OutwardCategory, WasteCategory
from ecosort.utils.label_corrections import LabelCorrections


def test_votes_by_outward_category(image):
    classifier, backend = make_classifier([
        {"label": "water_bottle", "score": 0.3},
        {"label": "banana", "score": 0.2},
        {"label": "pop_bottle", "score": 0.1},
    ])
    result = classifier.classify(image)

    assert result.name == "water bottle"
    assert result.category == WasteCategory.PLASTIC
    assert result.outward_category == OutwardCategory.RECYCLABLE
    assert result.confidence == 40
    assert result.source == SOURCE_CLASSIFIER
    assert result.tips
    assert backend.calls == 1


def test_single_label_result(image):
    classifier, _ = make_classifier([{"label": "banana", "score": 0.8}])
    result = classifier.classify(image)
    assert result.name == "banana"
    assert result.category == WasteCategory.ORGANIC
    assert result.confidence == 80


def test_weak_vote_is_general_waste(image):
    classifier, _ = make_classifier([
        {"label": "mystery_thing", "score": 0.3},
        {"label": "banana", "score": 0.1},
    ])
    result = classifier.classify(image)
    assert result.category == WasteCategory.OTHER
    assert result.outward_category == OutwardCategory.GENERAL_WASTE
    assert result.name == "mystery thing"


def test_correction_overrides_label(image, store):
    corrections = LabelCorrections(store)
    corrections.save("mystery_thing", WasteCategory.METAL)
    classifier, _ = make_classifier([{"label": "mystery_thing", "score": 0.6}],
                                    corrections=corrections)
    result = classifier.classify(image)
    assert result.category == WasteCategory.METAL
    assert result.outward_category == OutwardCategory.RECYCLABLE


def test_confidence_is_clamped(image):
    classifier, _ = make_classifier([
        {"label": "banana", "score": 0.9},
        {"label": "orange", "score": 0.9},
    ])
    assert classifier.classify(image).confidence == 100


def test_empty_predictions_are_source_unavailable(image):
    classifier, _ = make_classifier([])
    with pytest.raises(SourceUnavailableError):
        classifier.classify(image)


def test_backend_error_is_source_unavailable(image):
    classifier, _ = make_classifier(error=ValueError("bad tensor"))
    with pytest.raises(SourceUnavailableError):
        classifier.classify(image)
