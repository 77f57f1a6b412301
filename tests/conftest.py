"""
Shared fixtures: fake model backends, in-memory stores and a fixed clock
"""

import time
from datetime import datetime

import cv2
import numpy as np
import pytest

from ecosort.models.classifier import SingleLabelClassifier
from ecosort.models.detector import DetectorAdapter
from ecosort.models.provider import StaticProvider
from ecosort.utils.storage import MemoryStore


class FakeDetectorBackend:
    """Returns canned {class, score, bbox} predictions"""

    def __init__(self, predictions=None, error=None, delay=0.0):
        self.predictions = predictions or []
        self.error = error
        self.delay = delay
        self.calls = 0

    def detect(self, image):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.predictions)


class FakeClassifierBackend:
    """Returns canned {label, score} predictions"""

    def __init__(self, predictions=None, error=None, delay=0.0):
        self.predictions = predictions or []
        self.error = error
        self.delay = delay
        self.calls = 0

    def classify(self, image, top_k=5):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.predictions)[:top_k]


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_detector(predictions=None, error=None, delay=0.0, **kwargs):
    backend = FakeDetectorBackend(predictions, error, delay)
    return DetectorAdapter(provider=StaticProvider("object detector", backend), **kwargs), backend


def make_classifier(predictions=None, error=None, delay=0.0, **kwargs):
    backend = FakeClassifierBackend(predictions, error, delay)
    return SingleLabelClassifier(provider=StaticProvider("image classifier", backend), **kwargs), backend


@pytest.fixture
def image():
    """Plain 320x240 BGR test image"""
    frame = np.full((240, 320, 3), 127, dtype=np.uint8)
    cv2.rectangle(frame, (80, 60), (240, 180), (0, 128, 255), -1)
    return frame


@pytest.fixture
def png_bytes(image):
    ok, encoded = cv2.imencode(".png", image)
    assert ok
    return encoded.tobytes()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 15, 12, 0, 0))
