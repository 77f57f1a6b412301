"""
Single-label whole-image classifier
- MobileNetV2 (ImageNet) backend via TensorFlow/Keras
- Adapter voting the top-k labels into one waste category
"""

import logging
from typing import Dict, List, Optional

import cv2
import numpy as np

from ..exceptions import SourceUnavailableError
from ..taxonomy import (OutwardCategory, WasteCategory, coarsen,
                        map_raw_label_to_category, normalize_label,
                        tips_for_category)
from .detection import SOURCE_CLASSIFIER, Detection, clamp_percent
from .provider import ModelProvider

try:
    from tensorflow import keras
    TF_AVAILABLE = True
except ImportError:
    TF_AVAILABLE = False

DEFAULT_TOP_K = 5
MIN_CATEGORY_SCORE = 0.25
CORRECTION_WEIGHT = 1.25
UNKNOWN_WEIGHT = 0.5

# Tie order when two categories collect the same score
VOTE_ORDER = [
    OutwardCategory.RECYCLABLE,
    OutwardCategory.ORGANIC,
    OutwardCategory.HAZARDOUS,
    OutwardCategory.GENERAL_WASTE,
]


class MobileNetBackend:
    """
    Wraps Keras MobileNetV2 behind a plain classify() call

    classify(image, top_k) returns [{"label": str, "score": float}], best first
    """

    input_size = (224, 224)

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        if not TF_AVAILABLE:
            raise SourceUnavailableError("image classifier", "TensorFlow is not installed")

        self.model = keras.applications.MobileNetV2(weights="imagenet")
        self.logger.info("Loaded MobileNetV2 ImageNet classifier")

    def _preprocess(self, image: np.ndarray) -> np.ndarray:
        """Resize, convert BGR to RGB and scale for MobileNetV2"""
        resized = cv2.resize(image, self.input_size)
        if len(resized.shape) == 2:
            resized = cv2.cvtColor(resized, cv2.COLOR_GRAY2RGB)
        else:
            resized = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB)
        batched = np.expand_dims(resized.astype(np.float32), axis=0)
        return keras.applications.mobilenet_v2.preprocess_input(batched)

    def classify(self, image: np.ndarray, top_k: int = DEFAULT_TOP_K) -> List[Dict]:
        predictions = self.model.predict(self._preprocess(image), verbose=0)
        decoded = keras.applications.mobilenet_v2.decode_predictions(predictions, top=top_k)[0]
        return [{"label": label, "score": float(score)} for _, label, score in decoded]


_default_provider: Optional[ModelProvider] = None


def default_classifier_provider() -> ModelProvider:
    """Process-wide shared provider for the MobileNetV2 backend"""
    global _default_provider
    if _default_provider is None:
        _default_provider = ModelProvider("image classifier", MobileNetBackend)
    return _default_provider


class SingleLabelClassifier:
    """
    Classifies the whole image and reduces the top-k labels to one Detection

    Each prediction votes for the outward category of its label with its
    probability. User corrections vote with extra weight, labels that map to
    nothing vote weakly for general waste.
    """

    def __init__(self, provider: Optional[ModelProvider] = None,
                 top_k: int = DEFAULT_TOP_K,
                 min_category_score: float = MIN_CATEGORY_SCORE,
                 corrections=None):
        """
        Args:
            provider: Model provider, defaults to the shared MobileNetV2 provider
            top_k: Number of labels requested from the backend
            min_category_score: Below this vote total the result is general waste
            corrections: Optional LabelCorrections store
        """
        self.provider = provider or default_classifier_provider()
        self.top_k = top_k
        self.min_category_score = min_category_score
        self.corrections = corrections
        self.logger = logging.getLogger(__name__)

    def classify(self, image: np.ndarray) -> Detection:
        """
        Classify an image into exactly one Detection

        Raises:
            SourceUnavailableError: if the model cannot load, fails, or returns nothing
        """
        backend = self.provider.get()

        try:
            predictions = backend.classify(image, self.top_k)
        except Exception as e:
            self.logger.error(f"Classification failed: {e}")
            raise SourceUnavailableError(self.provider.name, f"inference failed: {e}") from e

        if not predictions:
            raise SourceUnavailableError(self.provider.name, "no predictions returned")

        return self.reduce(predictions)

    def reduce(self, predictions: List[Dict]) -> Detection:
        """Vote top-k {label, score} predictions into a single Detection"""
        corrections = self.corrections.as_mapping() if self.corrections else {}
        scores = {category: 0.0 for category in VOTE_ORDER}
        voted = []

        for prediction in predictions:
            label = str(prediction.get("label", ""))
            try:
                probability = max(0.0, float(prediction.get("score") or 0.0))
            except (TypeError, ValueError):
                probability = 0.0

            key = normalize_label(label)
            if key in corrections:
                fine = WasteCategory(corrections[key])
                weight = CORRECTION_WEIGHT
            else:
                fine = map_raw_label_to_category(label)
                weight = 1.0 if fine != WasteCategory.OTHER else UNKNOWN_WEIGHT

            outward = coarsen(fine)
            scores[outward] += probability * weight
            voted.append((label, fine, outward, probability))

        # max() keeps the first of equal scores, so VOTE_ORDER breaks ties
        best_category = max(VOTE_ORDER, key=lambda category: scores[category])
        best_score = scores[best_category]

        if best_score < self.min_category_score:
            top_label = voted[0][0] if voted else "unknown"
            return self._build(top_label, WasteCategory.OTHER, best_score)

        members = [entry for entry in voted if entry[2] == best_category]
        label, fine, _, _ = max(members, key=lambda entry: entry[3])
        return self._build(label, fine, best_score)

    def _build(self, label: str, category: WasteCategory, score: float) -> Detection:
        display = normalize_label(label) or "unknown"
        return Detection(
            name=display,
            category=category,
            confidence=clamp_percent(round(score * 100)),
            source=SOURCE_CLASSIFIER,
            tips=tips_for_category(coarsen(category)),
        )
