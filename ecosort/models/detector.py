"""
Multi-object waste detector
- YOLOv8 (COCO classes) backend via ultralytics
- Adapter normalizing raw boxes into Detection objects
"""

import logging
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from ..exceptions import SourceUnavailableError
from ..taxonomy import coarsen, map_raw_label_to_category, tips_for_category
from .detection import SOURCE_DETECTOR, Detection, sort_by_confidence, to_percent
from .provider import ModelProvider

try:
    from ultralytics import YOLO
    YOLO_AVAILABLE = True
except ImportError:
    YOLO_AVAILABLE = False

DEFAULT_CONFIDENCE_THRESHOLD = 0.35
DEFAULT_MODEL_PATH = "yolov8n.pt"


class YoloBackend:
    """
    Wraps an ultralytics YOLO model behind a plain detect() call

    detect(image) returns [{"class": str, "score": float, "bbox": [x, y, w, h]}]
    """

    def __init__(self, model_path: Optional[str] = None):
        """
        Load YOLO model with PyTorch 2.6+ compatibility

        Args:
            model_path: Path to custom weights, defaults to YOLOv8-nano
        """
        self.logger = logging.getLogger(__name__)
        if not YOLO_AVAILABLE:
            raise SourceUnavailableError("object detector", "ultralytics is not installed")

        import torch

        # PyTorch 2.6+ changed weights_only default to True
        # YOLO checkpoints need weights_only=False (trusted source)
        old_load = torch.load
        torch.load = lambda *args, **kwargs: old_load(*args, **{**kwargs, 'weights_only': False})

        try:
            if model_path and Path(model_path).exists():
                self.model = YOLO(model_path)
                self.logger.info(f"Loaded custom detection model from {model_path}")
            else:
                if model_path and model_path != DEFAULT_MODEL_PATH:
                    self.logger.warning(f"Model not found at {model_path}, using {DEFAULT_MODEL_PATH}")
                self.model = YOLO(DEFAULT_MODEL_PATH)
                self.logger.info("Loaded YOLOv8-nano model")
        finally:
            # Always restore original torch.load
            torch.load = old_load

        self.class_names = getattr(self.model, 'names', None) or {}

    def detect(self, image: np.ndarray) -> List[Dict]:
        predictions = []
        results = self.model(image, verbose=False)

        for result in results:
            boxes = result.boxes
            if boxes is None:
                continue
            for box in boxes:
                class_id = int(box.cls[0])
                x1, y1, x2, y2 = box.xyxy[0].tolist()
                predictions.append({
                    "class": self.class_names.get(class_id, f"unknown_{class_id}"),
                    "score": float(box.conf[0]),
                    "bbox": [x1, y1, x2 - x1, y2 - y1],
                })

        return predictions


def load_yolo_backend(model_path: Optional[str] = None) -> YoloBackend:
    return YoloBackend(model_path or os.environ.get("ECOSORT_DETECTOR_MODEL"))


_default_providers: Dict[Optional[str], ModelProvider] = {}
_providers_lock = threading.Lock()


def default_detector_provider(model_path: Optional[str] = None) -> ModelProvider:
    """Process-wide shared provider for the YOLO backend, one per weights path"""
    with _providers_lock:
        if model_path not in _default_providers:
            _default_providers[model_path] = ModelProvider(
                "object detector", lambda: load_yolo_backend(model_path)
            )
        return _default_providers[model_path]


class DetectorAdapter:
    """
    Runs the object detector and normalizes its output

    Only detections at or above the confidence threshold are kept.
    """

    def __init__(self, provider: Optional[ModelProvider] = None,
                 confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
                 corrections=None):
        """
        Args:
            provider: Model provider, defaults to the shared YOLO provider
            confidence_threshold: Minimum score (0..1) for a detection to count
            corrections: Optional LabelCorrections consulted during category mapping
        """
        self.provider = provider or default_detector_provider()
        self.confidence_threshold = confidence_threshold
        self.corrections = corrections
        self.setup_logging()

    def setup_logging(self):
        """Setup logging for the detector adapter"""
        self.logger = logging.getLogger(__name__)

    def detect(self, image: np.ndarray) -> List[Detection]:
        """
        Detect waste items in an image

        Args:
            image: Decoded BGR image

        Returns:
            Detections sorted by confidence, highest first

        Raises:
            SourceUnavailableError: if the model cannot load or inference fails
        """
        backend = self.provider.get()

        try:
            predictions = backend.detect(image)
        except Exception as e:
            self.logger.error(f"Detection failed: {e}")
            raise SourceUnavailableError(self.provider.name, f"inference failed: {e}") from e

        detections = self.normalize(predictions or [])
        self.logger.debug(f"Detector kept {len(detections)} of {len(predictions or [])} predictions")
        return detections

    def normalize(self, predictions: List[Dict]) -> List[Detection]:
        """Convert raw {class, score, bbox} predictions into Detections"""
        corrections = self.corrections.as_mapping() if self.corrections else None
        detections = []

        for prediction in predictions:
            try:
                score = float(prediction.get("score") or 0.0)
            except (TypeError, ValueError):
                continue
            if score < self.confidence_threshold:
                continue

            label = str(prediction.get("class", "unknown"))
            bbox = prediction.get("bbox")
            category = map_raw_label_to_category(label, corrections)
            detections.append(Detection(
                name=label,
                category=category,
                confidence=to_percent(score),
                bbox=list(bbox) if bbox is not None else None,
                source=SOURCE_DETECTOR,
                tips=tips_for_category(coarsen(category)),
            ))

        return sort_by_confidence(detections)
