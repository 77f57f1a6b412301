"""
Classification pipeline
Runs the object detector and the image classifier side by side, reconciles
their answers into one verdict and falls back to filename heuristics when
neither model produced anything usable.

Source priority is fixed: detector, then classifier, then fallback. The
classifier only replaces the detector's top pick when that pick is below the
override threshold.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np

from .exceptions import ExhaustedPipelineError, InvalidInputError
from .image_input import FileMetadata, ImageSource, load_upload
from .models.classifier import SingleLabelClassifier
from .models.detection import (SOURCE_CLASSIFIER, SOURCE_DETECTOR, SOURCE_FALLBACK,
                               SOURCE_UNKNOWN, ClassificationVerdict, Detection,
                               sort_by_confidence)
from .models.detector import DetectorAdapter, default_detector_provider
from .models.fallback import HeuristicClassifier
from .models.rewards import reward
from .taxonomy import DESCRIPTIONS, DISPOSAL_METHODS, WasteCategory

DEFAULT_ADAPTER_TIMEOUT = 10.0
DEFAULT_OVERRIDE_THRESHOLD = 60
USAGE_HINT = "Tip: Use descriptive filenames for better accuracy"


class PipelineState(Enum):
    NOT_STARTED = "not_started"
    DETECTING = "detecting"
    RECONCILED = "reconciled"
    FALLBACK = "fallback"
    DONE = "done"


def unknown_detection(reason: str = "") -> Detection:
    """Low-confidence general waste result used when every source failed"""
    tips = [
        "When unsure, dispose in general waste",
        "Try to identify specific material type",
        "Check local disposal guidelines",
        "Consider reuse if item is in good condition",
    ]
    if reason:
        tips.append(f"Classification unavailable: {reason}")
    return Detection(
        name="Unknown Item",
        category=WasteCategory.OTHER,
        confidence=20,
        source=SOURCE_UNKNOWN,
        tips=tips,
        recyclable_rate=20,
        description="Unidentified waste item",
        disposal_method="Place in general waste bin",
    )


class ClassificationPipeline:
    """
    Detector + classifier + fallback cascade

    Either model adapter may be None, which is the same as that source being
    unavailable. The fallback is always present.
    """

    def __init__(self, detector: Optional[DetectorAdapter] = None,
                 classifier: Optional[SingleLabelClassifier] = None,
                 fallback: Optional[HeuristicClassifier] = None,
                 adapter_timeout_seconds: Optional[float] = DEFAULT_ADAPTER_TIMEOUT,
                 override_threshold: int = DEFAULT_OVERRIDE_THRESHOLD,
                 max_workers: int = 4):
        """
        Args:
            detector: Object detector adapter
            classifier: Single-label classifier adapter
            fallback: Heuristic classifier, a default one is created if omitted
            adapter_timeout_seconds: Upper bound on waiting for the model sources, None waits forever
            override_threshold: Detector confidence below which the classifier takes over
            max_workers: Threads available for concurrent model calls
        """
        self.detector = detector
        self.classifier = classifier
        self.fallback = fallback or HeuristicClassifier()
        self.adapter_timeout = adapter_timeout_seconds
        self.override_threshold = override_threshold
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ecosort-source")
        self.setup_logging()

    def setup_logging(self):
        """Setup logging for the pipeline"""
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: Dict, corrections=None) -> "ClassificationPipeline":
        """Build a pipeline with the default model providers"""
        detector_config = config.get('detector', {})
        classifier_config = config.get('classifier', {})
        pipeline_config = config.get('pipeline', {})

        detector = DetectorAdapter(
            provider=default_detector_provider(detector_config.get('model_path')),
            confidence_threshold=detector_config.get('confidence_threshold', 0.35),
            corrections=corrections,
        )
        classifier = SingleLabelClassifier(
            top_k=classifier_config.get('top_k', 5),
            min_category_score=classifier_config.get('min_category_score', 0.25),
            corrections=corrections,
        )
        return cls(
            detector=detector,
            classifier=classifier,
            adapter_timeout_seconds=pipeline_config.get('adapter_timeout_seconds', DEFAULT_ADAPTER_TIMEOUT),
            override_threshold=pipeline_config.get('override_threshold', DEFAULT_OVERRIDE_THRESHOLD),
        )

    def classify_upload(self, source: ImageSource, filename: Optional[str] = None,
                        content_type: Optional[str] = None) -> Tuple[ClassificationVerdict, FileMetadata]:
        """
        Validate an upload and classify it

        Raises:
            InvalidInputError: before any classifier runs, if the upload is not an image
        """
        upload = load_upload(source, filename, content_type)
        return self.classify(upload.image, upload.metadata), upload.metadata

    def classify(self, image, metadata: Optional[FileMetadata] = None) -> ClassificationVerdict:
        """
        Classify one image

        Args:
            image: Decoded BGR array, or any source accepted by load_upload
            metadata: Filename and size used by the fallback classifier

        Returns:
            ClassificationVerdict, always; only invalid input raises

        Raises:
            InvalidInputError: if the image is missing or undecodable
        """
        if not isinstance(image, np.ndarray):
            upload = load_upload(image, metadata.filename if metadata else None)
            image = upload.image
            metadata = metadata or upload.metadata
        elif image.size == 0:
            raise InvalidInputError("Empty image")

        if metadata is None:
            height, width = image.shape[:2]
            metadata = FileMetadata("upload", int(image.nbytes), (width, height))

        start_time = time.time()
        self._enter(PipelineState.NOT_STARTED, metadata.filename)

        self._enter(PipelineState.DETECTING, metadata.filename)
        detections, classified = self._run_sources(image)

        primary: Optional[Detection] = None
        all_detections: List[Detection] = []
        source_tag = SOURCE_UNKNOWN

        if detections:
            all_detections = sort_by_confidence(detections)
            primary = all_detections[0]
            source_tag = SOURCE_DETECTOR

        if classified is not None:
            if primary is None or primary.confidence < self.override_threshold:
                primary = classified
                source_tag = SOURCE_CLASSIFIER
            if not any(d.name.lower() == classified.name.lower() for d in all_detections):
                all_detections = sort_by_confidence(all_detections + [classified])

        self._enter(PipelineState.RECONCILED, metadata.filename)

        if primary is None:
            self._enter(PipelineState.FALLBACK, metadata.filename)
            self.logger.info(f"[{metadata.filename}] AI sources unavailable, using fallback classifier")
            primary, source_tag = self._run_fallback(metadata)
            all_detections = [primary]

        verdict = self._build_verdict(primary, all_detections, source_tag)

        self._enter(PipelineState.DONE, metadata.filename)
        self.logger.info(
            f"[{metadata.filename}] {verdict.item_name} -> {verdict.category.value} "
            f"({verdict.confidence}%, {source_tag}, {len(all_detections)} items) "
            f"in {time.time() - start_time:.2f}s"
        )
        return verdict

    def _enter(self, state: PipelineState, filename: str):
        self.logger.debug(f"[{filename}] -> {state.value}")

    def _run_sources(self, image: np.ndarray) -> Tuple[List[Detection], Optional[Detection]]:
        """Run detector and classifier concurrently and wait for both to settle"""
        futures = {}
        if self.detector is not None:
            futures['detector'] = self.executor.submit(self.detector.detect, image)
        if self.classifier is not None:
            futures['classifier'] = self.executor.submit(self.classifier.classify, image)

        if not futures:
            return [], None

        done, not_done = wait(list(futures.values()), timeout=self.adapter_timeout)

        results = {}
        for name, future in futures.items():
            if future in not_done:
                # A running inference cannot be interrupted; it finishes in the background
                if not future.cancel():
                    future.add_done_callback(self._late_result_logger(name))
                self.logger.warning(f"{name} did not finish within {self.adapter_timeout}s, skipping")
                continue
            try:
                results[name] = future.result()
            except Exception as e:
                self.logger.warning(f"{name} unavailable: {e}")

        return results.get('detector') or [], results.get('classifier')

    def _late_result_logger(self, name: str):
        def log_late_result(future):
            error = future.exception()
            if error is not None:
                self.logger.info(f"{name} finished after timeout with error: {error}")
            else:
                self.logger.info(f"{name} finished after timeout, result discarded")
        return log_late_result

    def _run_fallback(self, metadata: FileMetadata) -> Tuple[Detection, str]:
        try:
            detection = self.fallback.classify(metadata.filename, metadata.file_size, metadata.dimensions)
            if detection is None:
                raise ExhaustedPipelineError("fallback classifier returned no result")
            return detection, SOURCE_FALLBACK
        except Exception as e:
            self.logger.error(f"Fallback classifier failed for '{metadata.filename}': {e}")
            return unknown_detection(str(e)), SOURCE_UNKNOWN

    def _build_verdict(self, primary: Detection, all_detections: List[Detection],
                       source_tag: str) -> ClassificationVerdict:
        outward = primary.outward_category
        award = reward(outward, primary.confidence, primary.recyclable_rate)
        count = len(all_detections)

        tips = list(primary.tips) + [
            f"Classified using: {source_tag}",
            f"{count} item{'s' if count != 1 else ''} detected",
            USAGE_HINT,
        ]

        return ClassificationVerdict(
            primary=primary,
            all_detections=all_detections,
            source_tag=source_tag,
            points=award.points,
            recyclable_rate=award.recyclable_rate,
            tips=tips,
            description=primary.description or DESCRIPTIONS[outward],
            disposal_method=primary.disposal_method or DISPOSAL_METHODS[outward],
        )

    def close(self):
        """Release worker threads; in-flight model calls are not waited for"""
        self.executor.shutdown(wait=False)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
