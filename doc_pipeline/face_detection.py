import logging
import os
from typing import List, Optional

import cv2
import numpy as np

from config import settings
from .errors import FaceModelError
from .models import FaceDetectionResult, Landmark

logger = logging.getLogger(__name__)

# SSD face model input
MODEL_INPUT_SIZE = (300, 300)
MODEL_MEAN = (104.0, 177.0, 123.0)


class FaceDetector:
    """
    Face presence check on the full-resolution document image.
    Never raises: model problems are reported as "no face".
    """

    def __init__(self,
                 config_path: Optional[str] = None,
                 weights_path: Optional[str] = None,
                 min_confidence: Optional[float] = None):
        self.config_path = config_path or settings.FACE_MODEL_CONFIG
        self.weights_path = weights_path or settings.FACE_MODEL_WEIGHTS
        self.min_confidence = (
            settings.FACE_MIN_CONFIDENCE if min_confidence is None else min_confidence
        )
        self._net = None
        self._load_failed = False

    def _load_model(self):
        for path in (self.config_path, self.weights_path):
            if not os.path.exists(path):
                raise FaceModelError(f"Face model file not found: {path}")
        try:
            return cv2.dnn.readNetFromCaffe(self.config_path, self.weights_path)
        except cv2.error as e:
            raise FaceModelError(f"Face model could not be loaded: {e}") from e

    def _landmarks(self, detection: np.ndarray, width: int, height: int) -> List[Landmark]:
        # Columns past the 7 SSD fields are normalized (x, y) landmark pairs
        extra = detection[7:]
        return [
            Landmark(x=float(extra[i]) * width, y=float(extra[i + 1]) * height)
            for i in range(0, len(extra) - 1, 2)
        ]

    def detect(self, image: np.ndarray) -> FaceDetectionResult:
        if self._load_failed:
            return FaceDetectionResult.none()
        try:
            if self._net is None:
                try:
                    self._net = self._load_model()
                except FaceModelError:
                    self._load_failed = True
                    raise

            height, width = image.shape[:2]
            blob = cv2.dnn.blobFromImage(image, 1.0, MODEL_INPUT_SIZE, MODEL_MEAN)
            self._net.setInput(blob)
            detections = np.asarray(self._net.forward())
            detections = detections.reshape(-1, detections.shape[-1])

            if detections.shape[0] == 0:
                return FaceDetectionResult.none()

            best = detections[int(np.argmax(detections[:, 2]))]
            confidence = float(min(max(best[2], 0.0), 1.0))
            face_detected = confidence > self.min_confidence

            return FaceDetectionResult(
                face_detected=face_detected,
                confidence=confidence,
                landmarks=self._landmarks(best, width, height) if face_detected else [],
            )
        except Exception as e:
            logger.warning("Error in face detection: %s", e)
            return FaceDetectionResult.none()
