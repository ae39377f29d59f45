import logging
import os
from typing import Optional

import cv2
import numpy as np

from config import settings
from .errors import ClassifierLoadError
from .models import DocumentType

logger = logging.getLogger(__name__)

# Open aspect-ratio windows, checked in order; the first hit wins where they overlap
ASPECT_RATIO_RULES = (
    (1.4, 1.6, DocumentType.PASSPORT),
    (1.55, 1.7, DocumentType.DRIVER_LICENSE),
    (1.2, 1.4, DocumentType.ID_CARD),
)
DEFAULT_DOCUMENT_TYPE = DocumentType.PASSPORT

# Output order of the classifier model
MODEL_CLASSES = (DocumentType.PASSPORT, DocumentType.DRIVER_LICENSE, DocumentType.ID_CARD)
MODEL_INPUT_SIZE = 224


def classify_by_aspect_ratio(width: int, height: int) -> DocumentType:
    aspect_ratio = width / height
    for low, high, document_type in ASPECT_RATIO_RULES:
        if low < aspect_ratio < high:
            return document_type
    return DEFAULT_DOCUMENT_TYPE


class DocumentClassifier:
    """
    Tags a document image as passport / driver license / ID card.
    Uses the classifier model when its files load, otherwise the aspect-ratio heuristic.
    """

    def __init__(self, config_path: Optional[str] = None, weights_path: Optional[str] = None):
        self.config_path = config_path or settings.CLASSIFIER_MODEL_CONFIG
        self.weights_path = weights_path or settings.CLASSIFIER_MODEL_WEIGHTS
        self._net = None
        self._load_failed = False

    def _load_model(self):
        if not os.path.exists(self.weights_path):
            raise ClassifierLoadError(f"Classifier weights not found: {self.weights_path}")
        config = self.config_path if os.path.exists(self.config_path) else ""
        try:
            return cv2.dnn.readNet(self.weights_path, config)
        except cv2.error as e:
            raise ClassifierLoadError(f"Classifier model could not be loaded: {e}") from e

    def _get_model(self):
        if self._net is None and not self._load_failed:
            try:
                self._net = self._load_model()
                logger.info("Document classifier model loaded from %s", self.weights_path)
            except ClassifierLoadError as e:
                self._load_failed = True
                logger.info("%s; using aspect-ratio classification", e)
        return self._net

    def classify_with_model(self, net, image: np.ndarray) -> DocumentType:
        blob = cv2.dnn.blobFromImage(
            image, 1.0 / 255, (MODEL_INPUT_SIZE, MODEL_INPUT_SIZE), swapRB=True
        )
        net.setInput(blob)
        probabilities = np.asarray(net.forward()).reshape(-1)
        if probabilities.size != len(MODEL_CLASSES):
            raise ValueError(f"Unexpected classifier output size {probabilities.size}")
        return MODEL_CLASSES[int(np.argmax(probabilities))]

    def classify(self, image: np.ndarray) -> DocumentType:
        height, width = image.shape[:2]
        net = self._get_model()
        if net is not None:
            try:
                return self.classify_with_model(net, image)
            except Exception as e:
                logger.warning("Error classifying document: %s", e)
        return classify_by_aspect_ratio(width, height)
