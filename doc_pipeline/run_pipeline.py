import logging
from typing import Optional, Union

import numpy as np

from config import settings
from .checks import FieldValidator
from .classifier import DocumentClassifier
from .client import ExtractionClient
from .decision import ResultAggregator
from .face_detection import FaceDetector
from .file_converter import load_image
from .models import DocumentProcessingResult, ExtractedData
from .quality import ImageSignalAnalyzer

logger = logging.getLogger(__name__)


class LocalFieldSource:
    """Field source running the OCR text pipeline in this process"""

    def __init__(self, field_validator: Optional[FieldValidator] = None):
        self.field_validator = field_validator or FieldValidator()

    def extract(self, image: np.ndarray) -> ExtractedData:
        return self.field_validator.process_document(image)


def build_field_source(field_validator: Optional[FieldValidator] = None):
    """Remote extraction when a service URL is configured, local OCR otherwise"""
    if settings.EXTRACTION_SERVICE_URL:
        return ExtractionClient()
    return LocalFieldSource(field_validator)


class DocumentPipeline:
    """
    Orchestrates the whole document validation:
    fraud signals -> classification -> field extraction -> face detection -> verdict
    """

    def __init__(self,
                 field_source=None,
                 signal_analyzer: Optional[ImageSignalAnalyzer] = None,
                 classifier: Optional[DocumentClassifier] = None,
                 face_detector: Optional[FaceDetector] = None,
                 aggregator: Optional[ResultAggregator] = None):
        self.field_source = field_source or build_field_source()
        self.signal_analyzer = signal_analyzer or ImageSignalAnalyzer()
        self.classifier = classifier or DocumentClassifier()
        self.face_detector = face_detector or FaceDetector()
        self.aggregator = aggregator or ResultAggregator()

    def run(self, source: Union[str, bytes, np.ndarray]) -> DocumentProcessingResult:
        """
        Validate one document image.

        Args:
            source: image path, encoded image bytes or a decoded BGR array

        Returns:
            The combined processing result. Raises PlatformError for images
            that cannot be decoded and ValidationError / ExtractionError when
            the identity fields cannot be obtained.
        """
        image = source if isinstance(source, np.ndarray) else load_image(source)

        # Step 1: Fraud signal checks
        fraud_checks = self.signal_analyzer.analyze(image)

        # Step 2: Document type
        document_type = self.classifier.classify(image)

        # Step 3: Identity fields
        extracted_data = self.field_source.extract(image)

        # Step 4: Face presence
        face_detection = self.face_detector.detect(image)

        # Step 5: Final verdict
        result = self.aggregator.aggregate(
            document_type=document_type,
            fraud_checks=fraud_checks,
            extracted_data=extracted_data,
            face_detection=face_detection,
        )
        logger.info(
            "Document processed: type=%s valid=%s confidence=%.3f",
            result.document_type.value, result.is_valid, result.confidence,
        )
        return result


def run_pipeline(source: Union[str, bytes, np.ndarray]) -> DocumentProcessingResult:
    """Validate one document with default components"""
    return DocumentPipeline().run(source)
