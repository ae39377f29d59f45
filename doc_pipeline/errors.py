"""Error taxonomy for the document pipeline.

Per-signal failures (classifier load, signal analysis, face model) are
recovered where they happen and turned into low-confidence results. Only
extraction, validation and platform errors reach the caller.
"""

from typing import List, Optional


class DocumentPipelineError(Exception):
    """Base exception for all pipeline errors."""
    pass


class ExtractionError(DocumentPipelineError):
    """OCR worker start-up or recognition failed."""
    pass


class ValidationError(DocumentPipelineError):
    """One or more required-field or format violations.

    Attributes:
        violations: every violated rule, in evaluation order
    """
    def __init__(self, violations: List[str]):
        self.violations = list(violations)
        super().__init__(f"Validation failed: {', '.join(self.violations)}")


class ClassifierLoadError(DocumentPipelineError):
    """Classifier model definition or weights are missing or corrupt."""
    pass


class SignalAnalysisError(DocumentPipelineError):
    """A fraud signal could not be computed."""
    pass


class FaceModelError(DocumentPipelineError):
    """Face model could not be loaded or run."""
    pass


class PlatformError(DocumentPipelineError):
    """Structural failure, e.g. an image that cannot be decoded.

    Attributes:
        source: description of the offending input, if known
    """
    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        super().__init__(message)
