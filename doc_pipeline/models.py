from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from config import REQUIRED_FIELDS


class CamelModel(BaseModel):
    """Serializes with camelCase keys, accepts snake_case names in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DocumentType(str, Enum):
    PASSPORT = "passport"
    DRIVER_LICENSE = "driver_license"
    ID_CARD = "id_card"


class ExtractedData(CamelModel):
    name: str = Field(min_length=1)
    document_number: str = Field(min_length=1)
    expiration_date: str = Field(min_length=1)


class FraudDetectionCheck(CamelModel):
    check: str
    passed: bool
    confidence: float = Field(ge=0.0, le=1.0)
    details: str = ""


class Landmark(BaseModel):
    x: float
    y: float


class FaceDetectionResult(CamelModel):
    face_detected: bool
    confidence: float = Field(ge=0.0, le=1.0)
    landmarks: List[Landmark] = Field(default_factory=list)

    @classmethod
    def none(cls) -> "FaceDetectionResult":
        """Result reported when no face could be detected"""
        return cls(face_detected=False, confidence=0.0, landmarks=[])


class ValidationResult(CamelModel):
    document_type: DocumentType
    is_valid: bool
    confidence: float = Field(ge=0.0, le=1.0)
    fraud_detection_results: List[FraudDetectionCheck]
    extracted_data: ExtractedData


class DocumentProcessingResult(ValidationResult):
    face_detection: FaceDetectionResult


@dataclass
class PartialExtraction:
    """Fields found so far by one extraction stage; None means not found."""
    name: Optional[str] = None
    document_number: Optional[str] = None
    expiration_date: Optional[str] = None

    @property
    def missing(self) -> List[str]:
        return [field for field in REQUIRED_FIELDS if not getattr(self, field)]

    @property
    def complete(self) -> bool:
        return not self.missing

    def merged_with(self, fallback: "PartialExtraction") -> "PartialExtraction":
        """Fill only the fields missing here from ``fallback``."""
        return PartialExtraction(**{
            field: getattr(self, field) or getattr(fallback, field)
            for field in REQUIRED_FIELDS
        })
