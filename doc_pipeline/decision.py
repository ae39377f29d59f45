from typing import List

from .models import (
    DocumentProcessingResult, DocumentType, ExtractedData,
    FaceDetectionResult, FraudDetectionCheck,
)


def is_document_valid(fraud_checks: List[FraudDetectionCheck],
                      face_detection: FaceDetectionResult) -> bool:
    """Valid only when every fraud check passed and a face was found"""
    return all(check.passed for check in fraud_checks) and face_detection.face_detected


def overall_confidence(fraud_checks: List[FraudDetectionCheck],
                       face_detection: FaceDetectionResult) -> float:
    """Average of the mean fraud-check confidence and the face confidence"""
    fraud_confidence = (
        sum(check.confidence for check in fraud_checks) / len(fraud_checks)
        if fraud_checks else 0.0
    )
    return (fraud_confidence + face_detection.confidence) / 2


class ResultAggregator:
    """
    Combines fraud checks and the face result into the final verdict.
    The only place ``isValid`` is derived.
    """

    def aggregate(self,
                  document_type: DocumentType,
                  fraud_checks: List[FraudDetectionCheck],
                  extracted_data: ExtractedData,
                  face_detection: FaceDetectionResult) -> DocumentProcessingResult:
        return DocumentProcessingResult(
            document_type=document_type,
            is_valid=is_document_valid(fraud_checks, face_detection),
            confidence=overall_confidence(fraud_checks, face_detection),
            fraud_detection_results=fraud_checks,
            extracted_data=extracted_data,
            face_detection=face_detection,
        )
