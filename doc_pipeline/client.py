import base64
import logging
from typing import Optional

import cv2
import numpy as np
import requests

from config import settings
from .errors import ExtractionError, ValidationError
from .models import ExtractedData

logger = logging.getLogger(__name__)

EXTRACT_PATH = "/api/documents/extract"


def encode_image(image: np.ndarray) -> str:
    """Encode a BGR image as a base64 JPEG data URL"""
    ok, buffer = cv2.imencode(".jpg", image)
    if not ok:
        raise ExtractionError("Image could not be encoded")
    return f"data:image/jpeg;base64,{base64.b64encode(buffer.tobytes()).decode()}"


class ExtractionClient:
    """
    Field source backed by a remote extraction service.
    Posts the image to ``/api/documents/extract`` and returns its fields.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        base_url = base_url or settings.EXTRACTION_SERVICE_URL
        if not base_url:
            raise ValueError("EXTRACTION_SERVICE_URL is required for remote extraction")
        self.url = base_url.rstrip("/") + EXTRACT_PATH
        self.timeout = timeout if timeout is not None else settings.EXTRACTION_SERVICE_TIMEOUT

    def extract(self, image: np.ndarray) -> ExtractedData:
        try:
            response = requests.post(
                self.url, json={"image": encode_image(image)}, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise ExtractionError(f"OCR service unreachable: {e}") from e

        if response.status_code == 400:
            violations = self._violations(response)
            if violations:
                raise ValidationError(violations)

        if not response.ok:
            logger.error("OCR service returned %s", response.status_code)
            raise ExtractionError("OCR service failed to process document")

        try:
            data = response.json()
        except ValueError as e:
            raise ExtractionError("OCR service failed to process document") from e
        if not isinstance(data, dict):
            raise ExtractionError("OCR service failed to process document")

        if not data.get("name") or not data.get("documentNumber") or not data.get("expirationDate"):
            raise ExtractionError("Failed to extract required fields from document")

        return ExtractedData(
            name=data["name"],
            document_number=data["documentNumber"],
            expiration_date=data["expirationDate"],
        )

    def _violations(self, response):
        try:
            body = response.json()
        except ValueError:
            return []
        if not isinstance(body, dict):
            return []
        return body.get("violations") or []
