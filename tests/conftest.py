"""Pytest fixtures and configuration."""

import base64

import cv2
import numpy as np
import pytest

from doc_pipeline.models import ExtractedData

# Czech specimen passport machine readable zone (TD3)
MRZ_LINE_1 = "P<CZESPECIMEN<<VZOR".ljust(44, "<")
MRZ_LINE_2 = "99006000<8CZE1102288F16090641152291111<<<<24"


@pytest.fixture
def mrz_lines():
    return MRZ_LINE_1, MRZ_LINE_2


@pytest.fixture
def mrz_text() -> str:
    """Cleaned OCR text holding only the two MRZ rows."""
    return f"{MRZ_LINE_1}\n{MRZ_LINE_2}"


@pytest.fixture
def extracted_data() -> ExtractedData:
    return ExtractedData(
        name="VZOR SPECIMEN",
        document_number="99006000",
        expiration_date="06.09.2016",
    )


@pytest.fixture
def white_image() -> np.ndarray:
    """Plain white BGR image with a 1.5 aspect ratio."""
    return np.full((100, 150, 3), 255, dtype=np.uint8)


@pytest.fixture
def png_bytes() -> bytes:
    ok, buffer = cv2.imencode(".png", np.full((60, 90, 3), 255, dtype=np.uint8))
    assert ok
    return buffer.tobytes()


@pytest.fixture
def png_data_url(png_bytes) -> str:
    return f"data:image/png;base64,{base64.b64encode(png_bytes).decode()}"
