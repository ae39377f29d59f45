import base64
import binascii
import os
import re
import uuid
from typing import Tuple, Union

import cv2
import numpy as np
from PIL import Image
import pillow_heif
from pdf2image import convert_from_path

from .errors import PlatformError

pillow_heif.register_heif_opener()

SUPPORTED_IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".heic"}
PDF_EXT = ".pdf"

DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?:;[\w=-]+)*;base64,(?P<data>.*)$", re.DOTALL)

MIME_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/heic": ".heic",
    "application/pdf": ".pdf",
}


def decode_data_url(data_url: str) -> Tuple[bytes, str]:
    """
    Decodes a base64 data URL (or bare base64) image.
    Returns the raw bytes and a file extension guessed from the MIME type.
    """
    match = DATA_URL_RE.match(data_url.strip())
    if match:
        payload = match.group("data")
        ext = MIME_EXTENSIONS.get((match.group("mime") or "").lower(), ".jpg")
    else:
        payload, ext = data_url.strip(), ".jpg"

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise PlatformError("Invalid base64 image data") from e
    if not data:
        raise PlatformError("Empty image data")
    return data, ext


def convert_to_image(input_path: str, output_dir: str) -> str:
    """
    Converts an uploaded file (image / HEIC / PDF) into one JPEG image.
    PDFs contribute their first page. Returns the JPEG path.
    """
    ext = os.path.splitext(input_path)[1].lower()
    os.makedirs(output_dir, exist_ok=True)
    out_path = os.path.join(output_dir, f"{uuid.uuid4().hex}.jpg")

    try:
        # -------- Case 1: Normal image or HEIC --------
        if ext in SUPPORTED_IMAGE_EXTS or ext == "":
            img = Image.open(input_path).convert("RGB")
            img.save(out_path, "JPEG", quality=95)
            return out_path

        # -------- Case 2: PDF --------
        if ext == PDF_EXT:
            pages = convert_from_path(input_path, dpi=300, first_page=1, last_page=1)
            if not pages:
                raise PlatformError("PDF has no pages", source=input_path)
            pages[0].convert("RGB").save(out_path, "JPEG", quality=95)
            return out_path
    except PlatformError:
        raise
    except Exception as e:
        raise PlatformError(f"Could not read document image: {e}", source=input_path) from e

    raise PlatformError(f"Unsupported file type: {ext}", source=input_path)


def load_image(source: Union[str, bytes]) -> np.ndarray:
    """Decode an image file path or encoded bytes into a BGR array"""
    if isinstance(source, (bytes, bytearray)):
        buffer = np.frombuffer(source, dtype=np.uint8)
        image = cv2.imdecode(buffer, cv2.IMREAD_COLOR) if buffer.size else None
        label = "image bytes"
    else:
        image = cv2.imread(source, cv2.IMREAD_COLOR)
        label = source

    if image is None:
        raise PlatformError("Image could not be decoded", source=label)
    return image
