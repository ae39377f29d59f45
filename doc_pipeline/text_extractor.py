import logging
import re
import threading
from typing import Any, Callable, Optional, Union

import cv2
import numpy as np
import pytesseract
from PIL import Image

from config import settings
from .errors import ExtractionError

logger = logging.getLogger(__name__)

# Everything except word characters, whitespace and . < > / - is OCR noise
NOISE_CHARS_RE = re.compile(r"[^\w\s.<>/-]")

ImageInput = Union[str, Image.Image, np.ndarray]


def clean_ocr_text(raw_text: str) -> str:
    """Strip noise characters, normalize line endings and drop empty lines"""
    text = NOISE_CHARS_RE.sub("", raw_text)
    text = text.replace("\r\n", "\n")
    lines = [line.strip() for line in text.split("\n")]
    return "\n".join(line for line in lines if line)


class TesseractWorker:
    """
    A configured tesseract session.
    Checks the engine is reachable on start-up and refuses work once terminated.
    """

    def __init__(self, lang: str, config: str, tesseract_cmd: Optional[str] = None):
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.lang = lang
        self.config = config
        self.version = pytesseract.get_tesseract_version()
        self.terminated = False
        logger.info("Tesseract %s worker ready (lang=%s)", self.version, lang)

    def recognize(self, image: ImageInput) -> str:
        if self.terminated:
            raise RuntimeError("Worker has been terminated")
        return pytesseract.image_to_string(image, lang=self.lang, config=self.config)

    def terminate(self) -> None:
        self.terminated = True


class TextExtractor:
    """
    Turns a document image into cleaned OCR text.

    Owns one lazily created OCR worker. Recognition calls are serialized
    against it; ``cleanup()`` terminates the worker and the next call
    creates a fresh one. Usable as a context manager that cleans up on exit.
    """

    def __init__(self, worker_factory: Optional[Callable[[], Any]] = None):
        self.worker_factory = worker_factory or self._default_worker
        self._worker = None
        self._lock = threading.RLock()

    @staticmethod
    def _default_worker() -> TesseractWorker:
        return TesseractWorker(
            lang=settings.TESSERACT_LANG,
            config=settings.TESSERACT_CONFIG,
            tesseract_cmd=settings.TESSERACT_CMD,
        )

    def __enter__(self) -> "TextExtractor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    @property
    def has_worker(self) -> bool:
        return self._worker is not None

    def _get_worker(self):
        if self._worker is None:
            logger.debug("Starting OCR worker")
            self._worker = self.worker_factory()
        return self._worker

    def _to_ocr_input(self, image: ImageInput) -> ImageInput:
        # OpenCV arrays are BGR, tesseract expects RGB
        if isinstance(image, np.ndarray) and image.ndim == 3:
            return Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))
        return image

    def extract_text(self, image: ImageInput) -> str:
        """Run OCR on the image and return the cleaned text"""
        with self._lock:
            try:
                worker = self._get_worker()
                logger.info("Starting OCR extraction...")
                raw_text = worker.recognize(self._to_ocr_input(image))
            except Exception as e:
                self.cleanup()
                raise ExtractionError(f"OCR extraction failed: {e}") from e

        cleaned = clean_ocr_text(raw_text)
        logger.info("OCR extraction completed")
        logger.debug("Cleaned text:\n%s", cleaned)
        return cleaned

    def cleanup(self) -> None:
        """Terminate the worker, if any, and drop the reference"""
        with self._lock:
            if self._worker is None:
                return
            try:
                self._worker.terminate()
            finally:
                self._worker = None
                logger.debug("OCR worker released")
