import logging
import re

from mrz.checker.td2 import TD2CodeChecker
from mrz.checker.td3 import TD3CodeChecker

from config import MRZ_LINE_REGEX
from .extractor import decode_mrz_date
from .models import PartialExtraction

logger = logging.getLogger(__name__)

# Two-line ICAO 9303 formats by line length: TD3 (passports) and TD2
CHECKERS = {
    44: TD3CodeChecker,
    36: TD2CodeChecker,
}


class MRZFormatError(ValueError):
    """Lines do not form a two-line MRZ"""


def check_mrz(line1: str, line2: str):
    """
    Run the ICAO field and check-digit validation for a two-line MRZ.
    The returned checker is truthy only when every check passes.
    """
    if len(line1) != len(line2) or len(line1) not in CHECKERS:
        raise MRZFormatError(
            f"Unsupported MRZ line lengths: {len(line1)} and {len(line2)}"
        )
    return CHECKERS[len(line1)](f"{line1}\n{line2}")


def _clean(value) -> str:
    return (value or "").replace("<", " ").strip()


class MRZParser:
    """
    Fallback field source: decodes the last two MRZ-shaped lines of the text.
    Never raises; anything unusable yields an empty result.
    """

    def __init__(self):
        self.line_regex = re.compile(MRZ_LINE_REGEX)

    def parse(self, text: str) -> PartialExtraction:
        try:
            logger.info("Attempting MRZ parsing...")
            lines = [line for line in text.split("\n") if self.line_regex.fullmatch(line)]

            if len(lines) < 2:
                logger.info("No MRZ lines found")
                return PartialExtraction()

            checker = check_mrz(lines[-2], lines[-1])
            if not checker:
                logger.info("Invalid MRZ data detected")
                return PartialExtraction()

            logger.info("MRZ parsing successful")
            return self._to_partial(checker.fields())
        except Exception as e:
            logger.info("MRZ parsing failed: %s", e)
            return PartialExtraction()

    def _to_partial(self, fields) -> PartialExtraction:
        surname, given_names = _clean(fields.surname), _clean(fields.name)
        expiry = _clean(fields.expiry_date)
        return PartialExtraction(
            name=f"{given_names} {surname}" if given_names and surname else None,
            document_number=_clean(fields.document_number) or None,
            expiration_date=decode_mrz_date(expiry)
            if len(expiry) == 6 and expiry.isdigit() else None,
        )
