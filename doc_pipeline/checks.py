import logging
import re
from typing import List, Optional

from config import DOCUMENT_NUMBER_REGEX, EXPIRATION_DATE_REGEX
from .errors import ValidationError
from .extractor import FieldExtractor
from .models import ExtractedData, PartialExtraction
from .mrz import MRZParser
from .text_extractor import ImageInput, TextExtractor

logger = logging.getLogger(__name__)


def merge_fields(direct: PartialExtraction, mrz: PartialExtraction) -> PartialExtraction:
    """Directly extracted values always win over MRZ values"""
    return direct.merged_with(mrz)


class FieldValidator:
    """
    Runs the text pipeline end to end:
    OCR text -> direct cascades -> MRZ fallback (only if a field is missing)
    -> validation of the merged fields
    """

    def __init__(self,
                 text_extractor: Optional[TextExtractor] = None,
                 field_extractor: Optional[FieldExtractor] = None,
                 mrz_parser: Optional[MRZParser] = None):
        self.text_extractor = text_extractor or TextExtractor()
        self.field_extractor = field_extractor or FieldExtractor()
        self.mrz_parser = mrz_parser or MRZParser()
        self.document_number_regex = re.compile(DOCUMENT_NUMBER_REGEX)
        self.expiration_date_regex = re.compile(EXPIRATION_DATE_REGEX)

    def direct_stage(self, text: str) -> PartialExtraction:
        return self.field_extractor.extract(text)

    def mrz_stage(self, text: str, partial: PartialExtraction) -> PartialExtraction:
        if partial.complete:
            return partial
        logger.info("OCR extraction incomplete (missing %s), attempting MRZ parsing...",
                    ", ".join(partial.missing))
        return merge_fields(partial, self.mrz_parser.parse(text))

    def format_checks(self, data: PartialExtraction) -> List[str]:
        """Collect every violated field rule"""
        issues = []

        if not data.name:
            issues.append("Name is required")

        if not data.document_number:
            issues.append("Document number is required")
        elif not self.document_number_regex.fullmatch(data.document_number):
            issues.append("Invalid document number format")

        if not data.expiration_date:
            issues.append("Expiration date is required")
        elif not self.expiration_date_regex.fullmatch(data.expiration_date):
            issues.append("Invalid expiration date format")

        return issues

    def validate(self, data: PartialExtraction) -> ExtractedData:
        issues = self.format_checks(data)
        if issues:
            raise ValidationError(issues)
        return ExtractedData(
            name=data.name,
            document_number=data.document_number,
            expiration_date=data.expiration_date,
        )

    def extract_fields(self, text: str) -> ExtractedData:
        """Pure text stages: cascades, MRZ fallback, validation"""
        partial = self.direct_stage(text)
        partial = self.mrz_stage(text, partial)
        return self.validate(partial)

    def process_document(self, image: ImageInput) -> ExtractedData:
        """OCR the image and return validated fields; always releases the OCR worker"""
        try:
            text = self.text_extractor.extract_text(image)
            return self.extract_fields(text)
        finally:
            self.text_extractor.cleanup()
