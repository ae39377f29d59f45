"""Tests for MRZ validation and the MRZ fallback parser."""

import pytest

from doc_pipeline.models import PartialExtraction
from doc_pipeline.mrz import MRZFormatError, MRZParser, check_mrz

# TD2 identity card, check digits computed by hand
TD2_LINE_1 = "I<CZEDOE<<JANE".ljust(36, "<")
TD2_LINE_2 = "AB12345671CZE8501019M3001019<<<<<<<0"


def test_specimen_passes_all_checks(mrz_lines):
    assert check_mrz(*mrz_lines)


def test_td2_lines_are_checked():
    """Two-row 36 character documents are validated too."""
    assert check_mrz(TD2_LINE_1, TD2_LINE_2)


def test_check_rejects_unknown_lengths():
    with pytest.raises(MRZFormatError):
        check_mrz("P<UTO", "12345")


def test_tampered_digit_fails_checks(mrz_lines):
    line1, line2 = mrz_lines
    assert not check_mrz(line1, "99006001" + line2[8:])


def test_parser_returns_fields(mrz_text):
    result = MRZParser().parse(mrz_text)
    assert result == PartialExtraction(
        name="VZOR SPECIMEN",
        document_number="99006000",
        expiration_date="06.09.2016",
    )


def test_parser_reads_td2():
    result = MRZParser().parse(f"{TD2_LINE_1}\n{TD2_LINE_2}")
    assert result == PartialExtraction(
        name="JANE DOE",
        document_number="AB1234567",
        expiration_date="01.01.2030",
    )


def test_parser_uses_last_two_mrz_lines(mrz_text):
    result = MRZParser().parse("ABC123\nXYZ<<<\n" + mrz_text)
    assert result.document_number == "99006000"


def test_parser_bad_checksum_returns_empty(mrz_lines):
    line1, line2 = mrz_lines
    result = MRZParser().parse(f"{line1}\n{line2[:-1]}9")
    assert result == PartialExtraction()


def test_parser_never_raises_on_garbage():
    parser = MRZParser()
    assert parser.parse("") == PartialExtraction()
    assert parser.parse("ONLYONELINE<<<") == PartialExtraction()
    assert parser.parse("P<UTO\n12345") == PartialExtraction()
