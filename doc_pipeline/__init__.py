"""
Identity Document Validation Pipeline

This package contains the complete pipeline for identity document validation:
- OCR text extraction and field parsing with MRZ fallback
- Field validation
- Image signal fraud analysis
- Document type classification and face detection
- Final verdict aggregation
"""

__version__ = "1.0.0"
