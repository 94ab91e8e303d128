"""Hybrid native/OCR PDF text extraction to Word documents"""

from .errors import (
    ExtractionError,
    InputInvalidError,
    PdfParseError,
    OcrRuntimeMissingError,
    OcrFailedError,
    DocxGenerationError,
)
from .options import ExtractionOptions, normalize_options
from .settings import ExtractionSettings

__all__ = [
    'extract',
    'HybridExtractService',
    'ExtractionRun',
    'PageResult',
    'ExtractionOptions',
    'ExtractionSettings',
    'normalize_options',
    'ExtractionError',
    'InputInvalidError',
    'PdfParseError',
    'OcrRuntimeMissingError',
    'OcrFailedError',
    'DocxGenerationError',
]


# Lazy import for the pipeline to avoid loading OpenCV, PyMuPDF and python-docx
# when only options, settings or errors are needed
def __getattr__(name):
    if name in ("extract", "HybridExtractService", "ExtractionRun", "PageResult"):
        from . import extract_service
        return getattr(extract_service, name)
    raise AttributeError(f"module 'pdf_extract' has no attribute '{name}'")
