"""
Extraction Error Taxonomy
Typed errors raised by the extraction pipeline, each carrying a machine-readable code
"""

from typing import Any, Dict, List, Optional


class ExtractionError(Exception):
    """Base class for every error the extraction pipeline reports to its caller"""

    code = "EXTRACTION_FAILED"

    def __init__(self, message: str, details: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for IPC error events and progress-store failure records"""
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = list(self.details)
        return payload

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class InputInvalidError(ExtractionError):
    """Missing/empty file or malformed extraction options"""
    code = "INPUT_INVALID"


class PdfParseError(ExtractionError):
    """Document cannot be opened or has no pages"""
    code = "PDF_PARSE_FAILED"


class OcrRuntimeMissingError(ExtractionError):
    """Rasterizer or OCR engine binary is not available"""
    code = "OCR_RUNTIME_MISSING"


class OcrFailedError(ExtractionError):
    """Rasterization or OCR engine invocation failed for a specific page"""
    code = "OCR_FAILED"

    def __init__(
        self,
        message: str,
        page_number: Optional[int] = None,
        details: Optional[List[Dict[str, str]]] = None
    ):
        super().__init__(message, details)
        self.page_number = page_number


class DocxGenerationError(ExtractionError):
    """Final Word document could not be serialized"""
    code = "DOCX_GENERATION_FAILED"
