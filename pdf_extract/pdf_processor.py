"""
PDF Processing Service
Opens PDF documents and extracts their embedded (native) text layer page by page
"""

import fitz  # PyMuPDF
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union
import logging

from .errors import PdfParseError
from .ocr.text_quality import normalize_whitespace, compact_length

logger = logging.getLogger(__name__)

# get_text("dict") block type for text (1 = image)
TEXT_BLOCK = 0


class PDFProcessor:
    """Handles PDF document opening and native text extraction"""

    def __init__(self, source: Union[bytes, str, Path], source_name: Optional[str] = None):
        """
        Args:
            source: Raw PDF bytes or a path to a PDF file
            source_name: Display name used in logs and errors
        """
        self.source = source
        if source_name:
            self.source_name = source_name
        elif isinstance(source, (str, Path)):
            self.source_name = Path(source).name
        else:
            self.source_name = "document.pdf"
        self.doc: Optional[fitz.Document] = None

    def open(self):
        """
        Open the PDF document.

        Raises:
            PdfParseError: If the document cannot be parsed, is encrypted, or has no pages
        """
        try:
            if isinstance(self.source, (bytes, bytearray)):
                self.doc = fitz.open(stream=bytes(self.source), filetype="pdf")
            else:
                self.doc = fitz.open(str(self.source), filetype="pdf")
        except Exception as e:
            logger.error(f"Failed to open PDF {self.source_name}: {e}")
            raise PdfParseError(
                f'File "{self.source_name}" could not be parsed as PDF',
                details=[{"field": "file", "issue": f'File "{self.source_name}" is not a readable PDF'}]
            ) from e

        if self.doc.needs_pass:
            self.close()
            raise PdfParseError(
                f'File "{self.source_name}" is password protected',
                details=[{"field": "file", "issue": "Encrypted PDFs are not supported"}]
            )

        if self.doc.page_count < 1:
            self.close()
            raise PdfParseError("Uploaded PDF has no readable pages")

        logger.info(f"Opened PDF: {self.source_name}, Pages: {self.doc.page_count}")

    def close(self):
        """Close the PDF document"""
        if self.doc:
            self.doc.close()
            self.doc = None

    def get_page_count(self) -> int:
        """Get total number of pages"""
        if not self.doc:
            raise ValueError("Document not opened")
        return self.doc.page_count

    def iter_text_tokens(self, page_number: int) -> Iterator[Tuple[str, bool]]:
        """
        Yield the page's text tokens in document order.

        Args:
            page_number: Page number (1-based)

        Yields:
            (token, end_of_line) pairs; end_of_line is True on the last token of each line
        """
        if not self.doc:
            raise ValueError("Document not opened")

        page = self.doc[page_number - 1]
        content = page.get_text("dict", flags=fitz.TEXTFLAGS_DICT | fitz.TEXT_PRESERVE_WHITESPACE)

        for block in content.get("blocks", []):
            if block.get("type") != TEXT_BLOCK:
                continue
            for line in block.get("lines", []):
                spans = line.get("spans", [])
                for index, span in enumerate(spans):
                    yield span.get("text", ""), index == len(spans) - 1

    def extract_native_text(self, page_number: int) -> str:
        """
        Extract the embedded text of a page.

        Tokens are joined with spaces and a line break is inserted at every end of line,
        then the result is normalized. Lines holding only whitespace are dropped.

        Args:
            page_number: Page number (1-based)

        Returns:
            Normalized native text (possibly empty)
        """
        lines: List[str] = []
        current: List[str] = []
        for token, end_of_line in self.iter_text_tokens(page_number):
            token = token.strip()
            if token:
                current.append(token)
            if end_of_line:
                if current:
                    lines.append(" ".join(current))
                current = []
        if current:
            lines.append(" ".join(current))

        text = normalize_whitespace("\n".join(lines))
        logger.debug(f"Page {page_number}: {compact_length(text)} native characters")
        return text

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
