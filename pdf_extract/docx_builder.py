"""
Word Document Assembly
Lays out extracted pages as a DOCX document with python-docx
"""

import io
import re
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from docx import Document

from .errors import DocxGenerationError
from .ocr.text_quality import normalize_whitespace

logger = logging.getLogger(__name__)

DOCUMENT_TITLE = "PDF Text Extraction"
OCR_FALLBACK_MARKER = "[OCR fallback applied on this page]"
EMPTY_PAGE_TEXT = "No readable text found on this page."

# Control characters XML 1.0 cannot carry (tab, LF and CR are allowed)
_XML_ILLEGAL_RE = re.compile('[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]')
_BLOCK_SPLIT_RE = re.compile(r'\n\n+')


def xml_safe(text: str) -> str:
    """Drop characters that cannot appear in a DOCX part"""
    return _XML_ILLEGAL_RE.sub('', text)


def split_blocks(text: str) -> List[str]:
    """Split page text into blank-line-delimited paragraphs"""
    normalized = normalize_whitespace(text)
    if not normalized:
        return []
    return [block.strip() for block in _BLOCK_SPLIT_RE.split(normalized) if block.strip()]


class DocxBuilder:
    """Builds the extraction output document"""

    def __init__(self, include_page_breaks: bool = True, include_confidence_markers: bool = False):
        self.include_page_breaks = include_page_breaks
        self.include_confidence_markers = include_confidence_markers

    def build(self, source_name: str, pages: Sequence, generated_at: Optional[datetime] = None) -> bytes:
        """
        Serialize pages to DOCX bytes.

        Args:
            source_name: Source file name shown in the title section
            pages: PageResult-like objects (page_number, text, used_ocr_fallback)
            generated_at: Timestamp shown in the title section (defaults to now, UTC)

        Returns:
            DOCX document bytes

        Raises:
            DocxGenerationError: If the document cannot be built or serialized
        """
        generated_at = generated_at or datetime.now(timezone.utc)
        ordered = sorted(pages, key=lambda page: page.page_number)

        try:
            document = Document()
            document.add_heading(DOCUMENT_TITLE, level=1)
            document.add_paragraph(xml_safe(f"Source File: {source_name}"))
            document.add_paragraph(f"Generated At: {generated_at.isoformat()}")

            for index, page in enumerate(ordered):
                if index > 0 and self.include_page_breaks:
                    document.add_page_break()

                document.add_heading(f"Page {page.page_number}", level=2)

                if self.include_confidence_markers and page.used_ocr_fallback:
                    document.add_paragraph(OCR_FALLBACK_MARKER)

                blocks = split_blocks(page.text) or [EMPTY_PAGE_TEXT]
                for block in blocks:
                    document.add_paragraph(xml_safe(block))

            buffer = io.BytesIO()
            document.save(buffer)
        except Exception as e:
            logger.error(f"DOCX generation failed: {e}", exc_info=True)
            raise DocxGenerationError("Failed to generate Word document output") from e

        data = buffer.getvalue()
        logger.info(f"Generated DOCX for {source_name}: {len(ordered)} pages, {len(data)} bytes")
        return data
