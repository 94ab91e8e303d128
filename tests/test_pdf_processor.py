"""
Unit Tests for PDF opening and native text extraction
"""

import fitz
import pytest

from pdf_extract.errors import PdfParseError
from pdf_extract.pdf_processor import PDFProcessor

from .fixtures_extract import DENSE_TEXT, make_pdf


class TestPDFProcessor:

    def test_open_from_bytes(self, dense_pdf):
        with PDFProcessor(dense_pdf, source_name="report.pdf") as pdf:
            assert pdf.get_page_count() == 3
            assert pdf.source_name == "report.pdf"

    def test_open_from_path(self, tmp_path, dense_pdf):
        path = tmp_path / "report.pdf"
        path.write_bytes(dense_pdf)

        with PDFProcessor(path) as pdf:
            assert pdf.source_name == "report.pdf"
            assert pdf.get_page_count() == 3

    def test_native_text_lines(self, dense_pdf):
        with PDFProcessor(dense_pdf) as pdf:
            text = pdf.extract_native_text(1)

        lines = text.split("\n")
        assert len(lines) == 3
        assert lines[0].startswith("Quarterly operations report")
        assert "seasonal peak" in lines[2]

    def test_blank_page_has_no_text(self, scanned_pdf):
        with PDFProcessor(scanned_pdf) as pdf:
            assert pdf.extract_native_text(1) == ""

    def test_tokens_mark_line_ends(self):
        with PDFProcessor(make_pdf(["first line\nsecond line"])) as pdf:
            tokens = list(pdf.iter_text_tokens(1))

        assert tokens
        assert sum(1 for _, end_of_line in tokens if end_of_line) == 2

    def test_text_outside_mediabox_is_ignored(self):
        doc = fitz.open()
        page = doc.new_page(width=595, height=842)
        page.insert_text((72, 72), "Visible heading")
        page.insert_text((700, 72), "Offpage marker")
        data = doc.tobytes()
        doc.close()

        with PDFProcessor(data) as pdf:
            text = pdf.extract_native_text(1)

        assert "Visible heading" in text
        assert "Offpage" not in text

    def test_malformed_bytes(self):
        with pytest.raises(PdfParseError) as exc_info:
            PDFProcessor(b"this is not a pdf", source_name="bad.pdf").open()

        assert exc_info.value.code == "PDF_PARSE_FAILED"
        assert "bad.pdf" in exc_info.value.message

    def test_encrypted_pdf(self, tmp_path):
        doc = fitz.open()
        doc.new_page().insert_text((72, 72), DENSE_TEXT)
        data = doc.tobytes(encryption=fitz.PDF_ENCRYPT_AES_256, owner_pw="owner", user_pw="secret")
        doc.close()

        with pytest.raises(PdfParseError) as exc_info:
            PDFProcessor(data).open()
        assert "password" in exc_info.value.message

    def test_unopened_document(self, dense_pdf):
        with pytest.raises(ValueError):
            PDFProcessor(dense_pdf).get_page_count()
