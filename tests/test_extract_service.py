"""
End-to-end tests for the hybrid extraction pipeline

PDFs are real (built with PyMuPDF) and image variants are generated with OpenCV;
only the pdftoppm and Tesseract invocations are replaced.
"""

import io
import tempfile
from unittest.mock import Mock, patch

import pytest
from docx import Document

from pdf_extract import extract_service
from pdf_extract.errors import InputInvalidError, OcrFailedError, OcrRuntimeMissingError, PdfParseError
from pdf_extract.extract_service import HybridExtractService, safe_file_name
from pdf_extract.options import normalize_options
from pdf_extract.pdf_processor import PDFProcessor

from .fixtures_extract import (
    DENSE_TEXT,
    ScriptedEngine,
    available_runtime,
    make_pdf,
    missing_runtime,
)


def words(n):
    return " ".join(["word"] * n)


class EngineFactory:
    """Records every engine the service creates"""

    def __init__(self, engine_cls=ScriptedEngine, **engine_kwargs):
        self.engine_cls = engine_cls
        self.engine_kwargs = engine_kwargs
        self.engines = []

    def __call__(self, languages):
        engine = self.engine_cls(languages, **self.engine_kwargs)
        self.engines.append(engine)
        return engine

    @property
    def calls(self):
        return [call for engine in self.engines for call in engine.calls]


@pytest.fixture
def scratch_dir(tmp_path, monkeypatch):
    """Route temporary directories into a dedicated, initially empty directory"""
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    return scratch


def make_service(settings, rasterizer, factory=None, runtime_check=available_runtime):
    return HybridExtractService(
        settings=settings,
        engine_factory=factory or EngineFactory(),
        rasterizer=rasterizer,
        runtime_check=runtime_check
    )


class TestScenarios:

    def test_native_pages_skip_ocr(self, settings, fake_rasterizer, dense_pdf):
        """Scenario A: dense native text on every page, fast profile"""
        factory = EngineFactory()
        service = make_service(settings, fake_rasterizer, factory)

        run = service.run(dense_pdf, "report.pdf", normalize_options({"processing_profile": "fast"}, settings))

        assert [p.page_number for p in run.pages] == [1, 2, 3]
        assert not any(p.used_ocr_fallback for p in run.pages)
        assert factory.engines == []
        assert fake_rasterizer.calls == []

        with PDFProcessor(dense_pdf) as pdf:
            assert [p.text for p in run.pages] == [pdf.extract_native_text(n) for n in (1, 2, 3)]

    def test_native_pages_docx(self, settings, fake_rasterizer, dense_pdf):
        service = make_service(settings, fake_rasterizer)
        data = service.extract(dense_pdf, "report.pdf", {"processing_profile": "fast"})

        document = Document(io.BytesIO(data))
        headings = [p.text for p in document.paragraphs if p.style.name == "Heading 2"]
        assert headings == ["Page 1", "Page 2", "Page 3"]

    def test_scanned_page_escalates(self, settings, fake_rasterizer, scanned_pdf):
        """Scenario B: no native text, ultra profile, weak base passes"""
        factory = EngineFactory(script={
            ("raw", "psm3"): (words(10), None),
            ("normalized", "psm6"): (words(12), 40.0),
            ("threshold", "psm11"): (words(20), None),
            ("sharpened", "psm4"): (words(30), None),
        })
        service = make_service(settings, fake_rasterizer, factory)

        run = service.run(scanned_pdf, "scan.pdf", normalize_options({"processing_profile": "ultra"}, settings))

        assert fake_rasterizer.calls == [(1, 700)]
        assert run.pages[0].used_ocr_fallback
        assert run.pages[0].text == words(30)
        assert len(factory.calls) == 4 + 8
        assert factory.engines[0].languages == ["eng", "ell"]
        assert factory.engines[0].cleaned_up

    def test_malformed_pdf(self, settings, fake_rasterizer):
        """Scenario C: parse failure before any temporary directory exists"""
        with patch.object(extract_service.tempfile, "TemporaryDirectory") as temp_dir:
            with pytest.raises(PdfParseError):
                make_service(settings, fake_rasterizer).extract(b"%PDF-1.7 garbage", "bad.pdf")

        temp_dir.assert_not_called()

    def test_missing_runtime(self, settings, fake_rasterizer, scanned_pdf):
        """Scenario D: OCR binaries absent"""
        service = make_service(settings, fake_rasterizer, runtime_check=missing_runtime)

        with pytest.raises(OcrRuntimeMissingError) as exc_info:
            service.extract(scanned_pdf, "scan.pdf")

        assert fake_rasterizer.calls == []
        assert {d["field"] for d in exc_info.value.details} == {"tesseract", "pdftoppm"}


class TestHybridExtractService:

    def test_mixed_document_only_ocrs_sparse_pages(self, settings, fake_rasterizer):
        data = make_pdf([DENSE_TEXT, None, "Page 3 footer", DENSE_TEXT])
        factory = EngineFactory(script_fn=lambda v, p: ("Scanned stamp", None))
        service = make_service(settings, fake_rasterizer, factory)

        run = service.run(data, "mixed.pdf", normalize_options({"processing_profile": "fast"}, settings))

        assert run.ocr_page_numbers == [2, 3]
        assert [call[0] for call in fake_rasterizer.calls] == [2, 3]
        assert len(factory.engines) == 1
        assert run.pages[1].text == "Scanned stamp"
        assert run.pages[2].text == "Page 3 footer\n\nScanned stamp"

    def test_min_native_chars_zero_disables_ocr(self, settings, fake_rasterizer, scanned_pdf):
        factory = EngineFactory()
        service = make_service(settings, fake_rasterizer, factory)

        run = service.run(scanned_pdf, "scan.pdf", normalize_options({"min_native_chars_per_page": 0}, settings))

        assert not run.pages[0].used_ocr_fallback
        assert run.pages[0].text == ""
        assert factory.engines == []

    def test_progress_milestones(self, settings, fake_rasterizer, dense_pdf):
        updates = []
        service = make_service(settings, fake_rasterizer)

        service.extract(dense_pdf, "report.pdf", {"processing_profile": "fast"}, progress_callback=updates.append)

        assert [u["progress"] for u in updates] == [15, 20, 42, 63, 85, 90, 100]
        assert updates[2]["metadata"]["current_page"] == 1
        assert updates[-1]["metadata"]["pages_with_ocr_fallback"] == 0

    def test_failing_progress_sink_is_ignored(self, settings, fake_rasterizer, dense_pdf):
        callback = Mock(side_effect=RuntimeError("sink down"))
        service = make_service(settings, fake_rasterizer)

        data = service.extract(dense_pdf, "report.pdf", {"processing_profile": "fast"}, progress_callback=callback)

        assert data.startswith(b"PK")
        assert callback.call_count == 7

    def test_temporary_files_removed_on_success(self, settings, fake_rasterizer, scanned_pdf, scratch_dir):
        service = make_service(settings, fake_rasterizer, EngineFactory(script_fn=lambda v, p: ("text", None)))

        service.extract(scanned_pdf, "scan file.pdf", {"processing_profile": "maximum"})

        assert fake_rasterizer.output_dirs
        assert list(scratch_dir.iterdir()) == []

    def test_ocr_failure_aborts_and_cleans_up(self, settings, fake_rasterizer, scratch_dir):
        class FailingEngine(ScriptedEngine):
            def run_pass(self, variant, ocr_pass):
                raise OcrFailedError("tesseract exited with status 1")

        data = make_pdf([DENSE_TEXT, None, None])
        factory = EngineFactory(engine_cls=FailingEngine)
        updates = []
        service = make_service(settings, fake_rasterizer, factory)

        with pytest.raises(OcrFailedError) as exc_info:
            service.extract(data, "scan.pdf", {"processing_profile": "fast"}, progress_callback=updates.append)

        assert exc_info.value.page_number == 2
        assert factory.engines[0].cleaned_up
        assert list(scratch_dir.iterdir()) == []
        assert max(u["progress"] for u in updates) < 90

    def test_invalid_options_fail_before_runtime_check(self, settings, fake_rasterizer, dense_pdf):
        runtime_check = Mock(side_effect=available_runtime)
        service = make_service(settings, fake_rasterizer, runtime_check=runtime_check)

        with pytest.raises(InputInvalidError):
            service.extract(dense_pdf, "report.pdf", {"processing_profile": "turbo"})
        runtime_check.assert_not_called()

    @pytest.mark.parametrize("data", [b"", None, "not bytes"])
    def test_missing_file(self, settings, fake_rasterizer, data):
        with pytest.raises(InputInvalidError):
            make_service(settings, fake_rasterizer).extract(data, "empty.pdf")

    def test_run_summary(self, settings, fake_rasterizer):
        data = make_pdf([DENSE_TEXT, None])
        service = make_service(settings, fake_rasterizer, EngineFactory())

        run = service.run(data, "mixed.pdf", normalize_options({"processing_profile": "fast"}, settings))

        assert run.to_dict() == {
            "source_name": "mixed.pdf",
            "page_count": 2,
            "pages_with_ocr_fallback": 1,
            "ocr_page_numbers": [2],
        }

    def test_safe_file_name(self):
        assert safe_file_name("/uploads/My Scan 01.pdf") == "My-Scan-01.pdf"
        assert safe_file_name("") == "source.pdf"
