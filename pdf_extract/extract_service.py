"""
Hybrid PDF Text Extraction Service

Extracts each page's native text layer and falls back to OCR on pages whose native
text is sparse, then assembles every page into a Word document.

Pages are processed strictly one at a time: at most one external process (pdftoppm or
tesseract) runs per request. All temporary files live in a request-scoped directory
that is removed on every exit path; each page's bitmaps live in a nested directory
removed as soon as the page is done.
"""

import re
import logging
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .docx_builder import DocxBuilder
from .errors import InputInvalidError
from .options import ExtractionOptions, normalize_options
from .pdf_processor import PDFProcessor
from .progress import ProgressCallback, safe_progress_update
from .resource_path import RuntimeStatus, assert_runtime_available, inspect_runtime_dependencies
from .settings import ExtractionSettings, get_settings
from .text_merger import merge_page_text
from .ocr.base import OCREngine
from .ocr.escalation import EscalationController
from .ocr.image_preprocessor import ImagePreprocessor
from .ocr.rasterizer import PdftoppmRasterizer, get_default_rasterizer
from .ocr.text_quality import compact_length

logger = logging.getLogger(__name__)

EngineFactory = Callable[[List[str]], OCREngine]


@dataclass(frozen=True)
class PageResult:
    """Final text of one page"""
    page_number: int  # 1-based
    text: str
    used_ocr_fallback: bool


@dataclass
class ExtractionRun:
    """All page results of one extraction request, in page order"""
    source_name: str
    page_count: int
    pages: List[PageResult] = field(default_factory=list)

    @property
    def ocr_page_numbers(self) -> List[int]:
        return [page.page_number for page in self.pages if page.used_ocr_fallback]

    @property
    def pages_with_ocr_fallback(self) -> int:
        return len(self.ocr_page_numbers)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_name": self.source_name,
            "page_count": self.page_count,
            "pages_with_ocr_fallback": self.pages_with_ocr_fallback,
            "ocr_page_numbers": self.ocr_page_numbers,
        }


def safe_file_name(source_name: str) -> str:
    """Basename of source_name with whitespace replaced, usable inside the temp directory"""
    name = Path(source_name or "").name or "source.pdf"
    return re.sub(r'\s+', '-', name)


class HybridExtractService:
    """Runs the hybrid native/OCR extraction pipeline"""

    def __init__(
        self,
        settings: Optional[ExtractionSettings] = None,
        engine_factory: Optional[EngineFactory] = None,
        rasterizer: Optional[PdftoppmRasterizer] = None,
        preprocessor: Optional[ImagePreprocessor] = None,
        runtime_check: Optional[Callable[[], RuntimeStatus]] = None
    ):
        """
        Args:
            settings: Deployment settings (defaults to the loaded settings file)
            engine_factory: Builds an OCR engine for a language list (defaults to Tesseract)
            rasterizer: Page rasterizer (defaults to pdftoppm)
            preprocessor: Image variant generator
            runtime_check: Returns the OCR runtime status before any page work
        """
        self.settings = settings or get_settings()
        self.engine_factory = engine_factory or self._default_engine_factory
        self.rasterizer = rasterizer or get_default_rasterizer(self.settings)
        self.preprocessor = preprocessor or ImagePreprocessor(threshold_level=self.settings.threshold_level)
        self.runtime_check = runtime_check or self._default_runtime_check

    def _default_engine_factory(self, languages: List[str]) -> OCREngine:
        from .ocr.engines.tesseract_engine import TesseractEngine

        return TesseractEngine(
            languages,
            engine_mode=self.settings.engine_mode,
            timeout=self.settings.subprocess_timeout_seconds,
            command=self.settings.tesseract_command
        )

    def _default_runtime_check(self) -> RuntimeStatus:
        return inspect_runtime_dependencies(
            tesseract_command=self.settings.tesseract_command,
            pdftoppm_command=self.settings.pdftoppm_command
        )

    def extract(
        self,
        data: bytes,
        source_name: str,
        options: Optional[Dict[str, Any]] = None,
        progress_callback: Optional[ProgressCallback] = None
    ) -> bytes:
        """
        Extract a PDF into DOCX bytes.

        Args:
            data: Raw PDF bytes
            source_name: Original file name
            options: Raw extraction options (validated here)
            progress_callback: Receives {progress, step, metadata} updates

        Returns:
            DOCX document bytes

        Raises:
            ExtractionError: INPUT_INVALID, PDF_PARSE_FAILED, OCR_RUNTIME_MISSING,
                OCR_FAILED or DOCX_GENERATION_FAILED
        """
        normalized = normalize_options(options, self.settings)
        run = self.run(data, source_name, normalized, progress_callback)

        safe_progress_update(progress_callback, {
            "progress": 90,
            "step": "Generating Word document",
            "metadata": {"total_pages": run.page_count},
        })

        builder = DocxBuilder(
            include_page_breaks=normalized.include_page_breaks,
            include_confidence_markers=normalized.include_confidence_markers
        )
        document = builder.build(run.source_name, run.pages)

        safe_progress_update(progress_callback, {
            "progress": 100,
            "step": "Word document generated",
            "metadata": {
                "total_pages": run.page_count,
                "pages_with_ocr_fallback": run.pages_with_ocr_fallback,
            },
        })
        return document

    def run(
        self,
        data: bytes,
        source_name: str,
        options: ExtractionOptions,
        progress_callback: Optional[ProgressCallback] = None
    ) -> ExtractionRun:
        """
        Extract every page's text.

        Returns:
            ExtractionRun with one PageResult per PDF page, in page order
        """
        if not isinstance(data, (bytes, bytearray)):
            raise InputInvalidError(
                "Provide exactly one PDF file",
                details=[{"field": "file", "issue": "A single PDF file is required"}]
            )
        source_name = source_name or "document.pdf"
        if len(data) == 0:
            raise InputInvalidError(
                f'File "{source_name}" is empty',
                details=[{"field": "file", "issue": f'File "{source_name}" is empty'}]
            )

        assert_runtime_available(self.runtime_check())

        safe_progress_update(progress_callback, {
            "progress": 15,
            "step": "Loading source PDF",
            "metadata": {
                "source_file_name": source_name,
                "ocr_mode": options.ocr_mode,
                "languages": list(options.languages),
                "processing_profile": options.processing_profile,
            },
        })

        start_time = time.time()
        pdf = PDFProcessor(bytes(data), source_name=source_name)
        pdf.open()
        engine: Optional[OCREngine] = None

        try:
            total_pages = pdf.get_page_count()
            run = ExtractionRun(source_name=source_name, page_count=total_pages)

            safe_progress_update(progress_callback, {
                "progress": 20,
                "step": "Extracting page text",
                "metadata": {"total_pages": total_pages},
            })

            with tempfile.TemporaryDirectory(prefix=self.settings.temp_dir_prefix) as temp_dir:
                temp_path = Path(temp_dir)
                pdf_path = temp_path / safe_file_name(source_name)
                pdf_path.write_bytes(bytes(data))

                controller: Optional[EscalationController] = None

                for page_number in range(1, total_pages + 1):
                    native_text = pdf.extract_native_text(page_number)
                    native_chars = compact_length(native_text)
                    should_ocr = native_chars < options.min_native_chars_per_page

                    ocr_text = ""
                    if should_ocr:
                        if controller is None:
                            engine = self.engine_factory(options.languages)
                            engine.initialize()
                            controller = EscalationController(engine, self.settings)

                        logger.info(
                            f"Page {page_number}/{total_pages}: {native_chars} native characters "
                            f"< {options.min_native_chars_per_page}, running OCR"
                        )
                        ocr_text = self._ocr_page(controller, pdf_path, page_number, options, temp_path)

                    run.pages.append(PageResult(
                        page_number=page_number,
                        text=merge_page_text(native_text, ocr_text),
                        used_ocr_fallback=should_ocr
                    ))

                    safe_progress_update(progress_callback, {
                        "progress": min(85, int(20 + (page_number / total_pages) * 65 + 0.5)),
                        "step": f"Extracted text from page {page_number} of {total_pages}",
                        "metadata": {
                            "total_pages": total_pages,
                            "current_page": page_number,
                            "used_ocr_fallback": should_ocr,
                            "processing_profile": options.processing_profile,
                        },
                    })
        finally:
            if engine is not None:
                engine.cleanup()
            pdf.close()

        logger.info(
            f"Extracted {source_name}: {run.page_count} pages, "
            f"{run.pages_with_ocr_fallback} with OCR, {time.time() - start_time:.1f}s"
        )
        return run

    def _ocr_page(
        self,
        controller: EscalationController,
        pdf_path: Path,
        page_number: int,
        options: ExtractionOptions,
        temp_path: Path
    ) -> str:
        """Rasterize, preprocess and OCR one page; its bitmaps are deleted on return"""
        profile = options.processing_profile

        with tempfile.TemporaryDirectory(prefix=f"page-{page_number}-", dir=temp_path) as page_dir:
            image_path = self.rasterizer.render_page(
                pdf_path, page_number, self.settings.dpi_for(profile), Path(page_dir)
            )
            variants = self.preprocessor.generate_variants(image_path, page_number, Path(page_dir), profile)
            outcome = controller.run(variants, profile, page_number)

        return outcome.text


def extract(
    data: bytes,
    source_name: str,
    options: Optional[Dict[str, Any]] = None,
    progress_callback: Optional[ProgressCallback] = None,
    settings: Optional[ExtractionSettings] = None
) -> bytes:
    """
    Extract a PDF to DOCX bytes with the default Tesseract/pdftoppm runtime.

    Raises:
        ExtractionError: See HybridExtractService.extract
    """
    return HybridExtractService(settings=settings).extract(data, source_name, options, progress_callback)
