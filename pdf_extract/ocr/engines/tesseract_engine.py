"""
Tesseract OCR Engine Implementation
Runs single OCR passes through the Tesseract CLI via pytesseract
"""

import logging
import time
from typing import Any, List, Optional

import pytesseract

from ..base import OCREngine, OCRResult, OCRPassConfig, ImageVariant
from ..text_quality import normalize_whitespace
from ...errors import OcrFailedError, OcrRuntimeMissingError
from ...resource_path import TESSERACT, resolve_command, setup_tesseract_environment

logger = logging.getLogger(__name__)


def parse_confidences(values: List[Any]) -> Optional[float]:
    """
    Mean of the word-level confidences in Tesseract's TSV `conf` column.

    Negative values mark non-word rows (pages, blocks, lines) and are ignored.

    Returns:
        Mean confidence 0-100, or None if no word carries a confidence
    """
    total = 0.0
    count = 0
    for value in values:
        try:
            confidence = float(value)
        except (TypeError, ValueError):
            continue
        if confidence >= 0:
            total += confidence
            count += 1

    if count == 0:
        return None
    return total / count


class TesseractEngine(OCREngine):
    """Tesseract OCR implementation (CPU-only, one subprocess per pass)"""

    def __init__(
        self,
        languages: List[str],
        engine_mode: int = 1,
        timeout: float = 0,
        command: str = "tesseract"
    ):
        super().__init__(languages, engine_mode=engine_mode, timeout=timeout)
        self.command = command

    def initialize(self) -> None:
        """Point pytesseract at the bundled or system executable"""
        if self._initialized:
            return

        setup_tesseract_environment()

        executable = resolve_command(TESSERACT, self.command)
        if not executable:
            raise OcrRuntimeMissingError(
                f"Tesseract executable not found: {self.command}",
                details=[{"field": "tesseract", "issue": "Tesseract OCR binary is not available in PATH"}]
            )

        pytesseract.pytesseract.tesseract_cmd = executable
        self._initialized = True
        logger.info(f"Tesseract engine initialized ({executable}, languages: {self.lang})")

    @property
    def lang(self) -> str:
        """Languages in Tesseract's multi-language syntax, e.g. eng+ell"""
        return '+'.join(self.languages) if self.languages else 'eng'

    def build_config(self, ocr_pass: OCRPassConfig) -> str:
        """Command-line flags for one pass"""
        flags = [f"--psm {ocr_pass.psm}", f"--oem {self.engine_mode}", *ocr_pass.extra_flags]
        return " ".join(flags)

    def run_pass(self, variant: ImageVariant, ocr_pass: OCRPassConfig) -> OCRResult:
        """
        Recognize one image variant with one segmentation mode.

        Raises:
            OcrFailedError: Tesseract exited non-zero, timed out, or produced no output
            OcrRuntimeMissingError: The Tesseract executable disappeared
        """
        if not self._initialized:
            raise RuntimeError("OCR engine not initialized")

        start_time = time.time()
        config = self.build_config(ocr_pass)

        try:
            raw_text = pytesseract.image_to_string(
                str(variant.path),
                lang=self.lang,
                config=config,
                timeout=self.timeout
            )
        except pytesseract.TesseractNotFoundError as e:
            raise OcrRuntimeMissingError(
                "Tesseract executable not found",
                details=[{"field": "tesseract", "issue": "Tesseract OCR binary is not available in PATH"}]
            ) from e
        except pytesseract.TesseractError as e:
            message = str(e.message or "").strip()[:300]
            detail = f": {message}" if message else ""
            raise OcrFailedError(f"OCR failed for {variant.label} image ({ocr_pass.name}){detail}") from e
        except (RuntimeError, OSError) as e:
            # pytesseract raises RuntimeError on timeout
            raise OcrFailedError(f"OCR failed for {variant.label} image ({ocr_pass.name}): {e}") from e

        confidence = self.read_confidence(variant, ocr_pass)

        return OCRResult(
            text=normalize_whitespace(raw_text),
            confidence=confidence,
            processing_time=time.time() - start_time
        )

    def read_confidence(self, variant: ImageVariant, ocr_pass: OCRPassConfig) -> Optional[float]:
        """
        Mean word confidence from a TSV run of the same pass.

        Best effort: any failure leaves the confidence unknown.
        """
        try:
            data = pytesseract.image_to_data(
                str(variant.path),
                lang=self.lang,
                config=self.build_config(ocr_pass),
                timeout=self.timeout,
                output_type=pytesseract.Output.DICT
            )
        except Exception as e:
            logger.debug(f"Confidence read failed for {variant.label}/{ocr_pass.name}: {e}")
            return None

        return parse_confidences(data.get('conf', []))
