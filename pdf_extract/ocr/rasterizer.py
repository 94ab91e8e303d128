"""
Page Rasterizer
Renders single PDF pages to PNG bitmaps with poppler's pdftoppm
"""

import logging
import subprocess
import time
from pathlib import Path
from typing import List, Optional

from PIL import Image, UnidentifiedImageError

from ..errors import OcrFailedError, OcrRuntimeMissingError

logger = logging.getLogger(__name__)


class PdftoppmRasterizer:
    """Rasterizes one page at a time by invoking pdftoppm"""

    def __init__(
        self,
        command: str = "pdftoppm",
        timeout: float = 0,
        max_error_output_chars: int = 300
    ):
        """
        Args:
            command: pdftoppm executable name or path
            timeout: Seconds before the invocation is abandoned (0 = no limit)
            max_error_output_chars: How much stderr to carry into error messages
        """
        self.command = command
        self.timeout = timeout
        self.max_error_output_chars = max_error_output_chars

    def build_command(self, pdf_path: Path, page_number: int, dpi: int, output_prefix: Path) -> List[str]:
        return [
            self.command,
            "-f", str(page_number),
            "-l", str(page_number),
            "-singlefile",
            "-r", str(dpi),
            "-png",
            str(pdf_path),
            str(output_prefix),
        ]

    def render_page(self, pdf_path: Path, page_number: int, dpi: int, output_dir: Path) -> Path:
        """
        Render one page to a PNG.

        Args:
            pdf_path: Path to the source PDF on disk
            page_number: Page number (1-based)
            dpi: Rasterization resolution
            output_dir: Directory receiving the bitmap

        Returns:
            Path to the rendered PNG

        Raises:
            OcrFailedError: If pdftoppm fails, times out, or leaves no readable PNG
            OcrRuntimeMissingError: If the pdftoppm executable cannot be started
        """
        output_prefix = Path(output_dir) / f"page-{page_number}"
        args = self.build_command(Path(pdf_path), page_number, dpi, output_prefix)

        start_time = time.time()
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                timeout=self.timeout or None
            )
        except FileNotFoundError as e:
            raise OcrRuntimeMissingError(
                f"Rasterizer executable not found: {self.command}",
                details=[{"field": "pdftoppm", "issue": "Poppler pdftoppm binary is not available in PATH"}]
            ) from e
        except subprocess.TimeoutExpired as e:
            raise OcrFailedError(
                f"Failed to rasterize page {page_number} for OCR: timed out after {self.timeout}s",
                page_number=page_number
            ) from e

        if result.returncode != 0:
            stderr = (result.stderr or b"").decode("utf-8", errors="replace").strip()
            detail = f": {stderr[:self.max_error_output_chars]}" if stderr else ""
            raise OcrFailedError(
                f"Failed to rasterize page {page_number} for OCR{detail}",
                page_number=page_number
            )

        image_path = output_prefix.with_suffix(".png")
        self._verify_image(image_path, page_number)

        logger.debug(
            f"Rasterized page {page_number} at {dpi} DPI in {time.time() - start_time:.2f}s"
        )
        return image_path

    @staticmethod
    def _verify_image(image_path: Path, page_number: int) -> None:
        """Raise OcrFailedError unless image_path is a readable image"""
        try:
            with Image.open(image_path) as image:
                image.verify()
        except (OSError, UnidentifiedImageError) as e:
            raise OcrFailedError(
                f"Rasterized page image is missing for page {page_number}",
                page_number=page_number
            ) from e


def get_default_rasterizer(settings) -> PdftoppmRasterizer:
    """Rasterizer configured from ExtractionSettings"""
    from ..resource_path import PDFTOPPM, resolve_command

    command: Optional[str] = resolve_command(PDFTOPPM, settings.pdftoppm_command)
    return PdftoppmRasterizer(
        command=command or settings.pdftoppm_command,
        timeout=settings.subprocess_timeout_seconds,
        max_error_output_chars=settings.max_error_output_chars
    )
