"""
Image Variant Generation for OCR

Produces preprocessed versions of a rasterized page so OCR passes can compete:
- raw: the rasterized bitmap as rendered
- normalized: grayscale with contrast stretched to the full range
- threshold: normalized, binarized at a fixed gray level (maximum/ultra)
- sharpened: normalized, median-denoised and unsharp-masked (ultra)
"""

import cv2
import numpy as np
import logging
from pathlib import Path
from typing import Callable, Dict, List

from .base import ImageVariant
from .config import DEFAULT_THRESHOLD_LEVEL, VariantLabel, get_variant_labels
from ..errors import OcrFailedError

logger = logging.getLogger(__name__)


class ImagePreprocessor:
    """Generates the OCR image variants for a processing profile"""

    def __init__(self, threshold_level: int = DEFAULT_THRESHOLD_LEVEL, median_kernel: int = 3):
        """
        Args:
            threshold_level: Gray level (0-255) separating ink from paper in the threshold variant
            median_kernel: Aperture of the median denoise applied before sharpening (odd)
        """
        self.threshold_level = threshold_level
        self.median_kernel = median_kernel

        self._builders: Dict[str, Callable[[np.ndarray], np.ndarray]] = {
            VariantLabel.NORMALIZED: lambda normalized: normalized,
            VariantLabel.THRESHOLD: self._binarize,
            VariantLabel.SHARPENED: lambda normalized: self._sharpen(self._denoise(normalized)),
        }

    def generate_variants(
        self,
        raw_image_path: Path,
        page_number: int,
        output_dir: Path,
        profile: str
    ) -> List[ImageVariant]:
        """
        Write the profile's variants next to the raw bitmap.

        Args:
            raw_image_path: Rasterized page bitmap
            page_number: Page number (1-based), used in file names
            output_dir: Directory receiving the variant files
            profile: Processing profile

        Returns:
            Variants in order raw, normalized[, threshold][, sharpened]

        Raises:
            OcrFailedError: If the raw bitmap cannot be decoded or a variant cannot be written
        """
        raw_image_path = Path(raw_image_path)
        variants = [ImageVariant(VariantLabel.RAW, raw_image_path)]

        labels = get_variant_labels(profile)
        image = cv2.imread(str(raw_image_path), cv2.IMREAD_UNCHANGED)
        if image is None:
            raise OcrFailedError(
                f"Rasterized page image could not be decoded for page {page_number}",
                page_number=page_number
            )

        normalized = self._normalize_contrast(self._to_grayscale(image))

        for label in labels[1:]:
            processed = self._builders[label](normalized)
            variant_path = Path(output_dir) / f"page-{page_number}-{label}.png"
            if not cv2.imwrite(str(variant_path), processed):
                raise OcrFailedError(
                    f"Failed to write {label} image variant for page {page_number}",
                    page_number=page_number
                )
            variants.append(ImageVariant(label, variant_path))

        logger.debug(f"Page {page_number}: generated variants {[v.label for v in variants]}")
        return variants

    def _to_grayscale(self, image: np.ndarray) -> np.ndarray:
        """Convert BGR/BGRA to single-channel grayscale"""
        if len(image.shape) == 2:
            return image
        if image.shape[2] == 4:
            return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

    def _normalize_contrast(self, gray: np.ndarray) -> np.ndarray:
        """
        Stretch intensities to the full 0-255 range.

        Faded scans and gray backgrounds end up with black ink on white paper.
        """
        if gray.dtype != np.uint8:
            gray = cv2.convertScaleAbs(gray, alpha=255.0 / max(float(gray.max()), 1.0))
        return cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX)

    def _binarize(self, image: np.ndarray) -> np.ndarray:
        """Global threshold: pixels above threshold_level become white, the rest black"""
        _, binary = cv2.threshold(image, self.threshold_level, 255, cv2.THRESH_BINARY)
        return binary

    def _denoise(self, image: np.ndarray) -> np.ndarray:
        """Median filter removes salt-and-pepper speckle while keeping stroke edges"""
        return cv2.medianBlur(image, self.median_kernel)

    def _sharpen(self, image: np.ndarray) -> np.ndarray:
        """
        Sharpen image to improve edge clarity

        Uses unsharp masking - enhances edges without amplifying noise
        """
        blurred = cv2.GaussianBlur(image, (0, 0), 3)

        # Unsharp mask: original + (original - blurred) * amount
        return cv2.addWeighted(image, 1.5, blurred, -0.5, 0)
