"""
OCR Processing Profiles and Pass Definitions

Profiles trade latency for quality. Each higher profile rasterizes at a higher DPI,
generates more image variants, and demands a higher score before accepting base-pass output.
"""

import logging
from typing import Dict, List, Optional

from .base import OCRPassConfig

logger = logging.getLogger(__name__)


class ProcessingProfile:
    """Processing profiles, in increasing order of effort"""

    FAST = "fast"           # 300 DPI, 2 variants, page-layout pass only, never escalates
    QUALITY = "quality"     # 450 DPI, 2 variants, adds uniform-block pass
    MAXIMUM = "maximum"     # 600 DPI, adds threshold variant
    ULTRA = "ultra"         # 700 DPI, adds sharpened variant and single-column pass

    ALL = (FAST, QUALITY, MAXIMUM, ULTRA)


# Rasterization resolution per profile (monotonic)
DEFAULT_DPI_BY_PROFILE: Dict[str, int] = {
    ProcessingProfile.FAST: 300,
    ProcessingProfile.QUALITY: 450,
    ProcessingProfile.MAXIMUM: 600,
    ProcessingProfile.ULTRA: 700,
}

# Pages with fewer non-whitespace native characters than this are OCR'd
DEFAULT_MIN_NATIVE_CHARS_BY_PROFILE: Dict[str, int] = {
    ProcessingProfile.FAST: 24,
    ProcessingProfile.QUALITY: 48,
    ProcessingProfile.MAXIMUM: 72,
    ProcessingProfile.ULTRA: 96,
}

# Minimum base-pass score accepted without escalation. FAST never escalates.
# Tuned empirically on mixed English/Greek scans.
DEFAULT_ACCEPTANCE_THRESHOLDS: Dict[str, Optional[int]] = {
    ProcessingProfile.FAST: None,
    ProcessingProfile.QUALITY: 140,
    ProcessingProfile.MAXIMUM: 180,
    ProcessingProfile.ULTRA: 240,
}

# Gray level used to binarize the threshold variant
DEFAULT_THRESHOLD_LEVEL = 165

# Tesseract OEM 1 = LSTM only
DEFAULT_ENGINE_MODE = 1

SUPPORTED_LANGUAGES = ("eng", "ell")
DEFAULT_LANGUAGES: List[str] = ["eng", "ell"]

MAX_MIN_NATIVE_CHARS = 5000


class VariantLabel:
    """Image variant labels, in generation order"""

    RAW = "raw"
    NORMALIZED = "normalized"
    THRESHOLD = "threshold"
    SHARPENED = "sharpened"


# Page segmentation passes
PAGE_LAYOUT_PASS = OCRPassConfig(name="psm3", psm=3)
UNIFORM_BLOCK_PASS = OCRPassConfig(
    name="psm6",
    psm=6,
    extra_flags=("-c", "preserve_interword_spaces=1")
)
SPARSE_TEXT_PASS = OCRPassConfig(name="psm11", psm=11)
SINGLE_COLUMN_PASS = OCRPassConfig(name="psm4", psm=4)

# Number of variants that receive base passes
BASE_PASS_VARIANT_COUNT = 2


def profile_rank(profile: str) -> int:
    """Position of a profile in the effort ordering (0 = fast)"""
    return ProcessingProfile.ALL.index(profile)


def get_variant_labels(profile: str) -> List[str]:
    """
    Variant labels generated for a profile.

    Higher profiles always produce a superset of lower profiles' variants.
    """
    labels = [VariantLabel.RAW, VariantLabel.NORMALIZED]
    if profile_rank(profile) >= profile_rank(ProcessingProfile.MAXIMUM):
        labels.append(VariantLabel.THRESHOLD)
    if profile == ProcessingProfile.ULTRA:
        labels.append(VariantLabel.SHARPENED)
    return labels


def get_base_passes(profile: str) -> List[OCRPassConfig]:
    """Passes run on each of the first variants before any escalation"""
    if profile == ProcessingProfile.FAST:
        return [PAGE_LAYOUT_PASS]
    return [PAGE_LAYOUT_PASS, UNIFORM_BLOCK_PASS]


def get_intensive_passes(profile: str) -> List[OCRPassConfig]:
    """Passes run on every variant once the base passes are rejected"""
    if profile == ProcessingProfile.ULTRA:
        return [SPARSE_TEXT_PASS, SINGLE_COLUMN_PASS]
    return [SPARSE_TEXT_PASS]
