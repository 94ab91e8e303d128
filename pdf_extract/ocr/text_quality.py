"""
Text Normalization and OCR Candidate Scoring

Every extracted string (native or OCR) passes through normalize_whitespace before it is
compared, scored, merged, or written. Candidate scoring rewards textual plausibility
(non-whitespace length, word count) and penalizes noise-dominated output.
"""

import math
import re
import logging
from dataclasses import dataclass
from typing import Optional

from .base import OcrCandidate

logger = logging.getLogger(__name__)

_CRLF_RE = re.compile(r'\r\n?')
_HORIZONTAL_WS_RE = re.compile(r'[ \t]+')
_EXCESS_NEWLINES_RE = re.compile(r'\n{3,}')
_WHITESPACE_RE = re.compile(r'\s')

# Latin letters, digits, and the Greek and Coptic block
_USEFUL_CHAR_RE = re.compile(r'[A-Za-z0-9\u0370-\u03FF]')

MIN_USEFUL_RATIO = 0.45
NOISE_PENALTY = 40
WORD_WEIGHT = 3
CONFIDENCE_WEIGHT = 1.5


@dataclass
class TextQualityMetrics:
    """Inputs to the candidate score"""
    compact_length: int  # Non-whitespace characters
    word_count: int
    useful_ratio: float  # Alphanumeric share of compact length
    penalty: int


def normalize_whitespace(value: Optional[str]) -> str:
    """
    Canonicalize line endings and whitespace.

    - CRLF and CR become LF
    - non-breaking spaces become spaces
    - runs of spaces/tabs collapse to one space
    - three or more newlines collapse to a single blank line
    - leading/trailing whitespace is removed
    """
    if not value:
        return ""

    text = _CRLF_RE.sub('\n', str(value))
    text = text.replace('\u00a0', ' ')
    text = _HORIZONTAL_WS_RE.sub(' ', text)
    text = _EXCESS_NEWLINES_RE.sub('\n\n', text)
    return text.strip()


def compact_length(text: str) -> int:
    """Number of non-whitespace characters"""
    return len(_WHITESPACE_RE.sub('', text or ""))


def calculate_metrics(text: str) -> TextQualityMetrics:
    """Calculate the quality metrics of a (not necessarily normalized) text"""
    normalized = normalize_whitespace(text)
    compact = compact_length(normalized)
    useful = len(_USEFUL_CHAR_RE.findall(normalized))
    words = len(normalized.split())
    useful_ratio = useful / compact if compact > 0 else 0.0
    penalty = NOISE_PENALTY if useful_ratio < MIN_USEFUL_RATIO else 0

    return TextQualityMetrics(
        compact_length=compact,
        word_count=words,
        useful_ratio=useful_ratio,
        penalty=penalty
    )


def score_text(text: str) -> int:
    """
    Base quality score of an OCR text.

    score = compact_length + 3 * word_count - penalty, where the penalty of 40 applies
    when fewer than 45% of non-whitespace characters are letters or digits.
    """
    metrics = calculate_metrics(text)
    return metrics.compact_length + metrics.word_count * WORD_WEIGHT - metrics.penalty


def confidence_boost(confidence: Optional[float]) -> int:
    """Selection bonus for engine-reported mean confidence (0-100)"""
    if not confidence:
        return 0
    # Round half up
    return int(math.floor(confidence * CONFIDENCE_WEIGHT + 0.5))


def score_candidate(
    text: str,
    confidence: Optional[float],
    variant: str = "",
    pass_name: str = ""
) -> OcrCandidate:
    """Score one OCR result: base quality score plus the confidence selection boost"""
    quality_score = score_text(text)
    return OcrCandidate(
        text=text,
        confidence=confidence,
        quality_score=quality_score,
        score=quality_score + confidence_boost(confidence),
        variant=variant,
        pass_name=pass_name
    )
