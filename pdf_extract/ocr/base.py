"""
Base OCR Engine Abstract Interface
Defines the contract that OCR engines implement, plus the value types passed between stages
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class OCRPassConfig:
    """One OCR pass: a page-segmentation mode plus pass-specific engine flags"""
    name: str  # Used in logs and candidate labels, e.g. "psm6"
    psm: int
    extra_flags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ImageVariant:
    """A preprocessed version of one rasterized page"""
    label: str  # raw, normalized, threshold, sharpened
    path: Path


@dataclass
class OCRResult:
    """Result of a single OCR pass over one image variant"""
    text: str
    confidence: Optional[float] = None  # Mean word confidence 0-100, None if unavailable
    processing_time: float = 0.0  # Processing time in seconds


@dataclass
class OcrCandidate:
    """Scored OCR output competing to become a page's OCR text"""
    text: str
    confidence: Optional[float]
    quality_score: int  # Text-only score, used for escalation decisions
    score: int  # quality_score plus confidence boost, used for selection
    variant: str = ""
    pass_name: str = ""

    @property
    def label(self) -> str:
        return f"{self.variant}-{self.pass_name}"


@dataclass
class EscalationOutcome:
    """What the escalation controller tried for a page and what it picked"""
    best: Optional[OcrCandidate]
    candidates: List[OcrCandidate] = field(default_factory=list)
    escalated: bool = False

    @property
    def text(self) -> str:
        return self.best.text if self.best else ""


class OCREngine(ABC):
    """Abstract base class for OCR engines"""

    def __init__(self, languages: List[str], engine_mode: int = 1, timeout: float = 0):
        self.languages = list(languages)
        self.engine_mode = engine_mode
        self.timeout = timeout
        self._initialized = False

    @abstractmethod
    def initialize(self) -> None:
        """
        Resolve the engine executable and verify it runs.
        Should be called before first use.
        """
        pass

    @abstractmethod
    def run_pass(self, variant: ImageVariant, ocr_pass: OCRPassConfig) -> OCRResult:
        """
        Run one OCR pass over one image variant.

        Args:
            variant: Image variant to recognize
            ocr_pass: Segmentation mode and engine flags

        Returns:
            OCRResult with normalized text and optional mean confidence

        Raises:
            OcrFailedError: If the engine fails or produces no output
        """
        pass

    def cleanup(self) -> None:
        """Release engine resources"""
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        """Check if engine has been initialized"""
        return self._initialized
