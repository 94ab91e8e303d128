"""
OCR Package
Rasterization, image variants, OCR passes, candidate scoring and escalation
"""

from .base import OCREngine, OCRResult, OCRPassConfig, ImageVariant, OcrCandidate, EscalationOutcome
from .config import ProcessingProfile, VariantLabel, get_variant_labels
from .text_quality import normalize_whitespace, score_text, score_candidate

__all__ = [
    'OCREngine',
    'OCRResult',
    'OCRPassConfig',
    'ImageVariant',
    'OcrCandidate',
    'EscalationOutcome',
    'ProcessingProfile',
    'VariantLabel',
    'get_variant_labels',
    'normalize_whitespace',
    'score_text',
    'score_candidate',
    'EscalationController',
    'ImagePreprocessor',
    'PdftoppmRasterizer',
]


# Lazy imports keep OpenCV and PIL out of callers that only need scoring/config
def __getattr__(name):
    if name == "EscalationController":
        from .escalation import EscalationController
        return EscalationController
    if name == "ImagePreprocessor":
        from .image_preprocessor import ImagePreprocessor
        return ImagePreprocessor
    if name == "PdftoppmRasterizer":
        from .rasterizer import PdftoppmRasterizer
        return PdftoppmRasterizer
    raise AttributeError(f"module 'pdf_extract.ocr' has no attribute '{name}'")
