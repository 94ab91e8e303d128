"""OCR Engine Implementations"""

from .tesseract_engine import TesseractEngine

__all__ = ['TesseractEngine']
