"""
Native/OCR Text Merging
Combines a page's native text with its OCR text without duplicating content
"""

from .ocr.text_quality import normalize_whitespace


def merge_page_text(native_text: str, ocr_text: str) -> str:
    """
    Merge native and OCR text for one page.

    When one text contains the other, the containing text wins (OCR of a page usually
    re-reads its native text plus any scanned regions). Otherwise both are kept,
    native first, separated by a blank line.

    Args:
        native_text: Normalized native text
        ocr_text: Normalized OCR text

    Returns:
        Normalized page text
    """
    native_text = normalize_whitespace(native_text)
    ocr_text = normalize_whitespace(ocr_text)

    if not native_text and not ocr_text:
        return ""
    if not native_text:
        return ocr_text
    if not ocr_text:
        return native_text
    if native_text in ocr_text:
        return ocr_text
    if ocr_text in native_text:
        return native_text

    return normalize_whitespace(f"{native_text}\n\n{ocr_text}")
