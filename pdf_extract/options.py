"""
Extraction Options
Validates caller-supplied options and fills per-profile defaults
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .errors import InputInvalidError
from .ocr.config import MAX_MIN_NATIVE_CHARS, ProcessingProfile
from .settings import ExtractionSettings

logger = logging.getLogger(__name__)

ALLOWED_OCR_MODES = ("hybrid",)


@dataclass(frozen=True)
class ExtractionOptions:
    """Validated options for one extraction request"""
    ocr_mode: str
    languages: List[str]
    processing_profile: str
    include_page_breaks: bool
    include_confidence_markers: bool
    min_native_chars_per_page: int


def _invalid(message: str, field_name: str, issue: str) -> InputInvalidError:
    return InputInvalidError(message, details=[{"field": field_name, "issue": issue}])


def _normalize_languages(raw_languages: Any, settings: ExtractionSettings) -> List[str]:
    if raw_languages is None:
        return list(settings.default_languages)

    if isinstance(raw_languages, str) or not isinstance(raw_languages, (list, tuple)) or not raw_languages:
        raise _invalid(
            "languages must be a non-empty list",
            "options.languages",
            "Provide at least one OCR language"
        )

    allowed = ", ".join(settings.allowed_languages)
    languages: List[str] = []
    for index, language in enumerate(raw_languages):
        code = str(language if language is not None else "").strip().lower()
        if code not in settings.allowed_languages:
            raise _invalid(
                f"Unsupported OCR language: {language}",
                f"options.languages[{index}]",
                f"Allowed values are {allowed}"
            )
        if code not in languages:
            languages.append(code)

    return languages


def _coerce_bool(raw: Any, default: bool) -> bool:
    return default if raw is None else bool(raw)


def _parse_min_native_chars(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else None
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def normalize_options(
    raw_options: Optional[Dict[str, Any]],
    settings: Optional[ExtractionSettings] = None
) -> ExtractionOptions:
    """
    Validate raw options and apply defaults.

    Args:
        raw_options: Options mapping (snake_case keys); None means all defaults
        settings: Deployment settings supplying defaults and allowed values

    Returns:
        ExtractionOptions

    Raises:
        InputInvalidError: If any option is malformed
    """
    settings = settings or ExtractionSettings()

    if raw_options is None:
        raw_options = {}
    if not isinstance(raw_options, dict):
        raise _invalid("options must be a JSON object", "options", "Expected a JSON object payload")

    ocr_mode = str(raw_options.get("ocr_mode") or "hybrid").strip().lower()
    if ocr_mode not in ALLOWED_OCR_MODES:
        raise _invalid('ocr_mode must be "hybrid"', "options.ocr_mode", "Only hybrid mode is supported")

    profile = str(raw_options.get("processing_profile") or settings.default_profile).strip().lower()
    if profile not in ProcessingProfile.ALL:
        raise _invalid(
            'processing_profile must be "fast", "quality", "maximum", or "ultra"',
            "options.processing_profile",
            "Allowed values are fast, quality, maximum, and ultra"
        )

    raw_min_chars = raw_options.get("min_native_chars_per_page")
    if raw_min_chars is None:
        min_native_chars = settings.min_native_chars_for(profile)
    else:
        min_native_chars = _parse_min_native_chars(raw_min_chars)
        if min_native_chars is None or not 0 <= min_native_chars <= MAX_MIN_NATIVE_CHARS:
            raise _invalid(
                f"min_native_chars_per_page must be an integer between 0 and {MAX_MIN_NATIVE_CHARS}",
                "options.min_native_chars_per_page",
                f"Value must be an integer between 0 and {MAX_MIN_NATIVE_CHARS}"
            )

    options = ExtractionOptions(
        ocr_mode=ocr_mode,
        languages=_normalize_languages(raw_options.get("languages"), settings),
        processing_profile=profile,
        include_page_breaks=_coerce_bool(
            raw_options.get("include_page_breaks"), settings.default_include_page_breaks
        ),
        include_confidence_markers=_coerce_bool(
            raw_options.get("include_confidence_markers"), settings.default_include_confidence_markers
        ),
        min_native_chars_per_page=min_native_chars,
    )

    logger.debug(f"Normalized extraction options: {options}")
    return options
