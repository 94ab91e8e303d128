"""
Extraction Settings - Deployment Configuration Management

Manages deployment-tunable settings for the extraction pipeline:
- Rasterization DPI per processing profile
- Native-text thresholds and escalation thresholds per profile
- External binary names and subprocess timeouts
- Default extraction options
"""

import os
import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from .ocr.config import (
    DEFAULT_ACCEPTANCE_THRESHOLDS,
    DEFAULT_DPI_BY_PROFILE,
    DEFAULT_ENGINE_MODE,
    DEFAULT_LANGUAGES,
    DEFAULT_MIN_NATIVE_CHARS_BY_PROFILE,
    DEFAULT_THRESHOLD_LEVEL,
    SUPPORTED_LANGUAGES,
    ProcessingProfile,
)

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "PDF_EXTRACT_SETTINGS"


@dataclass
class ExtractionSettings:
    """Deployment-level extraction settings."""

    # Profile tables
    dpi_by_profile: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_DPI_BY_PROFILE))
    min_native_chars_by_profile: Dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_MIN_NATIVE_CHARS_BY_PROFILE)
    )
    acceptance_thresholds: Dict[str, Optional[int]] = field(
        default_factory=lambda: dict(DEFAULT_ACCEPTANCE_THRESHOLDS)
    )

    # Preprocessing
    threshold_level: int = DEFAULT_THRESHOLD_LEVEL

    # External binaries
    tesseract_command: str = "tesseract"
    pdftoppm_command: str = "pdftoppm"
    engine_mode: int = DEFAULT_ENGINE_MODE
    subprocess_timeout_seconds: float = 120.0  # 0 disables the timeout
    max_error_output_chars: int = 300

    # Temporary storage
    temp_dir_prefix: str = "pdf-extract-"

    # Languages and default options
    allowed_languages: List[str] = field(default_factory=lambda: list(SUPPORTED_LANGUAGES))
    default_languages: List[str] = field(default_factory=lambda: list(DEFAULT_LANGUAGES))
    default_profile: str = ProcessingProfile.ULTRA
    default_include_page_breaks: bool = True
    default_include_confidence_markers: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExtractionSettings':
        """Create from dictionary, merging partial profile tables over the defaults."""
        valid_keys = set(cls.__dataclass_fields__.keys())
        filtered_data = {k: v for k, v in data.items() if k in valid_keys}

        settings = cls()
        for key, value in filtered_data.items():
            current = getattr(settings, key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged = dict(current)
                merged.update(value)
                setattr(settings, key, merged)
            else:
                setattr(settings, key, value)
        return settings

    def dpi_for(self, profile: str) -> int:
        return self.dpi_by_profile[profile]

    def min_native_chars_for(self, profile: str) -> int:
        return self.min_native_chars_by_profile[profile]

    def acceptance_threshold_for(self, profile: str) -> Optional[int]:
        return self.acceptance_thresholds.get(profile)


def get_default_settings_file() -> Path:
    """Settings file location: $PDF_EXTRACT_SETTINGS, else <base>/config/extract_settings.json"""
    override = os.environ.get(SETTINGS_ENV_VAR)
    if override:
        return Path(override)

    from .resource_path import get_base_path
    return get_base_path() / "config" / "extract_settings.json"


class SettingsManager:
    """
    Manager for loading and validating extraction settings.

    Settings are stored in a JSON file so thresholds can be tuned per deployment.
    """

    def __init__(self, settings_file: Optional[Path] = None):
        """
        Initialize settings manager.

        Args:
            settings_file: Path to settings JSON file (None for default)
        """
        self.settings_file = Path(settings_file) if settings_file else get_default_settings_file()
        self.settings = ExtractionSettings()
        self.load()

        logger.info(f"Extraction settings manager initialized (file: {self.settings_file})")

    def load(self) -> bool:
        """
        Load settings from file. Missing or invalid files leave the defaults in place.

        Returns:
            True if loaded successfully
        """
        if not self.settings_file.exists():
            logger.info("No settings file found, using defaults")
            return False

        try:
            with open(self.settings_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("settings file must contain a JSON object")

            loaded = ExtractionSettings.from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Failed to load settings from {self.settings_file}: {e}")
            logger.info("Using default settings")
            return False

        previous = self.settings
        self.settings = loaded
        valid, error = self.validate()
        if not valid:
            logger.error(f"Invalid settings in {self.settings_file}: {error}")
            logger.info("Using default settings")
            self.settings = previous
            return False

        logger.info(f"Loaded settings from {self.settings_file}")
        return True

    def get(self) -> ExtractionSettings:
        """Get current settings."""
        return self.settings

    def validate(self) -> tuple[bool, Optional[str]]:
        """
        Validate current settings.

        Returns:
            Tuple of (is_valid, error_message)
        """
        settings = self.settings

        type_error = _find_type_error(settings)
        if type_error:
            return False, type_error

        for table_name in ("dpi_by_profile", "min_native_chars_by_profile"):
            table = getattr(settings, table_name)
            missing = [p for p in ProcessingProfile.ALL if p not in table]
            if missing:
                return False, f"{table_name} is missing profiles: {missing}"

        dpis = [settings.dpi_by_profile[p] for p in ProcessingProfile.ALL]
        if any(dpi <= 0 for dpi in dpis) or dpis != sorted(dpis):
            return False, "dpi_by_profile must be positive and non-decreasing with profile"

        thresholds = [
            settings.acceptance_thresholds.get(p)
            for p in ProcessingProfile.ALL
            if p != ProcessingProfile.FAST
        ]
        if any(t is None for t in thresholds) or thresholds != sorted(thresholds):
            return False, "acceptance_thresholds must be set and non-decreasing for non-fast profiles"

        if not 0 <= settings.threshold_level <= 255:
            return False, "threshold_level must be between 0 and 255"

        if settings.subprocess_timeout_seconds < 0:
            return False, "subprocess_timeout_seconds must not be negative"

        if settings.default_profile not in ProcessingProfile.ALL:
            return False, f"default_profile must be one of {list(ProcessingProfile.ALL)}"

        unknown = [lang for lang in settings.default_languages if lang not in settings.allowed_languages]
        if not settings.default_languages or unknown:
            return False, "default_languages must be a non-empty subset of allowed_languages"

        return True, None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _find_type_error(settings: ExtractionSettings) -> Optional[str]:
    """Describe the first field whose JSON type does not match the default, if any"""
    defaults = ExtractionSettings()

    for name in ExtractionSettings.__dataclass_fields__:
        value = getattr(settings, name)
        default = getattr(defaults, name)

        if isinstance(default, bool):
            valid = isinstance(value, bool)
        elif _is_number(default):
            valid = _is_number(value)
        elif isinstance(default, dict):
            # Profile tables hold integers (None marks "never escalate")
            valid = isinstance(value, dict) and all(
                (v is None and k in default and default[k] is None)
                or (isinstance(v, int) and not isinstance(v, bool))
                for k, v in value.items()
            )
        elif isinstance(default, list):
            valid = isinstance(value, list) and all(isinstance(v, str) for v in value)
        else:
            valid = isinstance(value, type(default))

        if not valid:
            return f"{name} has an invalid type: {value!r}"
    return None


# Singleton instance
_settings_manager_instance = None


def get_settings_manager() -> SettingsManager:
    """
    Get singleton settings manager instance.

    Returns:
        SettingsManager instance
    """
    global _settings_manager_instance
    if _settings_manager_instance is None:
        _settings_manager_instance = SettingsManager()
    return _settings_manager_instance


def get_settings() -> ExtractionSettings:
    """
    Get current extraction settings.

    Returns:
        ExtractionSettings instance
    """
    return get_settings_manager().get()
