"""
Resource Path Resolution and Runtime Dependency Check

Resolves the external binaries the pipeline depends on (Tesseract, poppler's pdftoppm),
preferring copies bundled under bin/ and falling back to the system PATH, and reports
which binaries and Tesseract language packs are missing.
"""

import os
import sys
import shutil
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from .errors import OcrRuntimeMissingError

logger = logging.getLogger(__name__)

CHECK_TIMEOUT_SECONDS = 15


@dataclass(frozen=True)
class RuntimeDependency:
    """An external binary the pipeline shells out to"""
    name: str
    display_name: str
    bundle_dir: str  # Directory under bin/ holding a bundled copy
    version_args: tuple
    install_hint: str


TESSERACT = RuntimeDependency(
    name="tesseract",
    display_name="Tesseract OCR",
    bundle_dir="tesseract",
    version_args=("--version",),
    install_hint="Install Tesseract OCR (e.g. apt-get install tesseract-ocr tesseract-ocr-ell)"
)

PDFTOPPM = RuntimeDependency(
    name="pdftoppm",
    display_name="Poppler pdftoppm",
    bundle_dir="poppler",
    version_args=("-v",),
    install_hint="Install Poppler (e.g. apt-get install poppler-utils)"
)

RUNTIME_DEPENDENCIES = (TESSERACT, PDFTOPPM)


@dataclass
class RuntimeStatus:
    """Result of probing the OCR runtime"""
    available: bool
    missing_commands: List[RuntimeDependency] = field(default_factory=list)
    missing_languages: List[str] = field(default_factory=list)
    resolved_commands: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "available": self.available,
            "missing_commands": [
                {"command": dep.name, "display_name": dep.display_name, "install_hint": dep.install_hint}
                for dep in self.missing_commands
            ],
            "missing_languages": list(self.missing_languages),
            "resolved_commands": dict(self.resolved_commands),
        }


def get_base_path() -> Path:
    """
    Get the base path for the application.

    In development this is the repository root (the parent of the pdf_extract package).
    When frozen (PyInstaller or similar) it is the directory holding the executable.
    """
    if getattr(sys, 'frozen', False):
        base_path = Path(sys.executable).parent
    else:
        base_path = Path(__file__).parent.parent

    logger.debug(f"Base path resolved to: {base_path}")
    return base_path


def get_bin_path() -> Path:
    """Path to the bin/ directory containing bundled binaries"""
    return get_base_path() / "bin"


def _executable_name(command: str) -> str:
    return f"{command}.exe" if os.name == 'nt' else command


def get_bundled_command(dependency: RuntimeDependency, command: Optional[str] = None) -> Optional[Path]:
    """
    Path to a bundled copy of a dependency, if one exists.

    Args:
        dependency: Dependency to look up
        command: Executable name override (defaults to dependency.name)
    """
    candidate = get_bin_path() / dependency.bundle_dir / _executable_name(command or dependency.name)
    if candidate.exists():
        logger.debug(f"Found bundled {dependency.display_name} at: {candidate}")
        return candidate
    return None


def get_tessdata_path() -> Optional[Path]:
    """Bundled tessdata directory if present, otherwise None (system default applies)"""
    bundled_tessdata = get_bin_path() / TESSERACT.bundle_dir / "tessdata"
    if bundled_tessdata.is_dir():
        return bundled_tessdata
    return None


def resolve_command(dependency: RuntimeDependency, command: Optional[str] = None) -> Optional[str]:
    """
    Resolve an executable: bundled copy first, then PATH.

    Args:
        dependency: Dependency to resolve
        command: Configured command name or absolute path (defaults to dependency.name)

    Returns:
        Absolute path to the executable, or None if it cannot be found
    """
    command = command or dependency.name

    bundled = get_bundled_command(dependency, command)
    if bundled:
        return str(bundled)

    return shutil.which(command)


def setup_tesseract_environment() -> None:
    """Point TESSDATA_PREFIX at bundled language data when it is shipped with the app"""
    tessdata = get_tessdata_path()
    if tessdata and os.environ.get('TESSDATA_PREFIX') != str(tessdata):
        os.environ['TESSDATA_PREFIX'] = str(tessdata)
        logger.info(f"Set TESSDATA_PREFIX to: {tessdata}")


def is_command_available(executable: str, args: Iterable[str]) -> bool:
    """Run the executable with its version flag and report whether it exits with status 0"""
    try:
        completed = subprocess.run(
            [executable, *args],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=CHECK_TIMEOUT_SECONDS
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f"Version check of {executable} failed: {e}")
        return False
    return completed.returncode == 0


def get_installed_languages(tesseract_executable: str) -> Set[str]:
    """
    Language packs reported by `tesseract --list-langs`.

    Returns:
        Set of language codes (empty if the listing fails)
    """
    try:
        completed = subprocess.run(
            [tesseract_executable, "--list-langs"],
            capture_output=True,
            text=True,
            timeout=CHECK_TIMEOUT_SECONDS
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"Could not list Tesseract languages: {e}")
        return set()

    if completed.returncode != 0:
        return set()

    # Older versions print the list on stderr
    output = completed.stdout or completed.stderr or ""
    return {
        line.strip()
        for line in output.splitlines()
        if line.strip() and not line.strip().startswith("List of available languages")
    }


def inspect_runtime_dependencies(
    tesseract_command: str = TESSERACT.name,
    pdftoppm_command: str = PDFTOPPM.name,
    required_languages: Optional[Iterable[str]] = None
) -> RuntimeStatus:
    """
    Check the rasterizer and OCR engine binaries.

    Args:
        tesseract_command: Configured Tesseract command
        pdftoppm_command: Configured pdftoppm command
        required_languages: Language packs to check for (skipped if None)

    Returns:
        RuntimeStatus; available is False when any binary is missing.
        Missing language packs are reported but do not make the runtime unavailable.
    """
    configured = {TESSERACT.name: tesseract_command, PDFTOPPM.name: pdftoppm_command}
    status = RuntimeStatus(available=True)

    for dependency in RUNTIME_DEPENDENCIES:
        executable = resolve_command(dependency, configured[dependency.name])
        if executable and is_command_available(executable, dependency.version_args):
            status.resolved_commands[dependency.name] = executable
        else:
            logger.warning(f"{dependency.display_name} binary is not available")
            status.missing_commands.append(dependency)

    status.available = not status.missing_commands

    tesseract_executable = status.resolved_commands.get(TESSERACT.name)
    if required_languages is not None and tesseract_executable:
        installed = get_installed_languages(tesseract_executable)
        status.missing_languages = [lang for lang in required_languages if lang not in installed]
        if status.missing_languages:
            logger.warning(f"Missing Tesseract language packs: {status.missing_languages}")

    return status


def assert_runtime_available(status: RuntimeStatus) -> None:
    """
    Raise if the runtime check found missing binaries.

    Raises:
        OcrRuntimeMissingError: With one detail entry per missing binary
    """
    if status.available:
        return

    raise OcrRuntimeMissingError(
        "OCR runtime dependencies are missing. Install tesseract and poppler (pdftoppm).",
        details=[
            {"field": dep.name, "issue": f"{dep.display_name} binary is not available in PATH"}
            for dep in status.missing_commands
        ]
    )
