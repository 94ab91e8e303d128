"""
Unit Tests for executable resolution and the OCR runtime check

subprocess and shutil.which are mocked; no binaries need to be installed.
"""

import os
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from pdf_extract import resource_path
from pdf_extract.errors import OcrRuntimeMissingError
from pdf_extract.resource_path import (
    PDFTOPPM,
    TESSERACT,
    RuntimeStatus,
    assert_runtime_available,
    get_installed_languages,
    inspect_runtime_dependencies,
    is_command_available,
    resolve_command,
)


def _completed(returncode=0, stdout="", stderr=""):
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def empty_bin(tmp_path, monkeypatch):
    """No bundled binaries"""
    monkeypatch.setattr(resource_path, "get_bin_path", lambda: tmp_path / "bin")
    return tmp_path / "bin"


class TestResolveCommand:

    @pytest.mark.skipif(os.name == "nt", reason="bundled executables carry .exe on Windows")
    def test_prefers_bundled_copy(self, empty_bin):
        bundled = empty_bin / "poppler" / "pdftoppm"
        bundled.parent.mkdir(parents=True)
        bundled.write_text("")

        with patch.object(resource_path.shutil, "which", return_value="/usr/bin/pdftoppm") as which:
            assert resolve_command(PDFTOPPM) == str(bundled)
            which.assert_not_called()

    def test_falls_back_to_path(self, empty_bin):
        with patch.object(resource_path.shutil, "which", return_value="/usr/bin/tesseract"):
            assert resolve_command(TESSERACT) == "/usr/bin/tesseract"

    def test_not_found(self, empty_bin):
        with patch.object(resource_path.shutil, "which", return_value=None):
            assert resolve_command(TESSERACT, "tesseract-custom") is None


class TestRuntimeInspection:

    def test_command_available(self):
        with patch.object(resource_path.subprocess, "run", return_value=_completed(0)) as run:
            assert is_command_available("/usr/bin/tesseract", ("--version",))
        assert run.call_args[0][0] == ["/usr/bin/tesseract", "--version"]

    def test_command_exits_non_zero(self):
        with patch.object(resource_path.subprocess, "run", return_value=_completed(1)):
            assert not is_command_available("/usr/bin/tesseract", ("--version",))

    def test_command_cannot_start(self):
        with patch.object(resource_path.subprocess, "run", side_effect=FileNotFoundError()):
            assert not is_command_available("/missing", ("-v",))

    def test_command_times_out(self):
        with patch.object(resource_path.subprocess, "run",
                          side_effect=subprocess.TimeoutExpired(cmd="pdftoppm", timeout=15)):
            assert not is_command_available("/usr/bin/pdftoppm", ("-v",))

    def test_installed_languages(self):
        output = "List of available languages in \"/usr/share/tessdata/\" (3):\neng\nell\nosd\n"
        with patch.object(resource_path.subprocess, "run", return_value=_completed(0, stdout=output)):
            assert get_installed_languages("/usr/bin/tesseract") == {"eng", "ell", "osd"}

    def test_installed_languages_listing_failure(self):
        with patch.object(resource_path.subprocess, "run", side_effect=OSError("boom")):
            assert get_installed_languages("/usr/bin/tesseract") == set()


class TestInspectRuntimeDependencies:

    def test_all_available(self, empty_bin):
        with patch.object(resource_path.shutil, "which", side_effect=lambda cmd: f"/usr/bin/{cmd}"), \
                patch.object(resource_path.subprocess, "run", return_value=_completed(0, stdout="eng\nell\n")):
            status = inspect_runtime_dependencies(required_languages=["eng", "ell"])

        assert status.available
        assert status.missing_commands == []
        assert status.missing_languages == []
        assert status.resolved_commands == {"tesseract": "/usr/bin/tesseract", "pdftoppm": "/usr/bin/pdftoppm"}

    def test_missing_pdftoppm(self, empty_bin):
        def which(cmd):
            return "/usr/bin/tesseract" if cmd == "tesseract" else None

        with patch.object(resource_path.shutil, "which", side_effect=which), \
                patch.object(resource_path.subprocess, "run", return_value=_completed(0)):
            status = inspect_runtime_dependencies()

        assert not status.available
        assert status.missing_commands == [PDFTOPPM]

    def test_missing_language_does_not_block(self, empty_bin):
        with patch.object(resource_path.shutil, "which", side_effect=lambda cmd: f"/usr/bin/{cmd}"), \
                patch.object(resource_path.subprocess, "run", return_value=_completed(0, stdout="eng\n")):
            status = inspect_runtime_dependencies(required_languages=["eng", "ell"])

        assert status.available
        assert status.missing_languages == ["ell"]
        assert status.to_dict()["missing_languages"] == ["ell"]

    def test_assert_runtime_available(self):
        assert_runtime_available(RuntimeStatus(available=True))

        with pytest.raises(OcrRuntimeMissingError) as exc_info:
            assert_runtime_available(RuntimeStatus(available=False, missing_commands=[TESSERACT, PDFTOPPM]))

        assert exc_info.value.code == "OCR_RUNTIME_MISSING"
        assert [d["field"] for d in exc_info.value.details] == ["tesseract", "pdftoppm"]
