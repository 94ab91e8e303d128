"""Shared pytest fixtures for the extraction tests"""

import logging

import pytest

from pdf_extract.settings import ExtractionSettings

from .fixtures_extract import DENSE_TEXT, FakeRasterizer, make_pdf, write_page_image


@pytest.fixture
def settings():
    """Default settings, independent of any settings file on the machine"""
    return ExtractionSettings()


@pytest.fixture
def dense_pdf():
    """Three pages of dense native text"""
    return make_pdf([DENSE_TEXT, DENSE_TEXT, DENSE_TEXT])


@pytest.fixture
def scanned_pdf():
    """One page with no native text"""
    return make_pdf([None])


@pytest.fixture
def fake_rasterizer():
    return FakeRasterizer()


@pytest.fixture
def page_image(tmp_path):
    return write_page_image(tmp_path / "page-1.png")


@pytest.fixture(autouse=True)
def debug_logging(caplog):
    caplog.set_level(logging.DEBUG, logger="pdf_extract")
