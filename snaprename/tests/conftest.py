"""Shared fixtures."""

import pymupdf
import pytest

from snaprename.store import ItemStore


def make_png(width: int = 8, height: int = 8) -> bytes:
    """Create a small solid-color PNG image."""
    pix = pymupdf.Pixmap(pymupdf.csRGB, pymupdf.IRect(0, 0, width, height), False)
    pix.clear_with(200)
    return pix.tobytes("png")


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def store() -> ItemStore:
    """Item store with a stub preview renderer."""
    return ItemStore(preview_renderer=lambda data: b"preview:" + data)
