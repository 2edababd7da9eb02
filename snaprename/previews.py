"""Image rendering helpers built on PyMuPDF."""

import pymupdf
from rich.console import Console


console = Console()


# Longest edge of the thumbnail shown next to each item
DEFAULT_PREVIEW_DIMENSION = 256

# Known image signatures, checked in order against the start of the file
_IMAGE_SIGNATURES: list[tuple[bytes, str]] = [
    (b"\xff\xd8\xff", ".jpg"),
    (b"\x89PNG\r\n\x1a\n", ".png"),
    (b"GIF87a", ".gif"),
    (b"GIF89a", ".gif"),
    (b"BM", ".bmp"),
    (b"II*\x00", ".tif"),
    (b"MM\x00*", ".tif"),
]


def guess_extension(data: bytes) -> str | None:
    """Guess an image file extension from its leading bytes."""
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return ".webp"
    for signature, extension in _IMAGE_SIGNATURES:
        if data.startswith(signature):
            return extension
    return None


def render_png(data: bytes, max_dimension: int) -> bytes:
    """Decode an image and re-encode it as RGB(A) PNG no larger than ``max_dimension``.

    The image is halved until its longest edge fits, so the result can be
    somewhat smaller than requested but never larger.

    PyMuPDF raises if the data cannot be decoded as an image.
    """
    pix = pymupdf.Pixmap(data)

    # PNG output only supports gray and RGB
    if pix.colorspace is not None and pix.colorspace.n > 3:
        pix = pymupdf.Pixmap(pymupdf.csRGB, pix)

    halvings = 0
    longest_edge = max(pix.width, pix.height)
    while longest_edge > max_dimension:
        longest_edge //= 2
        halvings += 1
    if halvings:
        pix.shrink(halvings)

    return pix.tobytes("png")


def render_preview(data: bytes, max_dimension: int = DEFAULT_PREVIEW_DIMENSION) -> bytes | None:
    """Render a thumbnail for display, or None if the data is not a decodable image."""
    try:
        return render_png(data, max_dimension)
    except Exception as e:
        console.print(f"  [yellow]Could not render preview: {e}[/yellow]")
        return None
