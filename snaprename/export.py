"""Zip packaging of renamed images."""

import io
import zipfile
from collections.abc import Iterable
from pathlib import PurePath

from snaprename.models.item import ImageItem, ItemStatus


ARCHIVE_FILENAME = "renamed_images.zip"


def unique_archive_names(names: Iterable[str]) -> list[str]:
    """Make archive entry names unique, in order.

    Only the final path component of each name is kept. Repeated names get a
    numeric suffix on the stem: ``a.jpg``, ``a-1.jpg``, ``a-2.jpg``.
    """
    used: set[str] = set()
    unique: list[str] = []
    for name in names:
        base = PurePath(name.replace("\\", "/")).name
        candidate, counter = base, 1
        while candidate in used:
            path = PurePath(base)
            candidate = f"{path.stem}-{counter}{path.suffix}"
            counter += 1
        used.add(candidate)
        unique.append(candidate)
    return unique


def build_archive(items: Iterable[ImageItem]) -> bytes | None:
    """Package every completed item under its new name into a zip archive.

    Images are stored without recompression.

    Returns:
        The archive bytes, or None if no item is completed.
    """
    completed = [item for item in items if item.status == ItemStatus.COMPLETED]
    if not completed:
        return None

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_STORED) as archive:
        for item, name in zip(completed, unique_archive_names(item.new_name for item in completed)):
            archive.writestr(name, item.content)

    return buffer.getvalue()
