"""Authoritative collection of uploaded images."""

import threading
import uuid
from collections.abc import Callable, Iterable

from snaprename.models.item import ImageItem, ItemStatus
from snaprename.previews import render_preview


class ItemStore:
    """Ordered store of image items, updated one item at a time.

    Every mutation goes through a single re-entrant lock, so completion
    callbacks from concurrent rename calls are applied serially. Each update
    replaces only the item it targets.

    A preview thumbnail is rendered when an item is added and released when
    the store is cleared.
    """

    def __init__(self, preview_renderer: Callable[[bytes], bytes | None] = render_preview) -> None:
        self._items: dict[str, ImageItem] = {}
        self._previews: dict[str, bytes | None] = {}
        self._preview_renderer = preview_renderer
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        with self._lock:
            return item_id in self._items

    def _new_id(self, filename: str) -> str:
        return f"{filename}-{uuid.uuid4().hex}"

    def add_files(self, files: Iterable[tuple[str, bytes]]) -> list[ImageItem]:
        """Add newly selected files as pending items, after any existing ones.

        Args:
            files: (filename, content) pairs.

        Returns:
            The created items, in selection order.
        """
        created = [ImageItem(id=self._new_id(name), original_name=name, content=content) for name, content in files]
        previews = {item.id: self._preview_renderer(item.content) for item in created}

        with self._lock:
            for item in created:
                self._items[item.id] = item
            self._previews.update(previews)

        return created

    def get(self, item_id: str) -> ImageItem:
        with self._lock:
            return self._items[item_id]

    def items(self) -> list[ImageItem]:
        """Snapshot of all items in insertion order."""
        with self._lock:
            return list(self._items.values())

    def with_status(self, status: ItemStatus) -> list[ImageItem]:
        with self._lock:
            return [item for item in self._items.values() if item.status == status]

    def count(self, status: ItemStatus) -> int:
        return len(self.with_status(status))

    def preview(self, item_id: str) -> bytes | None:
        with self._lock:
            return self._previews.get(item_id)

    def update(self, item_id: str, change: Callable[[ImageItem], ImageItem]) -> ImageItem:
        """Replace a single item with ``change(item)`` and return the new item.

        Raises:
            KeyError: If no item has ``item_id``.
        """
        with self._lock:
            updated = change(self._items[item_id])
            self._items[item_id] = updated
            return updated

    def update_many(self, item_ids: Iterable[str], change: Callable[[ImageItem], ImageItem]) -> list[ImageItem]:
        """Apply ``change`` to several items as one step.

        Either every item is updated or, if ``change`` raises, none is.
        """
        with self._lock:
            updated = [change(self._items[item_id]) for item_id in item_ids]
            for item in updated:
                self._items[item.id] = item
            return updated

    def clear(self) -> int:
        """Remove every item and release its preview.

        Returns:
            Number of items removed.
        """
        with self._lock:
            removed = len(self._items)
            self._previews.clear()
            self._items.clear()
            return removed
