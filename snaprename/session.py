"""State and actions behind the renaming workflow."""

from collections.abc import AsyncIterator, Callable, Iterable

from rich.console import Console

from snaprename.export import build_archive
from snaprename.models.item import ImageItem, ItemStatus, parse_item_codes
from snaprename.models.rename import BatchResult
from snaprename.processors.batch_processor import BatchProcessor, RenameFunction
from snaprename.processors.matcher import match_items
from snaprename.store import ItemStore


console = Console()


class ProcessingInProgressError(RuntimeError):
    """Raised when an action is attempted while a processing run is active."""

    def __init__(self, action: str) -> None:
        super().__init__(f"Cannot {action} while images are being processed.")


class RenameSession:
    """One user's renaming workflow: item codes, uploaded images and their outcomes.

    Attributes:
        item_codes: Raw multi-line item code text, as typed by the user.
        error: Message of the last blocking error, shown once above the results.
        is_processing: True while a processing run is active.
        store: The uploaded images.
    """

    def __init__(self, store: ItemStore | None = None) -> None:
        self.item_codes = ""
        self.error: str | None = None
        self.is_processing = False
        self.store = store if store is not None else ItemStore()

    @property
    def items(self) -> list[ImageItem]:
        return self.store.items()

    @property
    def pending_count(self) -> int:
        return self.store.count(ItemStatus.PENDING)

    @property
    def completed_count(self) -> int:
        return self.store.count(ItemStatus.COMPLETED)

    def add_files(self, files: Iterable[tuple[str, bytes]]) -> list[ImageItem]:
        """Add a selection of (filename, content) pairs to the existing images."""
        self.error = None
        return self.store.add_files(files)

    def assign_codes(self) -> dict[str, str]:
        """Match every pending image to one of the current item codes.

        Raises:
            NoCodesProvidedError: If no item code has been entered.
            UnmatchedItemsError: If some image could not be matched.
        """
        try:
            assignments = match_items(self.store.items(), parse_item_codes(self.item_codes))
        except ValueError as e:
            self.error = str(e)
            raise
        self.error = None
        return assignments

    def _begin_run(self) -> dict[str, str] | None:
        """Check that a run may start and match the pending images, or return None if none is pending."""
        if self.is_processing:
            raise ProcessingInProgressError("start processing")

        if self.pending_count == 0:
            return None

        return self.assign_codes()

    async def start_processing(
        self,
        rename: RenameFunction,
        max_concurrency: int | None = None,
        show_progress: bool = False,
    ) -> BatchResult | None:
        """Match and rename every pending image.

        Returns:
            The run's BatchResult, or None if there was nothing to process.

        Raises:
            ProcessingInProgressError: If a run is already active.
            NoCodesProvidedError: If no item code has been entered. No item changes state.
            UnmatchedItemsError: If some image could not be matched. No item changes state.
        """
        assignments = self._begin_run()
        if assignments is None:
            return None

        self.is_processing = True
        try:
            processor = BatchProcessor(
                store=self.store,
                rename=rename,
                max_concurrency=max_concurrency,
                show_progress=show_progress,
            )
            return await processor.process(assignments)
        finally:
            self.is_processing = False

    async def stream_processing(
        self,
        rename: RenameFunction,
        max_concurrency: int | None = None,
        on_start: Callable[[list[ImageItem]], None] | None = None,
    ) -> AsyncIterator[ImageItem]:
        """Match and rename every pending image, yielding each item as it resolves.

        The checks of ``start_processing`` run when iteration begins, so gating
        errors are raised from the first ``__anext__`` before any item changes state.

        Args:
            rename: Async rename service, called as ``rename(content, item_code)``.
            max_concurrency: Maximum rename calls in flight. None means no limit.
            on_start: Called with the processing snapshots before any rename call is made.

        Yields:
            Completed or errored item snapshots, in completion order.
        """
        assignments = self._begin_run()
        if assignments is None:
            return

        self.is_processing = True
        try:
            processor = BatchProcessor(store=self.store, rename=rename, max_concurrency=max_concurrency)
            async for item in processor.iter_outcomes(assignments, on_start=on_start):
                yield item
        finally:
            self.is_processing = False

    def clear(self) -> None:
        """Remove every image, releasing its preview, and reset the item codes."""
        if self.is_processing:
            raise ProcessingInProgressError("clear images")

        removed = self.store.clear()
        self.item_codes = ""
        self.error = None
        console.print(f"[dim]Cleared {removed} image(s).[/dim]")

    def export_archive(self) -> bytes | None:
        """Zip every renamed image, or return None if none is renamed yet."""
        if self.is_processing:
            raise ProcessingInProgressError("download images")
        return build_archive(self.store.items())
