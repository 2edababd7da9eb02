"""Concurrent renaming of matched images."""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping

from rich.console import Console
from tqdm import tqdm

from snaprename.models.item import ImageItem, ItemStatus
from snaprename.models.rename import BatchResult
from snaprename.store import ItemStore


# Console for rich output
console = Console()

# Image bytes + item code -> suggested filename
RenameFunction = Callable[[bytes, str], Awaitable[str]]

GENERIC_ERROR_MESSAGE = "An unknown error occurred during processing."


def _error_message(error: BaseException) -> str:
    return str(error).strip() or GENERIC_ERROR_MESSAGE


class BatchProcessor:
    """Drives matched images from pending to a terminal status.

    All rename calls of a run are started together and awaited as a set. A
    failing call only marks its own item as errored; there is no retry and no
    cancellation.
    """

    def __init__(
        self,
        store: ItemStore,
        rename: RenameFunction,
        max_concurrency: int | None = None,
        show_progress: bool = False,
    ) -> None:
        """Initialize the batch processor.

        Args:
            store: Item store holding the images to process.
            rename: Async rename service, called as ``rename(content, item_code)``.
            max_concurrency: Maximum rename calls in flight. None means no limit.
            show_progress: Display a progress bar while items resolve.
        """
        self.store = store
        self.rename = rename
        self.max_concurrency = max_concurrency
        self.show_progress = show_progress

    def _start(self, assignments: Mapping[str, str | None]) -> list[ImageItem]:
        """Move every pending assigned item to processing in a single store update."""
        pending_ids = [
            item_id
            for item_id in assignments
            if item_id in self.store and self.store.get(item_id).status == ItemStatus.PENDING
        ]
        return self.store.update_many(pending_ids, lambda item: item.start_processing())

    async def _process_item(
        self,
        item: ImageItem,
        item_code: str | None,
        semaphore: asyncio.Semaphore | None,
    ) -> ImageItem:
        if not item_code:
            message = f"Internal Error: Could not find item code for {item.original_name}."
            console.print(f"[bold red]{message}[/bold red]")
            return self.store.update(item.id, lambda current: current.fail(message))

        try:
            if semaphore is None:
                new_name = await self.rename(item.content, item_code)
            else:
                async with semaphore:
                    new_name = await self.rename(item.content, item_code)
        except Exception as e:
            console.print(f"  [red]Error processing {item.original_name}: {e}[/red]")
            message = _error_message(e)
            return self.store.update(item.id, lambda current: current.fail(message))

        new_name = (new_name or "").strip()
        if not new_name:
            message = f"The rename service returned an empty filename for {item.original_name}."
            console.print(f"  [red]{message}[/red]")
            return self.store.update(item.id, lambda current: current.fail(message))

        return self.store.update(item.id, lambda current: current.complete(new_name))

    async def iter_outcomes(
        self,
        assignments: Mapping[str, str | None],
        on_start: Callable[[list[ImageItem]], None] | None = None,
    ) -> AsyncIterator[ImageItem]:
        """Process assigned items, yielding each terminal item as it resolves.

        Args:
            assignments: Mapping of item id to item code, as produced by ``match_items``.
                Items that are not pending are skipped.
            on_start: Called with the processing snapshots once every item has been
                moved to processing, before any rename call is made.

        Yields:
            Completed or errored item snapshots, in completion order.
        """
        started = self._start(assignments)
        if not started:
            return
        if on_start is not None:
            on_start(started)

        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
        tasks = [
            asyncio.create_task(self._process_item(item, assignments.get(item.id), semaphore))
            for item in started
        ]

        console.print(f"[bold]Processing {len(tasks)} image(s)...[/bold]")
        with tqdm(total=len(tasks), desc="Renaming images...", disable=not self.show_progress) as progress:
            for next_done in asyncio.as_completed(tasks):
                outcome = await next_done
                progress.update(1)
                yield outcome

    async def process(self, assignments: Mapping[str, str | None]) -> BatchResult:
        """Process assigned items and wait until every one has resolved.

        Returns:
            BatchResult with the completed and failed item snapshots.
        """
        result = BatchResult()
        async for item in self.iter_outcomes(assignments):
            if item.status == ItemStatus.COMPLETED:
                result.completed.append(item)
            else:
                result.failed.append(item)

        console.print(
            f"[bold green]All images processed.[/bold green] "
            f"{len(result.completed)} renamed, {len(result.failed)} failed."
        )
        return result
