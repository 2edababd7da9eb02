"""Assign item codes to uploaded images by filename prefix."""

from collections.abc import Iterable, Sequence

from snaprename.models.item import ImageItem, ItemStatus


# Number of unmatched filenames quoted back to the user
UNMATCHED_SAMPLE_SIZE = 3


class NoCodesProvidedError(ValueError):
    """Raised when the code list is empty after discarding blank lines."""

    def __init__(self) -> None:
        super().__init__("Please provide at least one item code.")


class UnmatchedItemsError(ValueError):
    """Raised when some images could not be assigned any item code.

    Attributes:
        sample: Up to ``UNMATCHED_SAMPLE_SIZE`` unmatched original filenames.
        remaining: How many unmatched images are not listed in ``sample``.
    """

    def __init__(self, unmatched_names: Sequence[str]) -> None:
        self.sample = list(unmatched_names[:UNMATCHED_SAMPLE_SIZE])
        self.remaining = max(0, len(unmatched_names) - UNMATCHED_SAMPLE_SIZE)

        extra = f" and {self.remaining} more" if self.remaining else ""
        super().__init__(
            f"Could not find a matching item code for some images (e.g., {', '.join(self.sample)}{extra}). "
            "Please ensure image filenames start with a provided item code, "
            "or provide only one item code to apply to all images."
        )


def find_matching_code(filename: str, codes: Sequence[str]) -> str | None:
    """Return the first code that ``filename`` starts with, or None."""
    for code in codes:
        code = code.strip()
        if code and filename.startswith(code):
            return code
    return None


def match_items(items: Iterable[ImageItem], codes: Sequence[str]) -> dict[str, str]:
    """Assign an item code to every pending image.

    Images are first matched by filename prefix, taking the first code in list
    order. If exactly one code was supplied, it is then applied to every image
    the prefix pass left unmatched. Any image still unmatched fails the whole
    operation; no partial assignment is returned.

    Args:
        items: Images to match. Only pending images are considered.
        codes: Ordered item codes, as produced by ``parse_item_codes``.

    Returns:
        Mapping of item id to assigned item code.

    Raises:
        NoCodesProvidedError: If ``codes`` holds no non-blank code.
        UnmatchedItemsError: If any pending image could not be assigned a code.
    """
    codes = [code.strip() for code in codes if code.strip()]
    if not codes:
        raise NoCodesProvidedError()

    assignments: dict[str, str] = {}
    unmatched: list[ImageItem] = []

    for item in items:
        if item.status != ItemStatus.PENDING:
            continue
        code = find_matching_code(item.original_name, codes)
        if code is not None:
            assignments[item.id] = code
        else:
            unmatched.append(item)

    # A single code covers a batch of generically named photos.
    if unmatched and len(codes) == 1:
        for item in unmatched:
            assignments[item.id] = codes[0]
        unmatched = []

    if unmatched:
        raise UnmatchedItemsError([item.original_name for item in unmatched])

    return assignments
