"""Image item data models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ItemStatus(str, Enum):
    """Processing status of a single uploaded image."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ItemStatus.COMPLETED, ItemStatus.ERROR)


# Allowed status changes. Terminal states have no outgoing transitions.
ALLOWED_TRANSITIONS: dict[ItemStatus, frozenset[ItemStatus]] = {
    ItemStatus.PENDING: frozenset({ItemStatus.PROCESSING}),
    ItemStatus.PROCESSING: frozenset({ItemStatus.COMPLETED, ItemStatus.ERROR}),
    ItemStatus.COMPLETED: frozenset(),
    ItemStatus.ERROR: frozenset(),
}


class InvalidTransitionError(ValueError):
    """Raised when an item is asked to move to a status it cannot reach."""


class ImageItem(BaseModel):
    """An uploaded image tracked through matching and renaming.

    Items are immutable. Status changes return a new item which replaces the
    previous one in the item store.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier, stable for the item's lifetime")
    original_name: str = Field(description="Filename the image was uploaded with")
    content: bytes = Field(description="Raw image bytes", repr=False)
    new_name: str = Field(description="Assigned name, empty until a rename succeeds", default="")
    status: ItemStatus = Field(description="Current processing status", default=ItemStatus.PENDING)
    error_message: str | None = Field(description="Failure message, set only in the error state", default=None)

    @model_validator(mode="after")
    def _check_outcome_fields(self) -> "ImageItem":
        if self.status == ItemStatus.COMPLETED:
            if not self.new_name or self.error_message:
                raise ValueError("A completed item must have a new name and no error message.")
        elif self.status == ItemStatus.ERROR:
            if not self.error_message or self.new_name:
                raise ValueError("An errored item must have an error message and no new name.")
        elif self.new_name or self.error_message:
            raise ValueError(f"A {self.status.value} item cannot carry a new name or error message.")
        return self

    def __str__(self) -> str:
        return f"ImageItem('{self.original_name}', status={self.status.value})"

    def _transition(self, status: ItemStatus, **changes) -> "ImageItem":
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Cannot move '{self.original_name}' from {self.status.value} to {status.value}."
            )
        # model_copy skips validation, so re-validate the new state explicitly.
        return ImageItem.model_validate({**self.model_dump(), **changes, "status": status})

    def start_processing(self) -> "ImageItem":
        return self._transition(ItemStatus.PROCESSING)

    def complete(self, new_name: str) -> "ImageItem":
        return self._transition(ItemStatus.COMPLETED, new_name=new_name)

    def fail(self, error_message: str) -> "ImageItem":
        return self._transition(ItemStatus.ERROR, error_message=error_message)


def parse_item_codes(text: str) -> list[str]:
    """Parse raw multi-line input into the ordered list of item codes.

    Lines are trimmed and blank lines dropped. Duplicates are kept.
    """
    return [line.strip() for line in text.splitlines() if line.strip()]
