"""Rename suggestion and batch result data models."""

from pydantic import BaseModel, Field

from snaprename.models.item import ImageItem


class RenameSuggestion(BaseModel):
    """A descriptive filename proposed for a single product image."""

    filename: str = Field(description="Suggested filename, starting with the item code, including the extension")
    description: str = Field(
        description="Short description of what the image shows (view, angle, detail)",
        default="",
    )

    def __str__(self) -> str:
        return f"RenameSuggestion('{self.filename}')"


class BatchResult(BaseModel):
    """Terminal item snapshots collected from one processing run."""

    completed: list[ImageItem] = Field(default_factory=list)
    failed: list[ImageItem] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.completed) + len(self.failed)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed
