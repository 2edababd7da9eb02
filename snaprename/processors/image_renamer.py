"""Descriptive image naming using a vision-capable LLM."""

import asyncio
import base64
import re
import time
from pathlib import PurePath

from langchain.chat_models.base import BaseChatModel
from langchain.messages import HumanMessage, SystemMessage
from rich.console import Console
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from snaprename.models.rename import RenameSuggestion
from snaprename.previews import guess_extension, render_png
from snaprename.prompts import IMAGE_RENAME_SYSTEM_PROMPT
from snaprename.tokens import TokenUsage, estimate_request_tokens


# Console for rich output
console = Console()

DEFAULT_MODEL_IDENTIFIER = "gpt-5.1"

# Environment variable overriding the model for the CLI and the web app
MODEL_ENVVAR = "SNAPRENAME_MODEL"

# Images are downscaled before upload; product details stay legible at this size
DEFAULT_MAX_IMAGE_DIMENSION = 1024

# Each image is attempted once per run. Raise this to retry rate-limited calls.
DEFAULT_MAX_ATTEMPTS = 1

# Extensions accepted as-is on a suggested filename
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tif", ".tiff", ".webp"}

_UNSAFE_CHARS = re.compile(r"[\\/:*?\"<>|\x00-\x1f]+")

# MIME types for images sent unconverted when PyMuPDF cannot decode them
IMAGE_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
}


class RenameServiceError(RuntimeError):
    """Raised when the model's reply cannot be turned into a filename."""


def sanitize_filename(suggested: str, item_code: str, extension: str | None) -> str:
    """Turn a model-suggested name into a safe filename.

    Path separators and characters that are invalid on common filesystems are
    replaced with underscores, in the name and in ``item_code`` alike. The
    name is prefixed with the item code if the model dropped it, and
    ``extension`` is appended when the name carries no image extension.
    """
    name = _UNSAFE_CHARS.sub("_", suggested.strip()).strip(" ._")
    if not name:
        return ""

    code = _UNSAFE_CHARS.sub("_", item_code.strip())
    if not name.startswith(code):
        name = f"{code}_{name}"

    if extension and PurePath(name).suffix.lower() not in IMAGE_EXTENSIONS:
        name += extension

    return name


class ImageRenamer:
    """Rename service that asks a chat model to describe each product image.

    Instances are callable as ``await renamer(content, item_code)`` and can be
    handed straight to a ``BatchProcessor``.
    """

    def __init__(
        self,
        llm: BaseChatModel,
        max_image_dimension: int = DEFAULT_MAX_IMAGE_DIMENSION,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        usage: TokenUsage | None = None,
    ) -> None:
        """Initialize the image renamer.

        Args:
            llm: LangChain chat model with image input support.
            max_image_dimension: Longest edge, in pixels, of the image sent to the model.
            max_attempts: Attempts per call, including the first. 1 disables retries.
            usage: Token usage tracker to record calls into. A new one is created if omitted.
        """
        self.llm = llm
        self.max_image_dimension = max_image_dimension
        self.max_attempts = max_attempts
        self.usage = usage if usage is not None else TokenUsage()

    async def __call__(self, content: bytes, item_code: str) -> str:
        return await self.rename(content, item_code)

    def _encode_image(self, content: bytes, extension: str | None) -> str:
        """Encode an image as a data URL for the model.

        The image is downscaled to a PNG when PyMuPDF can decode it. Formats it
        cannot decode, such as WebP, are sent unchanged with their own MIME type.
        """
        try:
            data, mime_type = render_png(content, self.max_image_dimension), "image/png"
        except Exception:
            mime_type = IMAGE_MIME_TYPES.get(extension)
            if mime_type is None:
                raise
            data = content
        return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"

    def _build_messages(self, image_url: str, item_code: str, extension: str | None) -> tuple[list, str]:
        """Build the chat messages for one image.

        Returns:
            The messages and the text part of the user message.
        """
        extension_hint = f"The original file extension is '{extension}'." if extension else ""
        user_text = f"""Please suggest a filename for the attached product photo.

## Item code:
{item_code}

{extension_hint}
"""
        messages = [
            SystemMessage(content=IMAGE_RENAME_SYSTEM_PROMPT),
            HumanMessage(
                content=[
                    {"type": "text", "text": user_text},
                    {"type": "image_url", "image_url": {"url": image_url}},
                ]
            ),
        ]
        return messages, user_text

    async def _invoke_with_retry(self, model, messages, description: str) -> dict:
        """Invoke the model, retrying on any error up to ``max_attempts`` times."""

        def _log_retry(retry_state) -> None:
            wait_time = getattr(retry_state.next_action, "sleep", 0) if retry_state.next_action else 0
            console.print(
                f"  [yellow]Rate limited or error for {description}. Retrying in {wait_time:.1f}s "
                f"(attempt {retry_state.attempt_number}/{self.max_attempts})...[/yellow]"
            )

        @retry(
            retry=retry_if_exception_type(Exception),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=2, min=4, max=120),
            before_sleep=_log_retry,
            reraise=True,
        )
        async def _invoke():
            return await model.ainvoke(messages)

        return await _invoke()

    async def rename(self, content: bytes, item_code: str) -> str:
        """Suggest a descriptive filename for one image.

        Args:
            content: Raw image bytes.
            item_code: Item code the image belongs to.

        Returns:
            The suggested filename, including an extension when one is known.

        Raises:
            RenameServiceError: If the model reply is unparseable or yields an empty name.
            Exception: Whatever the model client raises once attempts are exhausted.
        """
        extension = guess_extension(content)
        # Decoding and re-encoding is CPU bound; keep it off the event loop.
        image_url = await asyncio.to_thread(self._encode_image, content, extension)
        messages, user_text = self._build_messages(image_url, item_code, extension)
        description = f"item {item_code}"

        model = self.llm.with_structured_output(RenameSuggestion, include_raw=True)

        console.print(f"  [dim]Invoking LLM for {description}...[/dim]")
        start_time = time.time()

        response = await self._invoke_with_retry(model, messages, description)

        raw = response.get("raw")
        self.usage.add_usage_metadata(
            getattr(raw, "usage_metadata", None),
            fallback_input_tokens=estimate_request_tokens(IMAGE_RENAME_SYSTEM_PROMPT + user_text),
            description=description,
        )

        suggestion = response.get("parsed")
        if suggestion is None:
            raise RenameServiceError(f"Could not parse the model's filename suggestion: {response.get('parsing_error')}")

        filename = sanitize_filename(suggestion.filename, item_code, extension)
        if not filename:
            raise RenameServiceError("The model returned an empty filename.")

        elapsed = time.time() - start_time
        console.print(f"  [green]Named {description} '{filename}' in {elapsed:.1f}s[/green]")

        return filename
