"""CLI entrypoints."""

import asyncio
import subprocess
import sys
from pathlib import Path

import click
from langchain.chat_models import init_chat_model
from langsmith import traceable
from rich.console import Console
from rich.table import Table

from snaprename.export import ARCHIVE_FILENAME
from snaprename.models.item import ItemStatus
from snaprename.processors.image_renamer import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_IMAGE_DIMENSION,
    DEFAULT_MODEL_IDENTIFIER,
    MODEL_ENVVAR,
    ImageRenamer,
)
from snaprename.session import RenameSession


console = Console()

STATUS_STYLES = {
    ItemStatus.PENDING: "dim",
    ItemStatus.PROCESSING: "yellow",
    ItemStatus.COMPLETED: "green",
    ItemStatus.ERROR: "red",
}


def _collect_codes(codes: tuple[str, ...], codes_file: str | None) -> str:
    """Join codes given as options and read from a file into one multi-line text."""
    lines = list(codes)
    if codes_file is not None:
        lines.append(Path(codes_file).read_text(encoding="utf-8"))
    return "\n".join(lines)


def _build_session(input_files: tuple[str, ...], codes: tuple[str, ...], codes_file: str | None) -> RenameSession:
    session = RenameSession()
    session.item_codes = _collect_codes(codes, codes_file)
    session.add_files((Path(f).name, Path(f).read_bytes()) for f in input_files)
    return session


def _codes_options(func):
    func = click.option(
        "-c",
        "--code",
        "codes",
        type=str,
        multiple=True,
        help="Item code. Repeat for several codes.",
    )(func)
    func = click.option(
        "--codes-file",
        type=click.Path(exists=True, dir_okay=False),
        default=None,
        help="Text file with one item code per line.",
    )(func)
    return func


@click.group(context_settings=dict(show_default=True))
def cli() -> None:
    """snaprename - Name product photos after their item codes with the help of LLMs."""
    pass


@cli.command("match")
@click.argument("input_files", type=click.Path(exists=True, dir_okay=False), nargs=-1, required=True)
@_codes_options
def match(input_files: tuple[str, ...], codes: tuple[str, ...], codes_file: str | None) -> None:
    """Show which item code each image would be assigned, without renaming anything.

    Images are matched to the first code their filename starts with. If only
    one code is given, it applies to every image.

    Examples:

        snaprename match -c L41086600 photo1.jpg photo2.jpg

        snaprename match --codes-file codes.txt *.jpg
    """
    session = _build_session(input_files, codes, codes_file)

    try:
        assignments = session.assign_codes()
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise SystemExit(1) from e

    table = Table(show_header=True, header_style="bold")
    table.add_column("Image", style="cyan")
    table.add_column("Item Code", style="magenta")

    for item in session.items:
        table.add_row(item.original_name, assignments[item.id])

    console.print(table)


@cli.command("rename")
@click.argument("input_files", type=click.Path(exists=True, dir_okay=False), nargs=-1, required=True)
@_codes_options
@click.option(
    "-o",
    "--output",
    "output_file",
    type=click.Path(dir_okay=False),
    default=ARCHIVE_FILENAME,
    help="Zip archive to write the renamed images to.",
)
@click.option(
    "--model-identifier",
    type=str,
    default=DEFAULT_MODEL_IDENTIFIER,
    envvar=MODEL_ENVVAR,
    help=f"Vision-capable LLM model to use. Can also be set with {MODEL_ENVVAR}.",
)
@click.option(
    "--max-concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum number of images named at the same time. Unlimited if not set.",
)
@click.option(
    "--max-attempts",
    type=click.IntRange(min=1),
    default=DEFAULT_MAX_ATTEMPTS,
    help="LLM call attempts per image, for rate-limited providers.",
)
@click.option(
    "--max-image-dimension",
    type=click.IntRange(min=64),
    default=DEFAULT_MAX_IMAGE_DIMENSION,
    help="Longest edge in pixels of the image sent to the LLM.",
)
@click.option("--show-token-usage/--no-show-token-usage", default=True, help="Display token usage statistics.")
@traceable
def rename(
    input_files: tuple[str, ...],
    codes: tuple[str, ...],
    codes_file: str | None,
    output_file: str,
    model_identifier: str,
    max_concurrency: int | None,
    max_attempts: int,
    max_image_dimension: int,
    show_token_usage: bool,
) -> None:
    """Rename product images with descriptive, item-code-prefixed names.

    Each image is matched to an item code by filename prefix (or to the only
    code given), described by the LLM, and saved under its new name into a
    zip archive. The original files are left untouched.

    Examples:

        snaprename rename -c L41086600 photo1.jpg photo2.jpg

        snaprename rename --codes-file codes.txt -o catalogue.zip *.jpg
    """
    console.print(
        f"Renaming [bold cyan]{len(input_files)}[/bold cyan] image(s) "
        f"using model [bold magenta]{model_identifier}[/bold magenta]..."
    )
    console.print()

    session = _build_session(input_files, codes, codes_file)

    llm = init_chat_model(model=model_identifier)
    renamer = ImageRenamer(llm=llm, max_image_dimension=max_image_dimension, max_attempts=max_attempts)

    try:
        result = asyncio.run(
            session.start_processing(renamer, max_concurrency=max_concurrency, show_progress=True)
        )
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise SystemExit(1) from e

    if result is None:
        console.print("[yellow]No pending images to process.[/yellow]")
        return

    console.print()
    console.print("[bold]Results:[/bold]")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Original", style="cyan")
    table.add_column("Status")
    table.add_column("New Name / Error")

    for item in session.items:
        style = STATUS_STYLES[item.status]
        outcome = item.new_name if item.status == ItemStatus.COMPLETED else item.error_message or ""
        table.add_row(item.original_name, f"[{style}]{item.status.value}[/{style}]", outcome)

    console.print(table)
    console.print()

    archive = session.export_archive()
    if archive is None:
        console.print("[yellow]No images were renamed. No archive written.[/yellow]")
    else:
        Path(output_file).write_bytes(archive)
        console.print(
            f"[bold green]Renamed {len(result.completed)} image(s).[/bold green] "
            f"Saved archive to [bold cyan]{output_file}[/bold cyan]."
        )

    if not result.all_succeeded:
        console.print(f"[yellow]{len(result.failed)} of {len(result)} image(s) could not be renamed.[/yellow]")

    if show_token_usage:
        console.print()
        console.print(renamer.usage.summary())


@cli.command("serve")
@click.option("--port", type=click.IntRange(min=1, max=65535), default=8501, help="Port for the web app.")
def serve(port: int) -> None:
    """Launch the browser app for pasting item codes and uploading images."""
    app_path = Path(__file__).parent / "app.py"
    console.print(f"Starting web app on port [bold cyan]{port}[/bold cyan]...")

    completed = subprocess.run(
        [sys.executable, "-m", "streamlit", "run", str(app_path), "--server.port", str(port)],
        check=False,
    )
    raise SystemExit(completed.returncode)
