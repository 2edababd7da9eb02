"""Tests for CLI commands."""

import io
import zipfile
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from snaprename.cli import _collect_codes, cli
from snaprename.models.rename import RenameSuggestion


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI runner for testing."""
    return CliRunner()


def mock_chat_model(*filenames: str) -> MagicMock:
    """Chat model whose structured output replies with the given filenames in turn."""
    responses = [
        {"raw": MagicMock(usage_metadata=None), "parsed": RenameSuggestion(filename=name), "parsing_error": None}
        for name in filenames
    ]
    structured = MagicMock()
    structured.ainvoke = AsyncMock(side_effect=responses)
    llm = MagicMock()
    llm.with_structured_output.return_value = structured
    return llm


class TestCollectCodes:
    """Tests for the _collect_codes helper."""

    def test_options_only(self):
        assert _collect_codes(("A1", "A2"), None) == "A1\nA2"

    def test_options_then_file(self, tmp_path: Path):
        codes_file = tmp_path / "codes.txt"
        codes_file.write_text("B1\n\nB2\n")

        assert _collect_codes(("A1",), str(codes_file)) == "A1\nB1\n\nB2\n"


class TestMatch:
    """Tests for the match command."""

    def test_single_code_matches_all(self, runner: CliRunner) -> None:
        with runner.isolated_filesystem():
            Path("photo1.jpg").write_bytes(b"jpeg")
            Path("photo2.jpg").write_bytes(b"jpeg")

            result = runner.invoke(cli, ["match", "-c", "L41086600", "photo1.jpg", "photo2.jpg"])

            assert result.exit_code == 0
            assert "photo1.jpg" in result.output
            assert "L41086600" in result.output

    def test_unmatched_image_fails(self, runner: CliRunner) -> None:
        with runner.isolated_filesystem():
            Path("A1_x.jpg").write_bytes(b"jpeg")
            Path("B_y.jpg").write_bytes(b"jpeg")

            result = runner.invoke(cli, ["match", "-c", "A1", "-c", "A2", "A1_x.jpg", "B_y.jpg"])

            assert result.exit_code == 1
            assert "B_y.jpg" in result.output

    def test_codes_file(self, runner: CliRunner) -> None:
        with runner.isolated_filesystem():
            Path("codes.txt").write_text("A1\nA2\n")
            Path("A2_y.jpg").write_bytes(b"jpeg")

            result = runner.invoke(cli, ["match", "--codes-file", "codes.txt", "A2_y.jpg"])

            assert result.exit_code == 0
            assert "A2" in result.output

    def test_no_codes(self, runner: CliRunner) -> None:
        with runner.isolated_filesystem():
            Path("photo1.jpg").write_bytes(b"jpeg")

            result = runner.invoke(cli, ["match", "photo1.jpg"])

            assert result.exit_code == 1
            assert "Please provide at least one item code." in result.output


class TestRename:
    """Tests for the rename command."""

    def test_writes_archive(self, runner: CliRunner, png_bytes: bytes) -> None:
        llm = mock_chat_model("L41086600_front.png")

        with runner.isolated_filesystem():
            Path("photo1.png").write_bytes(png_bytes)

            with patch("snaprename.cli.init_chat_model", return_value=llm) as init_model:
                result = runner.invoke(cli, ["rename", "-c", "L41086600", "photo1.png", "-o", "out.zip"])

            assert result.exit_code == 0, result.output
            init_model.assert_called_once_with(model="gpt-5.1")
            with zipfile.ZipFile(io.BytesIO(Path("out.zip").read_bytes())) as zf:
                assert zf.namelist() == ["L41086600_front.png"]
                assert zf.read("L41086600_front.png") == png_bytes
            # Originals stay in place
            assert Path("photo1.png").exists()
            assert "Token Usage Summary (partly estimated):" in result.output
            assert "LLM calls: 1" in result.output

    def test_model_from_environment(self, runner: CliRunner, png_bytes: bytes) -> None:
        llm = mock_chat_model("L1_front.png")

        with runner.isolated_filesystem():
            Path("photo1.png").write_bytes(png_bytes)

            with patch("snaprename.cli.init_chat_model", return_value=llm) as init_model:
                result = runner.invoke(
                    cli, ["rename", "-c", "L1", "photo1.png"], env={"SNAPRENAME_MODEL": "my-vision-model"}
                )

            assert result.exit_code == 0, result.output
            init_model.assert_called_once_with(model="my-vision-model")

    def test_gating_error_exits(self, runner: CliRunner, png_bytes: bytes) -> None:
        llm = mock_chat_model()

        with runner.isolated_filesystem():
            Path("A1_x.png").write_bytes(png_bytes)
            Path("B_y.png").write_bytes(png_bytes)

            with patch("snaprename.cli.init_chat_model", return_value=llm):
                result = runner.invoke(cli, ["rename", "-c", "A1", "-c", "A2", "A1_x.png", "B_y.png"])

            assert result.exit_code == 1
            assert "Could not find a matching item code" in result.output
            assert not Path("renamed_images.zip").exists()

    def test_failed_items_reported(self, runner: CliRunner, png_bytes: bytes) -> None:
        structured = MagicMock()
        structured.ainvoke = AsyncMock(side_effect=RuntimeError("quota exceeded"))
        llm = MagicMock()
        llm.with_structured_output.return_value = structured

        with runner.isolated_filesystem():
            Path("photo1.png").write_bytes(png_bytes)

            with patch("snaprename.cli.init_chat_model", return_value=llm):
                result = runner.invoke(cli, ["rename", "-c", "L1", "photo1.png"])

            assert result.exit_code == 0, result.output
            assert "quota exceeded" in result.output
            assert "No archive written" in result.output
            assert "1 of 1 image(s) could not be renamed." in result.output
            assert not Path("renamed_images.zip").exists()

    def test_token_usage_can_be_hidden(self, runner: CliRunner, png_bytes: bytes) -> None:
        llm = mock_chat_model("L1_front.png")

        with runner.isolated_filesystem():
            Path("photo1.png").write_bytes(png_bytes)

            with patch("snaprename.cli.init_chat_model", return_value=llm):
                result = runner.invoke(cli, ["rename", "-c", "L1", "photo1.png", "--no-show-token-usage"])

            assert result.exit_code == 0, result.output
            assert "Token Usage Summary" not in result.output
            assert "could not be renamed" not in result.output

    def test_help_shows_options(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["rename", "--help"])

        assert result.exit_code == 0
        assert "--codes-file" in result.output
        assert "--max-concurrency" in result.output
        assert "renamed_images.zip" in result.output


class TestServe:
    """Tests for the serve command."""

    def test_launches_streamlit(self, runner: CliRunner) -> None:
        with patch("snaprename.cli.subprocess.run", return_value=MagicMock(returncode=0)) as run:
            result = runner.invoke(cli, ["serve", "--port", "9000"])

        assert result.exit_code == 0
        command = run.call_args.args[0]
        assert command[1:4] == ["-m", "streamlit", "run"]
        assert command[4].endswith("app.py")
        assert command[-2:] == ["--server.port", "9000"]
