"""Tests for the Gemini CLI generator.

subprocess.run is mocked throughout; a fake run writes to the stdout file
handle the generator passes in, as the real CLI would.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from testgen_assist.core.exceptions import (
    EmptyGenerationOutputError,
    GenerationProcessError,
    GenerationTimeoutError,
    MissingDependencyError,
)
from testgen_assist.core.workspace import TemporaryWorkspace
from testgen_assist.providers.gemini_cli import (
    OUTPUT_FILENAME,
    PROMPT_FILENAME,
    GeminiCLIGenerator,
)

RUN_PATCH = "testgen_assist.providers.gemini_cli.subprocess.run"
WHICH_PATCH = "testgen_assist.core.platform_command.shutil.which"


def _fake_run(stdout: bytes = b"", returncode: int = 0, stderr: bytes = b""):
    """Build a subprocess.run replacement writing ``stdout`` to the output file."""
    seen: dict[str, Any] = {}

    def run(command, **kwargs):
        seen["command"] = command
        seen["kwargs"] = kwargs
        seen["stdin"] = kwargs["stdin"].read()
        kwargs["stdout"].write(stdout)
        return subprocess.CompletedProcess(command, returncode, stdout=None, stderr=stderr)

    return run, seen


@pytest.fixture
def workspace(tmp_path: Path) -> TemporaryWorkspace:
    return TemporaryWorkspace(tmp_path / "temp")


@pytest.fixture(autouse=True)
def no_path_lookup():
    """Keep executable names as given."""
    with patch(WHICH_PATCH, return_value=None):
        yield


# =============================================================================
# Piped generation
# =============================================================================


class TestGenerate:
    """Tests for GeminiCLIGenerator.generate()."""

    def test_success_returns_output(self, workspace: TemporaryWorkspace) -> None:
        """The CLI's stdout becomes the generated text."""
        handle = workspace.stage("job-1")
        run, seen = _fake_run(stdout=b"# Test Plan\n")

        with patch(RUN_PATCH, side_effect=run):
            text = GeminiCLIGenerator().generate(
                "PROMPT", model="gemini-2.5-pro", timeout_ms=60000,
                workspace=workspace, handle=handle,
            )

        assert text == "# Test Plan\n"
        assert seen["command"] == ["gemini", "--model", "gemini-2.5-pro"]
        assert seen["stdin"] == b"PROMPT"
        assert seen["kwargs"]["timeout"] == 60.0

    def test_scratch_files_registered(self, workspace: TemporaryWorkspace) -> None:
        """Prompt and output files are tracked for cleanup."""
        handle = workspace.stage("job-1")
        run, _ = _fake_run(stdout=b"text")

        with patch(RUN_PATCH, side_effect=run):
            GeminiCLIGenerator().generate(
                "PROMPT", model="m", timeout_ms=1000, workspace=workspace, handle=handle
            )

        names = [path.name for path in handle.files]
        assert names == [PROMPT_FILENAME, OUTPUT_FILENAME]

        workspace.release(handle)
        assert not handle.path.exists()

    def test_extra_args_and_cwd(self, workspace: TemporaryWorkspace, tmp_path: Path) -> None:
        """Configured extra arguments follow the model; cwd is passed through."""
        handle = workspace.stage("job-1")
        run, seen = _fake_run(stdout=b"text")

        with patch(RUN_PATCH, side_effect=run):
            GeminiCLIGenerator(extra_args=["--yolo"], cwd=tmp_path).generate(
                "PROMPT", model="m", timeout_ms=1000, workspace=workspace, handle=handle
            )

        assert seen["command"] == ["gemini", "--model", "m", "--yolo"]
        assert seen["kwargs"]["cwd"] == tmp_path

    def test_timeout_maps_to_generation_timeout(self, workspace: TemporaryWorkspace) -> None:
        """A timed-out CLI raises GenerationTimeoutError."""
        handle = workspace.stage("job-1")
        with patch(RUN_PATCH, side_effect=subprocess.TimeoutExpired(["gemini"], 1.0)):
            with pytest.raises(GenerationTimeoutError) as exc_info:
                GeminiCLIGenerator().generate(
                    "PROMPT", model="m", timeout_ms=1000, workspace=workspace, handle=handle
                )

        assert exc_info.value.timeout_ms == 1000

    def test_missing_executable(self, workspace: TemporaryWorkspace) -> None:
        """A CLI that is not installed raises MissingDependencyError."""
        handle = workspace.stage("job-1")
        with patch(RUN_PATCH, side_effect=FileNotFoundError("gemini")):
            with pytest.raises(MissingDependencyError, match="npm install"):
                GeminiCLIGenerator().generate(
                    "PROMPT", model="m", timeout_ms=1000, workspace=workspace, handle=handle
                )

    def test_nonzero_exit(self, workspace: TemporaryWorkspace) -> None:
        """A non-zero exit raises GenerationProcessError with code and stderr."""
        handle = workspace.stage("job-1")
        run, _ = _fake_run(returncode=1, stderr=b"quota exceeded")

        with patch(RUN_PATCH, side_effect=run):
            with pytest.raises(GenerationProcessError) as exc_info:
                GeminiCLIGenerator().generate(
                    "PROMPT", model="m", timeout_ms=1000, workspace=workspace, handle=handle
                )

        assert exc_info.value.exit_code == 1
        assert exc_info.value.stderr == "quota exceeded"

    def test_whitespace_output_is_empty(self, workspace: TemporaryWorkspace) -> None:
        """Whitespace-only output is distinct from a process failure."""
        handle = workspace.stage("job-1")
        run, _ = _fake_run(stdout=b"  \n\t\n")

        with patch(RUN_PATCH, side_effect=run):
            with pytest.raises(EmptyGenerationOutputError):
                GeminiCLIGenerator().generate(
                    "PROMPT", model="m", timeout_ms=1000, workspace=workspace, handle=handle
                )

    def test_empty_model_uses_default(self, workspace: TemporaryWorkspace) -> None:
        """An empty model falls back to the generator default."""
        handle = workspace.stage("job-1")
        run, seen = _fake_run(stdout=b"text")

        with patch(RUN_PATCH, side_effect=run):
            GeminiCLIGenerator(default_model="gemini-2.5-flash").generate(
                "PROMPT", model="", timeout_ms=1000, workspace=workspace, handle=handle
            )

        assert seen["command"][2] == "gemini-2.5-flash"


# =============================================================================
# Inline task mode
# =============================================================================


class TestRunTask:
    """Tests for GeminiCLIGenerator.run_task()."""

    def test_inline_prompt(self) -> None:
        """The prompt is passed with -p and stdout is returned."""
        completed = subprocess.CompletedProcess([], 0, stdout="Screenshot saved", stderr="")
        with patch(RUN_PATCH, return_value=completed) as mock_run:
            reply = GeminiCLIGenerator().run_task("open example.com", timeout_ms=60000)

        assert reply == "Screenshot saved"
        command = mock_run.call_args[0][0]
        assert command == ["gemini", "-p", "open example.com"]

    def test_inline_prompt_with_model(self) -> None:
        """A model is passed before the prompt."""
        completed = subprocess.CompletedProcess([], 0, stdout="ok", stderr="")
        with patch(RUN_PATCH, return_value=completed) as mock_run:
            GeminiCLIGenerator().run_task("task", model="gemini-2.5-pro", timeout_ms=1000)

        assert mock_run.call_args[0][0] == ["gemini", "--model", "gemini-2.5-pro", "-p", "task"]

    def test_failure_raises(self) -> None:
        """A non-zero exit raises GenerationProcessError."""
        completed = subprocess.CompletedProcess([], 2, stdout="", stderr="bad flag")
        with patch(RUN_PATCH, return_value=completed):
            with pytest.raises(GenerationProcessError, match="bad flag"):
                GeminiCLIGenerator().run_task("task", timeout_ms=1000)

    def test_timeout_raises(self) -> None:
        """A timed-out task raises GenerationTimeoutError."""
        with patch(RUN_PATCH, side_effect=subprocess.TimeoutExpired(["gemini"], 1.0)):
            with pytest.raises(GenerationTimeoutError):
                GeminiCLIGenerator().run_task("task", timeout_ms=1000)

    def test_temp_file_cleaned_up(self) -> None:
        """A prompt temp file is removed after the run."""
        completed = subprocess.CompletedProcess([], 0, stdout="ok", stderr="")
        cleanup = MagicMock()
        with (
            patch(RUN_PATCH, return_value=completed),
            patch(
                "testgen_assist.providers.gemini_cli.build_cross_platform_command",
                return_value=(["/bin/sh", "-c", "gemini"], "/tmp/prompt.txt"),
            ),
            patch("testgen_assist.providers.gemini_cli.cleanup_temp_file", cleanup),
        ):
            GeminiCLIGenerator().run_task("task", timeout_ms=1000)

        cleanup.assert_called_once_with("/tmp/prompt.txt")
