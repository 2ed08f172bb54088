"""Gemini CLI generator.

Pipes the composed prompt through the ``gemini`` command-line agent:

    gemini --model <model> < combined_prompt.txt > generation_output.txt

Both files live in the job's scratch workspace, so large prompts never hit
command-line length limits and the output survives until it is parsed.

The inline mode (``gemini -p "<prompt>"``) is used for ad-hoc tasks such as
driving a browser through an MCP server configured in the CLI.

Example:
    >>> generator = GeminiCLIGenerator()
    >>> text = generator.generate(prompt, model="gemini-2.5-pro",
    ...                           timeout_ms=60000, workspace=ws, handle=handle)

"""

from __future__ import annotations

import logging
import subprocess
import time
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from testgen_assist.core.exceptions import (
    EmptyGenerationOutputError,
    GenerationProcessError,
    GenerationTimeoutError,
    MissingDependencyError,
)
from testgen_assist.core.platform_command import (
    build_cross_platform_command,
    cleanup_temp_file,
    resolve_executable,
)
from testgen_assist.providers.base import BaseGenerator

if TYPE_CHECKING:
    from testgen_assist.core.workspace import TemporaryWorkspace, WorkspaceHandle

logger = logging.getLogger(__name__)

__all__ = ["CLI_INSTALL_HINT", "GeminiCLIGenerator", "PROMPT_FILENAME", "OUTPUT_FILENAME"]

CLI_INSTALL_HINT = (
    "Install the Gemini CLI first: npm install -g @google/gemini-cli "
    "(then run `gemini` once to authenticate)."
)

PROMPT_FILENAME = "combined_prompt.txt"
OUTPUT_FILENAME = "generation_output.txt"

# Maximum stderr characters kept on error objects
STDERR_TAIL = 2000


class GeminiCLIGenerator(BaseGenerator):
    """Generator backed by the Gemini CLI subprocess.

    Args:
        executable: CLI command name or path.
        extra_args: Arguments appended after ``--model <model>``.
        default_model: Model used when the caller passes an empty one.
        cwd: Working directory for the CLI; project-level CLI settings
            (e.g. MCP servers) are read from here.

    """

    def __init__(
        self,
        executable: str = "gemini",
        extra_args: Sequence[str] = (),
        default_model: str | None = "gemini-2.5-pro",
        cwd: Path | None = None,
    ) -> None:
        self._cwd = cwd
        self._executable = executable
        self._extra_args = list(extra_args)
        self._default_model = default_model

    @property
    def provider_name(self) -> str:
        """Return unique identifier for this generator."""
        return "gemini-cli"

    @property
    def default_model(self) -> str | None:
        """Return default model when none specified."""
        return self._default_model

    @property
    def executable(self) -> str:
        """CLI command name or path."""
        return self._executable

    def build_command(self, model: str) -> list[str]:
        """Build the piped-mode command line."""
        return [resolve_executable(self._executable), "--model", model, *self._extra_args]

    def generate(
        self,
        prompt: str,
        *,
        model: str,
        timeout_ms: int,
        workspace: TemporaryWorkspace,
        handle: WorkspaceHandle,
    ) -> str:
        """Run the CLI with the prompt on stdin and return its stdout.

        Raises:
            GenerationTimeoutError: If the CLI does not finish in time.
            GenerationProcessError: If the CLI cannot start or exits non-zero.
            EmptyGenerationOutputError: If the CLI produced no text.
            MissingDependencyError: If the CLI is not installed.

        """
        effective_model = model or self._default_model or ""
        prompt_file = workspace.write(handle, PROMPT_FILENAME, prompt)
        output_file = workspace.reserve(handle, OUTPUT_FILENAME)
        command = self.build_command(effective_model)

        logger.info("Generating with %s (model=%s)...", self._executable, effective_model)
        logger.debug(
            "Invoking %s: timeout=%dms, prompt_len=%d",
            self._executable,
            timeout_ms,
            len(prompt),
        )

        start_time = time.perf_counter()
        try:
            with (
                prompt_file.open("rb") as stdin,
                output_file.open("wb") as stdout,
            ):
                result = subprocess.run(
                    command,
                    stdin=stdin,
                    stdout=stdout,
                    stderr=subprocess.PIPE,
                    timeout=timeout_ms / 1000,
                    cwd=self._cwd,
                    check=False,
                )
        except subprocess.TimeoutExpired:
            raise GenerationTimeoutError(
                f"{self._executable} timed out after {timeout_ms}ms",
                timeout_ms=timeout_ms,
            ) from None
        except FileNotFoundError:
            raise MissingDependencyError(
                f"{self._executable} CLI not found.",
                dependency=self._executable,
                guidance=CLI_INSTALL_HINT,
            ) from None
        except OSError as e:
            raise GenerationProcessError(f"Failed to start {self._executable}: {e}") from e

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        stderr = _decode_tail(result.stderr)

        if result.returncode != 0:
            raise GenerationProcessError(
                f"{self._executable} exited with code {result.returncode}: "
                f"{stderr or '(no stderr)'}",
                exit_code=result.returncode,
                stderr=stderr,
            )

        try:
            text = output_file.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            raise EmptyGenerationOutputError(
                f"{self._executable} produced no output file"
            ) from None
        except OSError as e:
            raise GenerationProcessError(f"Failed to read generator output: {e}") from e

        if not text.strip():
            raise EmptyGenerationOutputError(f"{self._executable} produced empty output")

        logger.info(
            "Generation completed: model=%s, duration=%dms, response_len=%d",
            effective_model,
            duration_ms,
            len(text),
        )
        return text

    def run_task(self, prompt: str, *, model: str | None = None, timeout_ms: int) -> str:
        """Send an ad-hoc instruction inline with ``-p`` and return the reply.

        Raises:
            GenerationTimeoutError: If the CLI does not finish in time.
            GenerationProcessError: If the CLI cannot start or exits non-zero.
            EmptyGenerationOutputError: If the CLI replied with nothing.
            MissingDependencyError: If the CLI is not installed.

        """
        args = ["--model", model] if model else []
        args.extend(self._extra_args)
        command, temp_file = build_cross_platform_command(
            resolve_executable(self._executable), args, prompt
        )

        logger.info("Running task with %s...", self._executable)
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout_ms / 1000,
                cwd=self._cwd,
                check=False,
            )
        except subprocess.TimeoutExpired:
            raise GenerationTimeoutError(
                f"{self._executable} timed out after {timeout_ms}ms",
                timeout_ms=timeout_ms,
            ) from None
        except FileNotFoundError:
            raise MissingDependencyError(
                f"{self._executable} CLI not found.",
                dependency=self._executable,
                guidance=CLI_INSTALL_HINT,
            ) from None
        except OSError as e:
            raise GenerationProcessError(f"Failed to start {self._executable}: {e}") from e
        finally:
            cleanup_temp_file(temp_file)

        stderr = (result.stderr or "").strip()[-STDERR_TAIL:]
        if result.returncode != 0:
            raise GenerationProcessError(
                f"{self._executable} exited with code {result.returncode}: "
                f"{stderr or '(no stderr)'}",
                exit_code=result.returncode,
                stderr=stderr,
            )

        reply = result.stdout or ""
        if not reply.strip():
            raise EmptyGenerationOutputError(f"{self._executable} produced empty output")
        return reply


def _decode_tail(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace").strip()[-STDERR_TAIL:]
