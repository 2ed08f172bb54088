"""Cross-platform command building for the generator CLI.

The generator CLI is usually installed through npm, which on Windows places
a ``gemini.cmd`` shim on PATH. ``subprocess`` without a shell cannot launch
such shims by bare name, so executables are resolved with ``shutil.which``
before use.

Inline prompts (``gemini -p "<prompt>"``) are subject to command-line length
limits:
- POSIX (Linux/macOS): ARG_MAX (~128KB-2MB) for execve()
- Windows: 32KB CreateProcess limit, handled by subprocess directly

On POSIX, prompts above TEMP_FILE_THRESHOLD are written to a temp file and
substituted by the shell instead of being passed as an argument.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import sys
import tempfile

logger = logging.getLogger(__name__)

IS_WINDOWS = sys.platform == "win32"
IS_POSIX = not IS_WINDOWS

# On Linux, ARG_MAX is typically 128KB-2MB. We use 100KB as safe threshold.
TEMP_FILE_THRESHOLD = 100_000


def resolve_executable(executable: str) -> str:
    """Resolve an executable name to the path subprocess should launch.

    Args:
        executable: Command name (e.g., "gemini") or path.

    Returns:
        Absolute path found on PATH, or the input unchanged when not found
        (letting subprocess raise FileNotFoundError with the original name).

    """
    resolved = shutil.which(executable)
    if resolved is None:
        logger.debug("Executable %s not found on PATH", executable)
        return executable
    return resolved


def build_cross_platform_command(
    executable: str,
    args: list[str],
    prompt: str,
    *,
    prompt_flag: str | None = "-p",
    use_shell: bool = False,
) -> tuple[list[str], str | None]:
    """Build an inline-prompt command that survives large prompts.

    Args:
        executable: The command to run (e.g., "gemini").
        args: Additional arguments (excluding the prompt).
        prompt: The prompt text.
        prompt_flag: Flag introducing the prompt, or None for a positional prompt.
        use_shell: Force the shell/temp-file form even for short prompts.

    Returns:
        Tuple of (command_list, temp_file_path). temp_file_path is None when
        no temp file was created; otherwise the caller must clean it up with
        cleanup_temp_file().

    Examples:
        >>> cmd, temp_file = build_cross_platform_command(
        ...     "gemini", ["--model", "gemini-2.5-pro"], "Hello"
        ... )
        >>> cmd
        ['gemini', '--model', 'gemini-2.5-pro', '-p', 'Hello']
        >>> temp_file is None
        True

    """
    if IS_POSIX and (use_shell or len(prompt) > TEMP_FILE_THRESHOLD):
        return _build_shell_command(executable, args, prompt, prompt_flag)
    return _build_direct_command(executable, args, prompt, prompt_flag), None


def _build_direct_command(
    executable: str,
    args: list[str],
    prompt: str,
    prompt_flag: str | None,
) -> list[str]:
    """Build command with direct argument passing."""
    prompt_part = [prompt_flag, prompt] if prompt_flag else [prompt]
    return [executable, *args, *prompt_part]


def _build_shell_command(
    executable: str,
    args: list[str],
    prompt: str,
    prompt_flag: str | None,
) -> tuple[list[str], str]:
    """Build command using shell substitution of a temp file holding the prompt.

    Returns:
        Tuple of (command_list, temp_file_path); the caller owns the temp file.

    """
    prompt_fd, prompt_file_path = tempfile.mkstemp(
        suffix=".txt", prefix=f"{os.path.basename(executable)}_prompt_"
    )
    try:
        os.write(prompt_fd, prompt.encode("utf-8"))
    finally:
        os.close(prompt_fd)

    parts = [_shell_quote(executable)]
    parts.extend(_shell_quote(arg) for arg in args)
    if prompt_flag:
        parts.append(_shell_quote(prompt_flag))
    parts.append(f'"$(cat {_shell_quote(prompt_file_path)})"')

    return ["/bin/sh", "-c", " ".join(parts)], prompt_file_path


def _shell_quote(arg: str) -> str:
    """Quote an argument for safe use in a POSIX shell command.

    Examples:
        >>> _shell_quote("--model")
        '--model'
        >>> _shell_quote("it's")
        "'it'\\\\''s'"

    """
    if arg and all(c.isalnum() or c in "_-./=" for c in arg):
        return arg
    # ' becomes '\''
    return "'" + arg.replace("'", "'\\''") + "'"


def cleanup_temp_file(temp_file_path: str | None) -> None:
    """Remove a temp file created by build_cross_platform_command."""
    if temp_file_path is None:
        return
    with contextlib.suppress(OSError):
        os.unlink(temp_file_path)
