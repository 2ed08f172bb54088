"""Exception hierarchy for testgen-assist.

Every failure surfaced by the generation pipeline derives from
TestgenAssistError, so the CLI can map any of them to exit code 1 with a
single handler while library callers can still catch the specific type.

Hierarchy:
    TestgenAssistError
    ├── ConfigError
    ├── MissingDependencyError
    ├── InputNotFoundError
    ├── DocumentReadError
    ├── GenerationError
    │   ├── GenerationTimeoutError
    │   ├── GenerationProcessError
    │   └── EmptyGenerationOutputError
    ├── ParseYieldedNothingError
    └── WriteError
"""

from __future__ import annotations

__all__ = [
    "TestgenAssistError",
    "ConfigError",
    "MissingDependencyError",
    "InputNotFoundError",
    "DocumentReadError",
    "GenerationError",
    "GenerationTimeoutError",
    "GenerationProcessError",
    "EmptyGenerationOutputError",
    "ParseYieldedNothingError",
    "WriteError",
]


class TestgenAssistError(Exception):
    """Base class for all testgen-assist errors."""

    __test__ = False  # Tell pytest this is not a test class


class ConfigError(TestgenAssistError):
    """Configuration file is missing, unreadable or invalid.

    Raised before any side effect of a job takes place.
    """


class MissingDependencyError(TestgenAssistError):
    """External CLI or required Python library is not available.

    Attributes:
        dependency: Name of the missing executable or distribution.
        guidance: Human-readable installation hint.

    """

    def __init__(self, message: str, *, dependency: str = "", guidance: str = "") -> None:
        self.dependency = dependency
        self.guidance = guidance
        if guidance:
            message = f"{message}\n{guidance}"
        super().__init__(message)


class InputNotFoundError(TestgenAssistError):
    """Source document, prompt template or input directory does not exist."""


class DocumentReadError(TestgenAssistError):
    """Source document exists but its text could not be extracted."""


class GenerationError(TestgenAssistError):
    """External text generation failed."""


class GenerationTimeoutError(GenerationError):
    """Generator process did not finish within the configured timeout."""

    def __init__(self, message: str, *, timeout_ms: int | None = None) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(message)


class GenerationProcessError(GenerationError):
    """Generator process could not be started or exited with non-zero status.

    Attributes:
        exit_code: Process exit code, None if the process never started.
        stderr: Tail of the captured standard error stream.

    """

    def __init__(
        self,
        message: str,
        *,
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(message)


class EmptyGenerationOutputError(GenerationError):
    """Generator exited successfully but produced no usable output."""


class ParseYieldedNothingError(TestgenAssistError):
    """Generated text contained no valid artifact."""


class WriteError(TestgenAssistError):
    """An artifact could not be written to its destination."""
