"""Abstract base class for text generators.

A generator turns a composed prompt into raw text. The pipeline depends
only on this interface, so tests substitute a canned-text double and other
LLM command-line agents can be added without touching the engine.

Example:
    >>> class EchoGenerator(BaseGenerator):
    ...     @property
    ...     def provider_name(self) -> str:
    ...         return "echo"
    ...     @property
    ...     def default_model(self) -> str | None:
    ...         return None
    ...     def generate(self, prompt, *, model, timeout_ms, workspace, handle):
    ...         return prompt

"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from testgen_assist.core.workspace import TemporaryWorkspace, WorkspaceHandle

__all__ = ["BaseGenerator"]


class BaseGenerator(ABC):
    """Interface every generator implements."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return unique identifier for this generator."""

    @property
    @abstractmethod
    def default_model(self) -> str | None:
        """Return default model when none specified."""

    @abstractmethod
    def generate(
        self,
        prompt: str,
        *,
        model: str,
        timeout_ms: int,
        workspace: TemporaryWorkspace,
        handle: WorkspaceHandle,
    ) -> str:
        """Generate text for a prompt.

        Args:
            prompt: Composed prompt payload.
            model: Model identifier passed to the backend.
            timeout_ms: Hard timeout in milliseconds.
            workspace: Workspace manager for scratch files.
            handle: The job's staged workspace handle.

        Returns:
            Raw generated text, non-empty after trimming.

        Raises:
            GenerationError: If generation fails, times out or yields nothing.
            MissingDependencyError: If the backend is not installed.

        """
