"""Scratch workspace for generator input and output files.

Each generation job owns one directory under the configured temp root,
named after its job id. Every file written or reserved through the handle
is removed on release, on success and failure alike. Release is
best-effort: removal problems are logged as warnings and never turn a
successful job into a failed one.

Usage:
    workspace = TemporaryWorkspace(project_root / "temp")
    with workspace.scoped(job.job_id) as handle:
        prompt_file = workspace.write(handle, "combined_prompt.txt", prompt)
        output_file = workspace.reserve(handle, "generation_output.txt")
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from testgen_assist.core.exceptions import WriteError

logger = logging.getLogger(__name__)

__all__ = ["TemporaryWorkspace", "WorkspaceHandle"]


@dataclass
class WorkspaceHandle:
    """Scratch directory owned by a single job.

    Attributes:
        job_id: Identifier of the owning job.
        path: Job-scoped scratch directory.
        files: Scratch files registered so far, in creation order.
        released: True once the workspace has been torn down.

    """

    job_id: str
    path: Path
    files: list[Path] = field(default_factory=list)
    released: bool = False


class TemporaryWorkspace:
    """Creates, tracks and removes job-scoped scratch files."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        """Root directory holding all job workspaces."""
        return self._root

    def stage(self, job_id: str) -> WorkspaceHandle:
        """Create the scratch directory for a job.

        Raises:
            WriteError: If the directory cannot be created.

        """
        path = self._root / job_id
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WriteError(f"Failed to create scratch directory {path}: {e}") from e
        logger.debug("Staged workspace %s", path)
        return WorkspaceHandle(job_id=job_id, path=path)

    def reserve(self, handle: WorkspaceHandle, name: str) -> Path:
        """Register a scratch path that another process will create."""
        if handle.released:
            raise WriteError(f"Workspace {handle.job_id} has already been released")
        path = self._scratch_path(handle, name)
        if path not in handle.files:
            handle.files.append(path)
        return path

    def write(self, handle: WorkspaceHandle, name: str, content: str) -> Path:
        """Write a scratch file and register it for cleanup.

        Raises:
            WriteError: If the file cannot be written.

        """
        path = self.reserve(handle, name)
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise WriteError(f"Failed to write scratch file {path}: {e}") from e
        return path

    def release(self, handle: WorkspaceHandle) -> None:
        """Remove every scratch file of the job and its directory.

        Never raises. Calling release twice is a no-op.
        """
        if handle.released:
            return
        handle.released = True

        for path in handle.files:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Cleanup warning: could not remove %s: %s", path, e)

        if handle.path.exists():
            # The directory is exclusively owned by this job; strays go too
            try:
                for stray in handle.path.iterdir():
                    if stray.is_file() or stray.is_symlink():
                        stray.unlink(missing_ok=True)
                handle.path.rmdir()
            except OSError as e:
                logger.warning("Cleanup warning: could not remove %s: %s", handle.path, e)

        try:
            if self._root.exists() and not any(self._root.iterdir()):
                self._root.rmdir()
        except OSError as e:
            logger.debug("Temp root %s left in place: %s", self._root, e)

        logger.debug("Released workspace %s", handle.path)

    @contextmanager
    def scoped(self, job_id: str) -> Iterator[WorkspaceHandle]:
        """Stage a workspace and release it on exit, whatever the outcome."""
        handle = self.stage(job_id)
        try:
            yield handle
        finally:
            self.release(handle)

    def _scratch_path(self, handle: WorkspaceHandle, name: str) -> Path:
        """Return the scratch path for ``name``, refusing paths outside the job dir."""
        path = handle.path / name
        try:
            path.resolve().relative_to(handle.path.resolve())
        except ValueError:
            raise WriteError(f"Scratch file name escapes workspace: {name}") from None
        if path.parent != handle.path:
            raise WriteError(f"Scratch file name must be a plain file name: {name}")
        return path
