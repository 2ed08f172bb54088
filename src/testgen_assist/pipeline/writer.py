"""Artifact persistence.

Artifacts are written into a run directory that is unique per run
(``<stem>-<YYYYmmddHHMMSS>``, with a random suffix on collision). Text
artifacts are written verbatim; DOCX artifacts go through docx_render.
Multi-artifact runs additionally get a README.md index.

A failed write removes whatever the same call already wrote before
raising WriteError, so a failed job never leaves a partial run behind.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from testgen_assist.core.exceptions import ParseYieldedNothingError, WriteError
from testgen_assist.pipeline.docx_render import markdown_to_blocks, render_docx
from testgen_assist.pipeline.types import Artifact, OutputFormat, WrittenFile, WrittenManifest

if TYPE_CHECKING:
    from testgen_assist.core.config import DocumentMetadata

logger = logging.getLogger(__name__)

__all__ = [
    "INDEX_FILENAME",
    "TIMESTAMP_FORMAT",
    "ArtifactWriter",
    "SummaryInfo",
    "format_timestamp",
]

INDEX_FILENAME = "README.md"
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def format_timestamp(moment: datetime) -> str:
    """Format a run timestamp, e.g. ``20261017093015``."""
    return moment.strftime(TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class SummaryInfo:
    """Provenance shown in the summary index."""

    source_name: str
    prompt_name: str


class ArtifactWriter:
    """Writes artifacts and their summary index."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or datetime.now

    def create_run_directory(self, root: Path, stem: str, timestamp: str) -> Path:
        """Create a run directory unique to this run.

        Raises:
            WriteError: If the directory cannot be created.

        """
        candidate = root / f"{stem}-{timestamp}"
        try:
            root.mkdir(parents=True, exist_ok=True)
            try:
                candidate.mkdir()
            except FileExistsError:
                # Two runs within the same second
                candidate = root / f"{stem}-{timestamp}-{secrets.token_hex(3)}"
                candidate.mkdir()
        except OSError as e:
            raise WriteError(f"Failed to create output directory {candidate}: {e}") from e

        logger.info("Created output directory: %s", candidate)
        return candidate

    def write_all(
        self,
        artifacts: Sequence[Artifact],
        output_dir: Path,
        *,
        output_format: OutputFormat,
        metadata: DocumentMetadata | None = None,
        summary: SummaryInfo | None = None,
    ) -> WrittenManifest:
        """Persist artifacts into an existing output directory.

        Args:
            artifacts: Artifacts in processing order. A later artifact with
                the same name overwrites an earlier one.
            output_dir: Run directory.
            output_format: TEXT (verbatim) or DOCX (converted).
            metadata: DOCX core properties.
            summary: When given, a README.md index is written too.

        Returns:
            Manifest of written files.

        Raises:
            ParseYieldedNothingError: If there is nothing to write.
            WriteError: If any file cannot be written.

        """
        if not artifacts:
            raise ParseYieldedNothingError("No artifacts to write")

        written: list[WrittenFile] = []
        created: list[Path] = []
        try:
            for artifact in artifacts:
                path = output_dir / artifact.name
                if path not in created:
                    created.append(path)
                if output_format == OutputFormat.DOCX:
                    render_docx(markdown_to_blocks(artifact.body), path, metadata)
                else:
                    path.write_text(artifact.body, encoding="utf-8")
                entry = WrittenFile(
                    name=artifact.name,
                    path=path,
                    size=path.stat().st_size,
                    header=artifact.header,
                )
                # Same name: the later artifact replaced the file on disk
                written = [f for f in written if f.name != artifact.name]
                written.append(entry)
                logger.info("Created artifact: %s", artifact.name)

            index_path = None
            if summary is not None:
                index_path = output_dir / INDEX_FILENAME
                created.append(index_path)
                index_path.write_text(self._render_index(written, summary), encoding="utf-8")
                logger.info("Created summary file: %s", INDEX_FILENAME)
        except (OSError, ValueError) as e:
            # python-docx raises ValueError for text that is not XML compatible
            self._discard(created)
            raise WriteError(f"Failed to write artifacts to {output_dir}: {e}") from e

        return WrittenManifest(output_dir=output_dir, files=tuple(written), index_path=index_path)

    def _render_index(self, files: Sequence[WrittenFile], summary: SummaryInfo) -> str:
        generated_on = self._clock().isoformat(timespec="seconds")
        described = "\n".join(
            f"- **{f.name}** - {f.header}" if f.header else f"- **{f.name}**" for f in files
        )
        listing = "\n".join(f"- {f.name}" for f in files)
        return (
            "# Generated Feature Files\n"
            "\n"
            f"Generated on: {generated_on}\n"
            f"Source: {summary.source_name}\n"
            f"Prompt: {summary.prompt_name}\n"
            "\n"
            "## Feature Files Created:\n"
            "\n"
            f"{described}\n"
            "\n"
            "## Usage:\n"
            "\n"
            "1. Review the generated .feature files and copy the accepted ones to your features/ directory\n"
            "2. Generate step definitions with `testgen-assist steps`\n"
            "3. Run the BDD suite with your Cucumber setup\n"
            "\n"
            "## Files in this directory:\n"
            "\n"
            f"{listing}\n"
        )

    @staticmethod
    def _discard(paths: Sequence[Path]) -> None:
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not remove partially written %s: %s", path, e)
