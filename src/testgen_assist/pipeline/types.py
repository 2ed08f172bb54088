"""Type definitions for the generation pipeline.

Usage:
    from testgen_assist.pipeline.types import Artifact, JobState, OutputKind

    if job.output_kind == OutputKind.MULTI_ARTIFACT:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from testgen_assist.pipeline.profiles import ArtifactProfile


class OutputKind(Enum):
    """Shape of the generated text.

    Attributes:
        SINGLE_DOCUMENT: Whole output is one artifact body.
        MULTI_ARTIFACT: Output holds fenced blocks, one artifact each.

    """

    SINGLE_DOCUMENT = "single-document"
    MULTI_ARTIFACT = "multi-artifact"


class OutputFormat(Enum):
    """On-disk format of written artifacts.

    Attributes:
        TEXT: Body written verbatim as UTF-8 text.
        DOCX: Markdown-like body converted to a Word document.

    """

    TEXT = "text"
    DOCX = "docx"


class NamingStrategy(Enum):
    """How artifact file names are derived.

    Attributes:
        TIMESTAMPED: ``<prefix><YYYYmmddHHMMSS>.<ext>``
        HEADER_SLUG: Slug of the block header line, e.g. ``login.feature``
        SOURCE_STEM: Source document stem, e.g. ``checkout.js`` for ``checkout.feature``

    """

    TIMESTAMPED = "timestamped"
    HEADER_SLUG = "header-slug"
    SOURCE_STEM = "source-stem"


class JobState(Enum):
    """Lifecycle states of one generation job.

    FAILED is reachable from every non-terminal state; CLEANED_UP follows
    both WRITTEN and FAILED because teardown always runs.
    """

    IDLE = "idle"
    PREFLIGHTED = "preflighted"
    COMPOSED = "composed"
    STAGED = "staged"
    INVOKED = "invoked"
    PARSED = "parsed"
    WRITTEN = "written"
    FAILED = "failed"
    CLEANED_UP = "cleaned-up"


@dataclass(frozen=True)
class GenerationJob:
    """One end-to-end pipeline execution for one source and one artifact kind.

    Attributes:
        job_id: Unique id, also names the scratch directory.
        kind: Artifact kind (e.g. "test-plan").
        source_document_path: Document whose text is analyzed.
        prompt_template_path: Instruction template prepended to the source text.
        output_kind: Single document or multi-artifact output.
        output_format: Text or DOCX.
        output_directory: Root under which the run directory is created.
        naming_strategy: How artifact file names are derived.
        timestamp: Run timestamp (``YYYYmmddHHMMSS``).
        model: Generator model identifier.
        timeout_ms: Generation timeout in milliseconds.
        profile: Per-kind settings this job was built from.

    """

    job_id: str
    kind: str
    source_document_path: Path
    prompt_template_path: Path
    output_kind: OutputKind
    output_format: OutputFormat
    output_directory: Path
    naming_strategy: NamingStrategy
    timestamp: str
    model: str
    timeout_ms: int
    profile: ArtifactProfile


@dataclass(frozen=True)
class Artifact:
    """One named output produced by a job.

    Attributes:
        name: File name including extension.
        body: Artifact content.
        header: Header text of the originating block (multi-artifact only).

    """

    name: str
    body: str
    header: str | None = None


@dataclass(frozen=True)
class WrittenFile:
    """An artifact persisted to disk."""

    name: str
    path: Path
    size: int
    header: str | None = None


@dataclass(frozen=True)
class WrittenManifest:
    """Everything written by one job.

    Attributes:
        output_dir: Run directory holding the artifacts.
        files: Written artifacts in processing order.
        index_path: Summary index file, None for single-document jobs.

    """

    output_dir: Path
    files: tuple[WrittenFile, ...]
    index_path: Path | None = None


@dataclass(frozen=True)
class JobResult:
    """Outcome of a successful job.

    Attributes:
        job: The executed job.
        manifest: Files written by the job.
        states: State transition history, ending in CLEANED_UP.

    """

    job: GenerationJob
    manifest: WrittenManifest
    states: tuple[JobState, ...]
