"""Generation pipeline engine.

Runs one GenerationJob through a fixed sequence of states:

    IDLE -> PREFLIGHTED -> COMPOSED -> STAGED -> INVOKED -> PARSED -> WRITTEN
         \\______________________ FAILED ______________________/
                                   |
                              CLEANED_UP

Every failure surfaces as a TestgenAssistError subclass after the job's
scratch workspace has been released. A job either writes all of its
artifacts or leaves no output behind.

Usage:
    pipeline = GenerationPipeline(config, GeminiCLIGenerator(), project_root=root)
    for result in pipeline.run_all(build_jobs(config, root, "test-plan")):
        print(result.manifest.output_dir)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from testgen_assist.core.config import Config, DocumentMetadata
from testgen_assist.core.exceptions import EmptyGenerationOutputError
from testgen_assist.core.workspace import TemporaryWorkspace, WorkspaceHandle
from testgen_assist.pipeline.parser import parse_multi_artifact, parse_single_document
from testgen_assist.pipeline.preflight import PreflightChecker
from testgen_assist.pipeline.prompt import compose
from testgen_assist.pipeline.sources import read_prompt_template, read_source_document
from testgen_assist.pipeline.types import (
    Artifact,
    GenerationJob,
    JobResult,
    JobState,
    NamingStrategy,
    OutputKind,
    WrittenManifest,
)
from testgen_assist.pipeline.writer import ArtifactWriter, SummaryInfo
from testgen_assist.providers.base import BaseGenerator

logger = logging.getLogger(__name__)

__all__ = ["GenerationPipeline", "SOURCE_FILENAME"]

SOURCE_FILENAME = "source_content.txt"


class GenerationPipeline:
    """Executes generation jobs sequentially.

    Args:
        config: Loaded configuration.
        generator: Text generator backend.
        project_root: Root that relative configured paths resolve against.
        workspace: Scratch workspace; defaults to ``paths.temp_dir``.
        preflight: Dependency checker; None skips preflight.
        writer: Artifact writer.

    """

    def __init__(
        self,
        config: Config,
        generator: BaseGenerator,
        *,
        project_root: Path | None = None,
        workspace: TemporaryWorkspace | None = None,
        preflight: PreflightChecker | None = None,
        writer: ArtifactWriter | None = None,
    ) -> None:
        self._config = config
        self._generator = generator
        self._project_root = project_root or Path.cwd()
        self._workspace = workspace or TemporaryWorkspace(
            Config.resolve(config.paths.temp_dir, self._project_root)
        )
        self._preflight = preflight
        self._writer = writer or ArtifactWriter()
        self._history: list[JobState] = []
        self._completed: list[JobResult] = []
        # Jobs sharing a timestamp share one run directory
        self._run_dirs: dict[tuple[Path, str, str], Path] = {}

    @property
    def history(self) -> tuple[JobState, ...]:
        """State transitions of the most recent job."""
        return tuple(self._history)

    @property
    def completed(self) -> tuple[JobResult, ...]:
        """Jobs of the most recent run_all that finished, even if a later one failed."""
        return tuple(self._completed)

    def run_all(self, jobs: Sequence[GenerationJob]) -> list[JobResult]:
        """Run jobs in order; the first failure aborts the remaining jobs."""
        self._completed = []
        for index, job in enumerate(jobs, start=1):
            if len(jobs) > 1:
                logger.info("Job %d/%d: %s", index, len(jobs), job.source_document_path.name)
            self._completed.append(self.run(job))
        return list(self._completed)

    def run(self, job: GenerationJob) -> JobResult:
        """Run one job to completion.

        Returns:
            JobResult with the written manifest and state history.

        Raises:
            TestgenAssistError: Any pipeline failure, after cleanup.

        """
        self._history = [JobState.IDLE]
        handle: WorkspaceHandle | None = None
        logger.info("Starting %s generation (job %s)", job.kind, job.job_id)

        try:
            if self._preflight is not None:
                self._preflight.verify(job.profile.required_modules)
            self._transition(JobState.PREFLIGHTED)

            template = read_prompt_template(job.prompt_template_path)
            source_text = read_source_document(job.source_document_path)
            prompt = compose(template, source_text, job.profile.source_label)
            self._transition(JobState.COMPOSED)

            handle = self._workspace.stage(job.job_id)
            self._workspace.write(handle, SOURCE_FILENAME, source_text)
            self._transition(JobState.STAGED)

            raw = self._generator.generate(
                prompt,
                model=job.model,
                timeout_ms=job.timeout_ms,
                workspace=self._workspace,
                handle=handle,
            )
            if not raw.strip():
                raise EmptyGenerationOutputError(
                    f"{self._generator.provider_name} produced empty output"
                )
            self._transition(JobState.INVOKED)

            artifacts = self._parse(job, raw)
            self._transition(JobState.PARSED)

            manifest = self._write(job, artifacts)
            self._transition(JobState.WRITTEN)
        except Exception as e:
            self._transition(JobState.FAILED)
            logger.debug("Job %s failed: %s", job.job_id, e)
            raise
        finally:
            if handle is not None:
                self._workspace.release(handle)
            self._transition(JobState.CLEANED_UP)

        logger.info("%s generation completed: %d file(s)", job.kind, len(manifest.files))
        return JobResult(job=job, manifest=manifest, states=tuple(self._history))

    def _transition(self, state: JobState) -> None:
        logger.debug("%s -> %s", self._history[-1].value, state.value)
        self._history.append(state)

    def _parse(self, job: GenerationJob, raw: str) -> list[Artifact]:
        profile = job.profile
        if job.output_kind == OutputKind.MULTI_ARTIFACT:
            return parse_multi_artifact(
                raw,
                fence_language=profile.fence_language,
                header_prefix=profile.header_prefix,
                extension=profile.extension,
            )
        return [parse_single_document(raw, name=self._single_name(job))]

    @staticmethod
    def _single_name(job: GenerationJob) -> str:
        profile = job.profile
        if job.naming_strategy == NamingStrategy.SOURCE_STEM:
            return f"{job.source_document_path.stem}.{profile.extension}"
        if job.naming_strategy == NamingStrategy.TIMESTAMPED:
            return f"{profile.file_prefix}{job.timestamp}.{profile.extension}"
        raise ValueError(f"{job.naming_strategy.value} naming needs multi-artifact output")

    def _write(self, job: GenerationJob, artifacts: list[Artifact]) -> WrittenManifest:
        profile = job.profile
        key = (job.output_directory, profile.run_dir_stem, job.timestamp)
        output_dir = self._run_dirs.get(key)
        created_here = output_dir is None
        if output_dir is None:
            output_dir = self._writer.create_run_directory(
                job.output_directory, profile.run_dir_stem, job.timestamp
            )

        metadata: DocumentMetadata | None = None
        if profile.metadata_key is not None:
            metadata = getattr(self._config.docx, profile.metadata_key)

        summary = None
        if profile.writes_index:
            summary = SummaryInfo(
                source_name=job.source_document_path.name,
                prompt_name=job.prompt_template_path.name,
            )

        try:
            manifest = self._writer.write_all(
                artifacts,
                output_dir,
                output_format=job.output_format,
                metadata=metadata,
                summary=summary,
            )
        except Exception:
            if created_here:
                _remove_empty_dir(output_dir)
            raise

        self._run_dirs[key] = output_dir
        return manifest


def _remove_empty_dir(path: Path) -> None:
    try:
        if path.is_dir() and not any(path.iterdir()):
            path.rmdir()
    except OSError as e:
        logger.warning("Could not remove empty output directory %s: %s", path, e)
