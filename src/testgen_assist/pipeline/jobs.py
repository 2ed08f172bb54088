"""Generation job construction.

Turns an artifact kind plus configuration into concrete GenerationJobs,
resolving the source document(s) the way each kind needs:

- test-plan: the configured PRD
- test-scenario: the newest generated test plan
- test-automation: ``paths.test_automation_input`` or the newest generated
  scenario document
- step-definition: one job per reviewed ``*.feature`` file

An explicit input file always wins over discovery. For step definitions it
names one feature file inside the reviewed-features directory.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime
from pathlib import Path

from testgen_assist.core.config import Config
from testgen_assist.pipeline.profiles import (
    STEP_DEFINITION,
    TEST_AUTOMATION,
    TEST_PLAN,
    TEST_SCENARIO,
    ArtifactProfile,
    get_profile,
)
from testgen_assist.pipeline.sources import find_feature_files, find_latest_document
from testgen_assist.pipeline.types import GenerationJob
from testgen_assist.pipeline.writer import format_timestamp

logger = logging.getLogger(__name__)

__all__ = ["build_jobs", "make_job_id", "resolve_sources"]


def make_job_id(kind: str, timestamp: str) -> str:
    """Build a unique job id, e.g. ``test-plan-20261017093015-3f9a1c2e``."""
    return f"{kind}-{timestamp}-{secrets.token_hex(4)}"


def resolve_sources(
    config: Config,
    project_root: Path,
    profile: ArtifactProfile,
    input_file: str | None = None,
) -> list[Path]:
    """Resolve the source documents for an artifact kind.

    Raises:
        InputNotFoundError: If discovery finds nothing to process.

    """
    paths = config.paths

    if profile is STEP_DEFINITION:
        features_dir = Config.resolve(paths.features_dir, project_root)
        return find_feature_files(features_dir, input_file)

    if input_file is not None:
        return [Config.resolve(input_file, project_root)]

    if profile is TEST_PLAN:
        return [Config.resolve(paths.prd, project_root)]

    if profile is TEST_SCENARIO:
        plan_root = Config.resolve(paths.test_plan_output, project_root)
        return [find_latest_document(plan_root, TEST_PLAN.file_prefix)]

    if profile is TEST_AUTOMATION:
        if paths.test_automation_input is not None:
            return [Config.resolve(paths.test_automation_input, project_root)]
        scenario_root = Config.resolve(paths.test_scenario_output, project_root)
        return [find_latest_document(scenario_root, TEST_SCENARIO.file_prefix)]

    raise ValueError(f"No source resolution for artifact kind: {profile.kind}")


def build_jobs(
    config: Config,
    project_root: Path,
    kind: str,
    input_file: str | None = None,
    *,
    model: str | None = None,
    timeout_ms: int | None = None,
    now: datetime | None = None,
) -> list[GenerationJob]:
    """Build the jobs for one CLI invocation.

    All jobs of one invocation share a timestamp, so they land in the same
    run directory.

    Args:
        config: Loaded configuration.
        project_root: Root that relative configured paths resolve against.
        kind: Artifact kind.
        input_file: Explicit source document (or feature file name).
        model: Model override; defaults to the configured model for the kind.
        timeout_ms: Timeout override in milliseconds.
        now: Run time, for deterministic timestamps.

    Returns:
        One job per source document.

    Raises:
        ValueError: If the kind is unknown.
        InputNotFoundError: If no source document can be found.

    """
    profile = get_profile(kind)
    timestamp = format_timestamp(now or datetime.now())
    sources = resolve_sources(config, project_root, profile, input_file)

    prompt_path = Config.resolve(getattr(config.paths, profile.prompt_path_key), project_root)
    output_root = Config.resolve(getattr(config.paths, profile.output_path_key), project_root)
    effective_model = model or config.resolve_model(kind)
    effective_timeout = timeout_ms if timeout_ms is not None else config.generator.timeout_ms

    jobs = [
        GenerationJob(
            job_id=make_job_id(kind, timestamp),
            kind=kind,
            source_document_path=source,
            prompt_template_path=prompt_path,
            output_kind=profile.output_kind,
            output_format=profile.output_format,
            output_directory=output_root,
            naming_strategy=profile.naming_strategy,
            timestamp=timestamp,
            model=effective_model,
            timeout_ms=effective_timeout,
            profile=profile,
        )
        for source in sources
    ]
    logger.debug("Built %d %s job(s)", len(jobs), kind)
    return jobs
