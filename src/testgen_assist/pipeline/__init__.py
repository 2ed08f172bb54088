"""Document-to-artifact generation pipeline.

Usage:
    from testgen_assist.pipeline import GenerationPipeline, build_jobs

    jobs = build_jobs(config, project_root, "test-automation")
    results = GenerationPipeline(config, generator, project_root=project_root).run_all(jobs)
"""

from testgen_assist.pipeline.engine import GenerationPipeline
from testgen_assist.pipeline.jobs import build_jobs
from testgen_assist.pipeline.preflight import PreflightChecker, PreflightResult
from testgen_assist.pipeline.profiles import PROFILES, ArtifactProfile, get_profile
from testgen_assist.pipeline.types import (
    Artifact,
    GenerationJob,
    JobResult,
    JobState,
    NamingStrategy,
    OutputFormat,
    OutputKind,
    WrittenFile,
    WrittenManifest,
)

__all__ = [
    "PROFILES",
    "Artifact",
    "ArtifactProfile",
    "GenerationJob",
    "GenerationPipeline",
    "JobResult",
    "JobState",
    "NamingStrategy",
    "OutputFormat",
    "OutputKind",
    "PreflightChecker",
    "PreflightResult",
    "WrittenFile",
    "WrittenManifest",
    "build_jobs",
    "get_profile",
]
