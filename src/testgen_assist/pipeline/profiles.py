"""Per-artifact-kind settings for the generation pipeline.

The four generators differ only in prompt template, expected output shape,
output format and naming. Each ArtifactProfile captures exactly those
differences; the engine itself is kind-agnostic.
"""

from __future__ import annotations

from dataclasses import dataclass

from testgen_assist.pipeline.types import NamingStrategy, OutputFormat, OutputKind

__all__ = [
    "TEST_PLAN",
    "TEST_SCENARIO",
    "TEST_AUTOMATION",
    "STEP_DEFINITION",
    "PROFILES",
    "DOCX_MODULES",
    "ArtifactProfile",
    "get_profile",
]

# (import name, distribution name) pairs
DOCX_MODULES: tuple[tuple[str, str], ...] = (("docx", "python-docx"),)


@dataclass(frozen=True)
class ArtifactProfile:
    """Settings distinguishing one artifact kind from another.

    Attributes:
        kind: Artifact kind identifier, also the CLI-facing name.
        prompt_path_key: PathsConfig attribute holding the prompt template.
        output_path_key: PathsConfig attribute holding the output root.
        source_label: Label introducing the source text in the prompt.
        output_kind: Single document or multi-artifact.
        output_format: Text or DOCX.
        naming_strategy: How artifact names are derived.
        extension: File extension of artifacts (without dot).
        file_prefix: Prefix for TIMESTAMPED names.
        run_dir_stem: Stem of the timestamped run directory.
        metadata_key: DocxConfig attribute with document metadata, if any.
        fence_language: Fence language tag for multi-artifact blocks.
        header_prefix: Required first meaningful line prefix for blocks.
        required_modules: Python modules needed, as (import, distribution) pairs.

    """

    kind: str
    prompt_path_key: str
    output_path_key: str
    source_label: str
    output_kind: OutputKind
    output_format: OutputFormat
    naming_strategy: NamingStrategy
    extension: str
    file_prefix: str = ""
    run_dir_stem: str = ""
    metadata_key: str | None = None
    fence_language: str = ""
    header_prefix: str = ""
    required_modules: tuple[tuple[str, str], ...] = ()

    @property
    def writes_index(self) -> bool:
        """Multi-artifact runs get a summary index next to the artifacts."""
        return self.output_kind == OutputKind.MULTI_ARTIFACT


TEST_PLAN = ArtifactProfile(
    kind="test-plan",
    prompt_path_key="test_plan_prompt",
    output_path_key="test_plan_output",
    source_label="PRD CONTENT TO ANALYZE",
    output_kind=OutputKind.SINGLE_DOCUMENT,
    output_format=OutputFormat.DOCX,
    naming_strategy=NamingStrategy.TIMESTAMPED,
    extension="docx",
    file_prefix="test-plan-",
    run_dir_stem="test-plan",
    metadata_key="test_plan",
    required_modules=DOCX_MODULES,
)

TEST_SCENARIO = ArtifactProfile(
    kind="test-scenario",
    prompt_path_key="test_scenario_prompt",
    output_path_key="test_scenario_output",
    source_label="TEST PLAN CONTENT TO ANALYZE",
    output_kind=OutputKind.SINGLE_DOCUMENT,
    output_format=OutputFormat.DOCX,
    naming_strategy=NamingStrategy.TIMESTAMPED,
    extension="docx",
    file_prefix="test-scenario-",
    run_dir_stem="test-scenario",
    metadata_key="test_scenario",
    required_modules=DOCX_MODULES,
)

TEST_AUTOMATION = ArtifactProfile(
    kind="test-automation",
    prompt_path_key="test_automation_prompt",
    output_path_key="feature_output",
    source_label="FUNCTIONAL TEST SCENARIOS TO ANALYZE",
    output_kind=OutputKind.MULTI_ARTIFACT,
    output_format=OutputFormat.TEXT,
    naming_strategy=NamingStrategy.HEADER_SLUG,
    extension="feature",
    run_dir_stem="feature-files",
    fence_language="gherkin",
    header_prefix="Feature:",
    # Reads the scenario DOCX
    required_modules=DOCX_MODULES,
)

STEP_DEFINITION = ArtifactProfile(
    kind="step-definition",
    prompt_path_key="step_definition_prompt",
    output_path_key="step_definitions_output",
    source_label="FEATURE FILE CONTENT",
    output_kind=OutputKind.SINGLE_DOCUMENT,
    output_format=OutputFormat.TEXT,
    naming_strategy=NamingStrategy.SOURCE_STEM,
    extension="js",
    run_dir_stem="step-definitions",
)

PROFILES: dict[str, ArtifactProfile] = {
    profile.kind: profile
    for profile in (TEST_PLAN, TEST_SCENARIO, TEST_AUTOMATION, STEP_DEFINITION)
}


def get_profile(kind: str) -> ArtifactProfile:
    """Look up the profile for an artifact kind.

    Raises:
        ValueError: If the kind is unknown.

    """
    try:
        return PROFILES[kind]
    except KeyError:
        raise ValueError(
            f"Unknown artifact kind: {kind}. Valid kinds: {', '.join(sorted(PROFILES))}"
        ) from None
