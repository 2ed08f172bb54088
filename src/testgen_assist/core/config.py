"""Configuration models and loader for testgen-assist.

The configuration is a small mapping of named file-system paths, document
metadata per artifact type and settings for the external generator CLI.
It is loaded once per CLI invocation and passed explicitly into the
pipeline; there is no process-wide config singleton.

Both the native YAML file (``testgen-assist.yaml``) and the JSON
``utility/config.json`` layout of the original Node tooling are accepted.
JSON is a subset of YAML, and every key may be written in snake_case or
camelCase (``test_plan_prompt`` / ``testPlanPrompt``).

Usage:
    from testgen_assist.core.config import find_config_file, load_config

    config = load_config(find_config_file(project_root))
    prompt_path = config.resolve(config.paths.test_plan_prompt, project_root)

Example testgen-assist.yaml:
    paths:
      prd: docs/SauceDemo_PRD.docx
      test_plan_prompt: systemPrompts/testPlanPrompt.md
      test_scenario_prompt: systemPrompts/testScenarioPrompt.md
      test_automation_prompt: systemPrompts/testAutomationPrompt.md
      step_definition_prompt: systemPrompts/testStepGeneratorPrompt.md
    docx:
      test_plan:
        title: SauceDemo Test Plan
    generator:
      model: gemini-2.5-pro
      models:
        test-plan: gemini-2.5-flash-lite
      timeout_ms: 60000
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePath
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from testgen_assist.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

__all__ = [
    "CONFIG_FILENAME",
    "LEGACY_CONFIG_PATH",
    "DEFAULT_TIMEOUT_MS",
    "PathsConfig",
    "DocumentMetadata",
    "DocxConfig",
    "GeneratorConfig",
    "Config",
    "find_config_file",
    "load_config",
]

CONFIG_FILENAME = "testgen-assist.yaml"
LEGACY_CONFIG_PATH = "utility/config.json"

DEFAULT_TIMEOUT_MS = 60_000

# Shared model behaviour: immutable, camelCase aliases accepted, unknown keys ignored
_MODEL_CONFIG = ConfigDict(
    frozen=True,
    extra="ignore",
    alias_generator=to_camel,
    populate_by_name=True,
)


class PathsConfig(BaseModel):
    """Named file-system locations, relative to the project root.

    Attributes:
        prd: Product requirements document feeding the test plan.
        test_plan_prompt: Instruction template for test plans.
        test_scenario_prompt: Instruction template for test scenarios.
        test_automation_prompt: Instruction template for Gherkin features.
        step_definition_prompt: Instruction template for step definitions.
        temp_dir: Scratch directory root for generator input/output files.
        test_plan_output: Directory receiving test plan runs.
        test_scenario_output: Directory receiving test scenario runs.
        test_automation_input: Explicit scenario document for feature
            generation; the newest generated scenario is used when unset.
        feature_output: Directory receiving generated feature file runs.
        features_dir: Directory holding reviewed feature files.
        step_definitions_output: Directory receiving step definition runs.

    """

    model_config = _MODEL_CONFIG

    prd: str = Field(
        default="docs/PRD.docx",
        description="Product requirements document (DOCX or text)",
    )
    test_plan_prompt: str = Field(default="systemPrompts/testPlanPrompt.md")
    test_scenario_prompt: str = Field(default="systemPrompts/testScenarioPrompt.md")
    test_automation_prompt: str = Field(default="systemPrompts/testAutomationPrompt.md")
    step_definition_prompt: str = Field(default="systemPrompts/testStepGeneratorPrompt.md")
    temp_dir: str = Field(default="temp", description="Scratch directory root")
    test_plan_output: str = Field(default="testplan")
    test_scenario_output: str = Field(default="testscenario")
    test_automation_input: str | None = Field(
        default=None,
        description="Scenario document for feature generation (default: newest generated)",
    )
    feature_output: str = Field(default="scriptsForReviews")
    features_dir: str = Field(default="reviewedScript")
    step_definitions_output: str = Field(default="step-definitions")

    @field_validator("test_plan_output", "test_scenario_output", mode="after")
    @classmethod
    def strip_output_filename(cls, v: str) -> str:
        """Accept a file path as output location and keep its directory.

        The original tooling configured ``testplan/saucedemoplan.docx`` and
        only used the directory part.
        """
        path = PurePath(v)
        if path.suffix:
            return str(path.parent)
        return v

    @field_validator("*", mode="after")
    @classmethod
    def reject_blank(cls, v: Any) -> Any:
        """Reject empty path strings."""
        if isinstance(v, str) and not v.strip():
            raise ValueError("path must not be empty")
        return v


class DocumentMetadata(BaseModel):
    """Core properties written into generated DOCX files."""

    model_config = _MODEL_CONFIG

    title: str = ""
    subject: str = ""
    keywords: str = ""
    description: str = ""


class DocxConfig(BaseModel):
    """Document metadata per structured-document artifact type."""

    model_config = _MODEL_CONFIG

    test_plan: DocumentMetadata = Field(
        default_factory=lambda: DocumentMetadata(title="Test Plan", subject="Test Plan")
    )
    test_scenario: DocumentMetadata = Field(
        default_factory=lambda: DocumentMetadata(
            title="Test Scenarios", subject="Functional Test Scenarios"
        )
    )


class GeneratorConfig(BaseModel):
    """External text-generation CLI settings.

    Attributes:
        executable: CLI executable name or path.
        model: Default model identifier.
        models: Per-artifact-kind model overrides (e.g. ``test-plan``).
        timeout_ms: Generation timeout in milliseconds.
        version_args: Arguments used by preflight to probe the CLI.
        extra_args: Additional arguments appended to every invocation.
        auto_install: Let preflight pip-install missing Python libraries.

    """

    model_config = _MODEL_CONFIG

    executable: str = Field(default="gemini", min_length=1)
    model: str = Field(default="gemini-2.5-pro", min_length=1)
    models: dict[str, str] = Field(default_factory=dict)
    timeout_ms: int = Field(
        default=DEFAULT_TIMEOUT_MS,
        ge=1000,
        le=3_600_000,
        description="Generation timeout in milliseconds",
    )
    version_args: tuple[str, ...] = ("--version",)
    extra_args: tuple[str, ...] = ()
    auto_install: bool = True

    @field_validator("models", mode="before")
    @classmethod
    def normalize_model_keys(cls, v: Any) -> Any:
        """Accept ``test_plan`` / ``testPlan`` keys alongside ``test-plan``."""
        if not isinstance(v, dict):
            return v
        normalized: dict[str, Any] = {}
        for key, value in v.items():
            normalized[_normalize_kind(str(key))] = value
        return normalized


class Config(BaseModel):
    """Root configuration object."""

    model_config = _MODEL_CONFIG

    paths: PathsConfig = Field(default_factory=PathsConfig)
    docx: DocxConfig = Field(default_factory=DocxConfig)
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)

    def resolve_model(self, kind: str) -> str:
        """Return the model identifier configured for an artifact kind."""
        return self.generator.models.get(_normalize_kind(kind), self.generator.model)

    @staticmethod
    def resolve(path: str | Path, project_root: Path) -> Path:
        """Resolve a configured path against the project root."""
        candidate = Path(path).expanduser()
        if candidate.is_absolute():
            return candidate
        return project_root / candidate


def _normalize_kind(key: str) -> str:
    """Normalize ``testPlan`` / ``test_plan`` to ``test-plan``."""
    chars: list[str] = []
    for char in key:
        if char.isupper():
            chars.append("-")
            chars.append(char.lower())
        elif char == "_":
            chars.append("-")
        else:
            chars.append(char)
    return "".join(chars).strip("-")


def find_config_file(project_root: Path, explicit: Path | None = None) -> Path:
    """Locate the configuration file for a project.

    Args:
        project_root: Project root directory.
        explicit: Path given on the command line, if any.

    Returns:
        Path to the configuration file.

    Raises:
        ConfigError: If no configuration file exists.

    """
    if explicit is not None:
        path = explicit if explicit.is_absolute() else project_root / explicit
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        return path

    for candidate in (project_root / CONFIG_FILENAME, project_root / LEGACY_CONFIG_PATH):
        if candidate.is_file():
            return candidate

    raise ConfigError(
        f"No configuration found in {project_root} "
        f"(looked for {CONFIG_FILENAME} and {LEGACY_CONFIG_PATH})"
    )


def load_config(path: Path) -> Config:
    """Load and validate a configuration file.

    Args:
        path: YAML or JSON configuration file.

    Returns:
        Validated, immutable Config.

    Raises:
        ConfigError: If the file is missing, malformed or fails validation.

    """
    try:
        raw_text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}") from None
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw_text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Failed to load {path}: expected a mapping at top level, "
            f"got {type(data).__name__}"
        )

    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration in {path}: {problems}") from e

    logger.debug("Loaded configuration from %s", path)
    return config
