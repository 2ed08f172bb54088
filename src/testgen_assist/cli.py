"""Command-line interface for testgen-assist.

Commands:
- `testgen-assist plan`: PRD -> test plan document
- `testgen-assist scenarios`: newest test plan -> functional test scenarios
- `testgen-assist features`: scenarios -> Gherkin feature files
- `testgen-assist steps`: reviewed feature files -> step definitions
- `testgen-assist preflight`: check the generator CLI and libraries
- `testgen-assist task`: send an ad-hoc instruction to the generator CLI

Example:
    $ testgen-assist plan
    $ testgen-assist scenarios --model gemini-2.5-flash
    $ testgen-assist steps login.feature -p ~/projects/shop-tests
    $ testgen-assist task "Using the Playwright MCP server, open example.com"
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

import typer

from testgen_assist import __version__
from testgen_assist.cli_utils import (
    EXIT_ERROR,
    _error,
    _info,
    _setup_logging,
    _success,
    _validate_project_path,
    _warning,
    console,
)
from testgen_assist.core.config import Config, find_config_file, load_config
from testgen_assist.core.exceptions import ConfigError, TestgenAssistError
from testgen_assist.pipeline.engine import GenerationPipeline
from testgen_assist.pipeline.jobs import build_jobs
from testgen_assist.pipeline.preflight import PreflightChecker
from testgen_assist.pipeline.profiles import (
    DOCX_MODULES,
    STEP_DEFINITION,
    TEST_AUTOMATION,
    TEST_PLAN,
    TEST_SCENARIO,
)
from testgen_assist.pipeline.types import JobResult
from testgen_assist.providers.gemini_cli import GeminiCLIGenerator

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="testgen-assist",
    help="Generate test plans, scenarios, Gherkin features and step definitions with an LLM CLI",
    no_args_is_help=True,
)

_PROJECT_OPTION = typer.Option(
    ".",
    "--project",
    "-p",
    help="Path to project directory (default: current directory)",
)
_CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Config file (default: testgen-assist.yaml, then utility/config.json)",
)
_MODEL_OPTION = typer.Option(
    None,
    "--model",
    "-m",
    help="Model override (default: configured model for the artifact kind)",
)
_TIMEOUT_OPTION = typer.Option(
    None,
    "--timeout",
    min=1000,
    help="Generation timeout in milliseconds",
)
_SKIP_PREFLIGHT_OPTION = typer.Option(
    False,
    "--skip-preflight",
    help="Skip the dependency check",
)
_VERBOSE_OPTION = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Enable debug logging",
)
_QUIET_OPTION = typer.Option(
    False,
    "--quiet",
    "-q",
    help="Only show warnings and errors",
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"testgen-assist {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Generate test artifacts from source documents."""


def _load_project_config(project_path: Path, config: Path | None) -> Config:
    return load_config(find_config_file(project_path, config))


def _load_config_or_defaults(project_path: Path, config: Path | None) -> Config:
    """Load config, falling back to defaults when none is found."""
    try:
        return _load_project_config(project_path, config)
    except ConfigError as e:
        if config is not None:
            raise
        _warning(f"{e}; using defaults")
        return Config()


def _make_generator(cfg: Config, project_path: Path) -> GeminiCLIGenerator:
    return GeminiCLIGenerator(
        executable=cfg.generator.executable,
        extra_args=cfg.generator.extra_args,
        default_model=cfg.generator.model,
        cwd=project_path,
    )


def _make_preflight(cfg: Config) -> PreflightChecker:
    return PreflightChecker(
        cfg.generator.executable,
        version_args=cfg.generator.version_args,
        auto_install=cfg.generator.auto_install,
    )


def _print_results(results: Sequence[JobResult]) -> None:
    for result in results:
        manifest = result.manifest
        _success(f"Generated {len(manifest.files)} file(s) in {manifest.output_dir}")
        for written in manifest.files:
            console.print(f"  - {written.name} ({written.size:,} bytes)", highlight=False)
        if manifest.index_path is not None:
            console.print(f"  - {manifest.index_path.name} (summary)", highlight=False)


def _report_partial(pipeline: GenerationPipeline | None) -> None:
    """List output of jobs that finished before a batch was aborted."""
    if pipeline is None or not pipeline.completed:
        return
    _warning(f"{len(pipeline.completed)} job(s) completed before the failure:")
    _print_results(pipeline.completed)


def _run_generation(
    kind: str,
    input_file: str | None,
    *,
    project: str,
    config: Path | None,
    model: str | None,
    timeout: int | None,
    skip_preflight: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Shared body of the generation commands."""
    _setup_logging(verbose=verbose, quiet=quiet)
    project_path = _validate_project_path(project)

    pipeline: GenerationPipeline | None = None
    try:
        cfg = _load_project_config(project_path, config)
        jobs = build_jobs(cfg, project_path, kind, input_file, model=model, timeout_ms=timeout)
        pipeline = GenerationPipeline(
            cfg,
            _make_generator(cfg, project_path),
            project_root=project_path,
            preflight=None if skip_preflight else _make_preflight(cfg),
        )
        results = pipeline.run_all(jobs)
    except TestgenAssistError as e:
        _error(str(e))
        _report_partial(pipeline)
        raise typer.Exit(code=EXIT_ERROR) from None
    except KeyboardInterrupt:
        _error("Interrupted")
        _report_partial(pipeline)
        raise typer.Exit(code=EXIT_ERROR) from None

    _print_results(results)


@app.command("plan")
def plan_command(
    input_file: str | None = typer.Argument(
        None,
        help="Source PRD (default: paths.prd from config)",
    ),
    project: str = _PROJECT_OPTION,
    config: Path | None = _CONFIG_OPTION,
    model: str | None = _MODEL_OPTION,
    timeout: int | None = _TIMEOUT_OPTION,
    skip_preflight: bool = _SKIP_PREFLIGHT_OPTION,
    verbose: bool = _VERBOSE_OPTION,
    quiet: bool = _QUIET_OPTION,
) -> None:
    """Generate a test plan document from the PRD."""
    _run_generation(
        TEST_PLAN.kind,
        input_file,
        project=project,
        config=config,
        model=model,
        timeout=timeout,
        skip_preflight=skip_preflight,
        verbose=verbose,
        quiet=quiet,
    )


@app.command("scenarios")
def scenarios_command(
    input_file: str | None = typer.Argument(
        None,
        help="Source test plan (default: newest generated test plan)",
    ),
    project: str = _PROJECT_OPTION,
    config: Path | None = _CONFIG_OPTION,
    model: str | None = _MODEL_OPTION,
    timeout: int | None = _TIMEOUT_OPTION,
    skip_preflight: bool = _SKIP_PREFLIGHT_OPTION,
    verbose: bool = _VERBOSE_OPTION,
    quiet: bool = _QUIET_OPTION,
) -> None:
    """Generate functional test scenarios from a test plan."""
    _run_generation(
        TEST_SCENARIO.kind,
        input_file,
        project=project,
        config=config,
        model=model,
        timeout=timeout,
        skip_preflight=skip_preflight,
        verbose=verbose,
        quiet=quiet,
    )


@app.command("features")
def features_command(
    input_file: str | None = typer.Argument(
        None,
        help="Source scenario document (default: paths.test_automation_input, "
        "then newest generated scenarios)",
    ),
    project: str = _PROJECT_OPTION,
    config: Path | None = _CONFIG_OPTION,
    model: str | None = _MODEL_OPTION,
    timeout: int | None = _TIMEOUT_OPTION,
    skip_preflight: bool = _SKIP_PREFLIGHT_OPTION,
    verbose: bool = _VERBOSE_OPTION,
    quiet: bool = _QUIET_OPTION,
) -> None:
    """Generate Gherkin feature files for review from test scenarios."""
    _run_generation(
        TEST_AUTOMATION.kind,
        input_file,
        project=project,
        config=config,
        model=model,
        timeout=timeout,
        skip_preflight=skip_preflight,
        verbose=verbose,
        quiet=quiet,
    )


@app.command("steps")
def steps_command(
    feature_file: str | None = typer.Argument(
        None,
        help="Feature file name in the reviewed-features directory (default: all)",
    ),
    project: str = _PROJECT_OPTION,
    config: Path | None = _CONFIG_OPTION,
    model: str | None = _MODEL_OPTION,
    timeout: int | None = _TIMEOUT_OPTION,
    skip_preflight: bool = _SKIP_PREFLIGHT_OPTION,
    verbose: bool = _VERBOSE_OPTION,
    quiet: bool = _QUIET_OPTION,
) -> None:
    """Generate step definitions for reviewed feature files, one file each."""
    _run_generation(
        STEP_DEFINITION.kind,
        feature_file,
        project=project,
        config=config,
        model=model,
        timeout=timeout,
        skip_preflight=skip_preflight,
        verbose=verbose,
        quiet=quiet,
    )


@app.command("preflight")
def preflight_command(
    project: str = _PROJECT_OPTION,
    config: Path | None = _CONFIG_OPTION,
    verbose: bool = _VERBOSE_OPTION,
    quiet: bool = _QUIET_OPTION,
) -> None:
    """Check that the generator CLI and required libraries are available."""
    _setup_logging(verbose=verbose, quiet=quiet)
    project_path = _validate_project_path(project)

    try:
        cfg = _load_config_or_defaults(project_path, config)
        result = _make_preflight(cfg).verify(DOCX_MODULES)
    except TestgenAssistError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None

    _success(f"{cfg.generator.executable} CLI: {result.cli_version}")
    for module in result.available_modules:
        _success(f"{module} is available")
    if result.installed_modules:
        _info(f"Installed: {', '.join(result.installed_modules)}")


@app.command("task")
def task_command(
    prompt: str = typer.Argument(..., help="Natural-language instruction for the generator CLI"),
    project: str = _PROJECT_OPTION,
    config: Path | None = _CONFIG_OPTION,
    model: str | None = _MODEL_OPTION,
    timeout: int | None = _TIMEOUT_OPTION,
    verbose: bool = _VERBOSE_OPTION,
    quiet: bool = _QUIET_OPTION,
) -> None:
    """Send an ad-hoc instruction (e.g. a browser task via MCP) and print the reply."""
    _setup_logging(verbose=verbose, quiet=quiet)
    project_path = _validate_project_path(project)

    if not prompt.strip():
        _error("Prompt must not be empty")
        raise typer.Exit(code=EXIT_ERROR)

    try:
        cfg = _load_config_or_defaults(project_path, config)
        generator = _make_generator(cfg, project_path)
        reply = generator.run_task(
            prompt,
            model=model,
            timeout_ms=timeout if timeout is not None else cfg.generator.timeout_ms,
        )
    except TestgenAssistError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None

    console.print(reply, markup=False, highlight=False)


if __name__ == "__main__":
    app()
