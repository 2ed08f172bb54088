"""Tests for the generation pipeline engine.

Every test runs the real pipeline against a canned-text generator double,
so the whole flow from source document to written files is exercised
without the external CLI.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from testgen_assist.core.config import Config
from testgen_assist.core.exceptions import (
    EmptyGenerationOutputError,
    GenerationProcessError,
    InputNotFoundError,
    MissingDependencyError,
    ParseYieldedNothingError,
    WriteError,
)
from testgen_assist.pipeline.engine import GenerationPipeline
from testgen_assist.pipeline.jobs import build_jobs
from testgen_assist.pipeline.profiles import DOCX_MODULES
from testgen_assist.pipeline.types import JobState
from testgen_assist.pipeline.writer import INDEX_FILENAME

NOW = datetime(2026, 10, 17, 9, 30, 15)
TS = "20261017093015"

SUCCESS_STATES = (
    JobState.IDLE,
    JobState.PREFLIGHTED,
    JobState.COMPOSED,
    JobState.STAGED,
    JobState.INVOKED,
    JobState.PARSED,
    JobState.WRITTEN,
    JobState.CLEANED_UP,
)


@pytest.fixture
def automation_config() -> Config:
    return Config.model_validate(
        {"paths": {"prd": "docs/PRD.md", "testAutomationInput": "docs/scenarios.md"}}
    )


@pytest.fixture
def scenarios_source(tmp_project: Path) -> Path:
    path = tmp_project / "docs" / "scenarios.md"
    path.write_text("Scenario: user logs in", encoding="utf-8")
    return path


def _assert_no_scratch(project: Path) -> None:
    temp_root = project / "temp"
    assert not temp_root.exists() or not any(temp_root.rglob("*"))


# =============================================================================
# Successful jobs
# =============================================================================


class TestSingleDocumentJobs:
    """Test plan / scenario style jobs."""

    def test_test_plan_written_as_docx(
        self, config: Config, tmp_project: Path, fake_generator
    ) -> None:
        """A test plan lands in its own timestamped run directory."""
        pipeline = GenerationPipeline(config, fake_generator, project_root=tmp_project)
        (job,) = build_jobs(config, tmp_project, "test-plan", now=NOW)

        result = pipeline.run(job)

        run_dir = tmp_project / "testplan" / f"test-plan-{TS}"
        assert result.manifest.output_dir == run_dir
        assert [f.name for f in result.manifest.files] == [f"test-plan-{TS}.docx"]
        assert (run_dir / f"test-plan-{TS}.docx").is_file()
        assert result.manifest.index_path is None
        assert result.states == SUCCESS_STATES
        assert pipeline.history == SUCCESS_STATES

    def test_prompt_composed_from_template_and_source(
        self, config: Config, tmp_project: Path, fake_generator
    ) -> None:
        pipeline = GenerationPipeline(config, fake_generator, project_root=tmp_project)
        (job,) = build_jobs(config, tmp_project, "test-plan", model="m1", now=NOW)

        pipeline.run(job)

        call = fake_generator.calls[0]
        assert call["prompt"] == (
            "Write a test plan.\n\n---\n\nPRD CONTENT TO ANALYZE:\n\nUsers can log in."
        )
        assert call["model"] == "m1"
        assert call["timeout_ms"] == 60000

    def test_docx_metadata_applied(self, tmp_project: Path, fake_generator) -> None:
        from docx import Document

        config = Config.model_validate(
            {"paths": {"prd": "docs/PRD.md"}, "docx": {"testPlan": {"title": "Shop Plan"}}}
        )
        pipeline = GenerationPipeline(config, fake_generator, project_root=tmp_project)

        (result,) = pipeline.run_all(build_jobs(config, tmp_project, "test-plan", now=NOW))

        document = Document(str(result.manifest.files[0].path))
        assert document.core_properties.title == "Shop Plan"

    def test_scratch_files_removed_on_success(
        self, config: Config, tmp_project: Path, fake_generator
    ) -> None:
        pipeline = GenerationPipeline(config, fake_generator, project_root=tmp_project)
        pipeline.run_all(build_jobs(config, tmp_project, "test-plan", now=NOW))

        assert fake_generator.calls[0]["scratch_dir"].parent == tmp_project / "temp"
        _assert_no_scratch(tmp_project)


class TestMultiArtifactJobs:
    """Feature file generation."""

    def test_single_login_feature(
        self, automation_config: Config, tmp_project: Path, scenarios_source: Path,
        make_generator,
    ) -> None:
        """One fenced Feature: Login block yields login.feature with the body verbatim."""
        body = "Feature: Login\n  Scenario: ok\n    Given I open the app"
        generator = make_generator(reply=f"```gherkin\n{body}\n```\n")
        pipeline = GenerationPipeline(automation_config, generator, project_root=tmp_project)

        (result,) = pipeline.run_all(
            build_jobs(automation_config, tmp_project, "test-automation", now=NOW)
        )

        run_dir = tmp_project / "scriptsForReviews" / f"feature-files-{TS}"
        assert (run_dir / "login.feature").read_text(encoding="utf-8") == body
        assert result.manifest.index_path == run_dir / INDEX_FILENAME

    def test_index_enumerates_all_features(
        self, automation_config: Config, tmp_project: Path, scenarios_source: Path,
        make_generator, features_text: str,
    ) -> None:
        generator = make_generator(reply=features_text)
        pipeline = GenerationPipeline(automation_config, generator, project_root=tmp_project)

        (result,) = pipeline.run_all(
            build_jobs(automation_config, tmp_project, "test-automation", now=NOW)
        )

        index = result.manifest.index_path.read_text(encoding="utf-8")
        assert "user-login.feature" in index
        assert "checkout-flow.feature" in index
        assert "Source: scenarios.md" in index
        assert "Prompt: testAutomationPrompt.md" in index

    def test_invalid_blocks_dropped(
        self, automation_config: Config, tmp_project: Path, scenarios_source: Path,
        make_generator,
    ) -> None:
        """N valid blocks plus M invalid ones give exactly N artifacts."""
        reply = (
            "```gherkin\nFeature: One\n```\n"
            "```gherkin\nScenario: no header\n```\n"
            "```gherkin\nFeature: Two\n```\n"
            "```json\n{}\n```\n"
        )
        pipeline = GenerationPipeline(
            automation_config, make_generator(reply=reply), project_root=tmp_project
        )

        (result,) = pipeline.run_all(
            build_jobs(automation_config, tmp_project, "test-automation", now=NOW)
        )

        assert [f.name for f in result.manifest.files] == ["one.feature", "two.feature"]


class TestStepDefinitionJobs:
    """Per-feature step definition generation."""

    @pytest.fixture
    def reviewed(self, tmp_project: Path) -> Path:
        directory = tmp_project / "reviewedScript"
        directory.mkdir()
        (directory / "login.feature").write_text("Feature: Login", encoding="utf-8")
        (directory / "checkout.feature").write_text("Feature: Checkout", encoding="utf-8")
        return directory

    def test_one_js_file_per_feature(
        self, config: Config, tmp_project: Path, reviewed: Path, make_generator,
        steps_text: str,
    ) -> None:
        """Each feature yields <stem>.js, fences stripped, in one shared run directory."""
        generator = make_generator(reply=steps_text)
        pipeline = GenerationPipeline(config, generator, project_root=tmp_project)

        results = pipeline.run_all(build_jobs(config, tmp_project, "step-definition", now=NOW))

        run_dir = tmp_project / "step-definitions" / f"step-definitions-{TS}"
        assert {r.manifest.output_dir for r in results} == {run_dir}
        assert sorted(p.name for p in run_dir.iterdir()) == ["checkout.js", "login.js"]
        code = (run_dir / "login.js").read_text(encoding="utf-8")
        assert code.startswith("const { Given } = require('@cucumber/cucumber');")
        assert "```" not in code
        assert "FEATURE FILE CONTENT:\n\nFeature: Login" in generator.calls[1]["prompt"]


# =============================================================================
# Failures
# =============================================================================


class TestFailures:
    """Every failure aborts the job, cleans up and surfaces a typed error."""

    def test_empty_output(self, config: Config, tmp_project: Path, make_generator) -> None:
        """An empty generation result writes nothing."""
        pipeline = GenerationPipeline(config, make_generator(reply=""), project_root=tmp_project)
        (job,) = build_jobs(config, tmp_project, "test-plan", now=NOW)

        with pytest.raises(EmptyGenerationOutputError):
            pipeline.run(job)

        output_root = tmp_project / "testplan"
        assert not output_root.exists() or not any(output_root.rglob("*.docx"))
        assert pipeline.history[-2:] == (JobState.FAILED, JobState.CLEANED_UP)
        _assert_no_scratch(tmp_project)

    def test_whitespace_output(self, config: Config, tmp_project: Path, make_generator) -> None:
        pipeline = GenerationPipeline(
            config, make_generator(reply=" \n\t "), project_root=tmp_project
        )
        with pytest.raises(EmptyGenerationOutputError):
            pipeline.run_all(build_jobs(config, tmp_project, "test-plan", now=NOW))

    def test_process_failure_cleans_up(
        self, config: Config, tmp_project: Path, failing_generator
    ) -> None:
        pipeline = GenerationPipeline(config, failing_generator, project_root=tmp_project)

        with pytest.raises(GenerationProcessError):
            pipeline.run_all(build_jobs(config, tmp_project, "test-plan", now=NOW))

        assert pipeline.history == (
            JobState.IDLE,
            JobState.PREFLIGHTED,
            JobState.COMPOSED,
            JobState.STAGED,
            JobState.FAILED,
            JobState.CLEANED_UP,
        )
        _assert_no_scratch(tmp_project)

    def test_control_characters_in_docx_output(
        self, config: Config, tmp_project: Path, make_generator
    ) -> None:
        """Text python-docx rejects surfaces as WriteError with no output left."""
        pipeline = GenerationPipeline(
            config,
            make_generator(reply="# Plan\nStep one\x0c done\n"),
            project_root=tmp_project,
        )

        with pytest.raises(WriteError, match="XML compatible"):
            pipeline.run_all(build_jobs(config, tmp_project, "test-plan", now=NOW))

        output_root = tmp_project / "testplan"
        assert not output_root.exists() or not any(output_root.rglob("*"))
        assert pipeline.history[-2:] == (JobState.FAILED, JobState.CLEANED_UP)
        _assert_no_scratch(tmp_project)

    def test_no_valid_feature_is_fatal(
        self, automation_config: Config, tmp_project: Path, scenarios_source: Path,
        make_generator,
    ) -> None:
        pipeline = GenerationPipeline(
            automation_config,
            make_generator(reply="Sorry, I cannot help with that."),
            project_root=tmp_project,
        )

        with pytest.raises(ParseYieldedNothingError):
            pipeline.run_all(
                build_jobs(automation_config, tmp_project, "test-automation", now=NOW)
            )

        assert not (tmp_project / "scriptsForReviews").exists()
        _assert_no_scratch(tmp_project)

    def test_missing_template_before_staging(
        self, config: Config, tmp_project: Path, fake_generator
    ) -> None:
        (tmp_project / "systemPrompts" / "testPlanPrompt.md").unlink()
        pipeline = GenerationPipeline(config, fake_generator, project_root=tmp_project)

        with pytest.raises(InputNotFoundError, match="Prompt file not found"):
            pipeline.run_all(build_jobs(config, tmp_project, "test-plan", now=NOW))

        assert fake_generator.calls == []
        assert pipeline.history == (
            JobState.IDLE,
            JobState.PREFLIGHTED,
            JobState.FAILED,
            JobState.CLEANED_UP,
        )

    def test_write_failure_removes_run_directory(
        self, config: Config, tmp_project: Path, fake_generator
    ) -> None:
        pipeline = GenerationPipeline(config, fake_generator, project_root=tmp_project)

        with patch(
            "testgen_assist.pipeline.writer.render_docx",
            side_effect=OSError("disk full"),
        ):
            with pytest.raises(WriteError, match="disk full"):
                pipeline.run_all(build_jobs(config, tmp_project, "test-plan", now=NOW))

        assert list((tmp_project / "testplan").iterdir()) == []
        _assert_no_scratch(tmp_project)

    def test_first_failure_aborts_batch(
        self, config: Config, tmp_project: Path, failing_generator
    ) -> None:
        directory = tmp_project / "reviewedScript"
        directory.mkdir()
        for name in ("a.feature", "b.feature"):
            (directory / name).write_text("Feature: x", encoding="utf-8")
        pipeline = GenerationPipeline(config, failing_generator, project_root=tmp_project)

        with pytest.raises(GenerationProcessError):
            pipeline.run_all(build_jobs(config, tmp_project, "step-definition", now=NOW))

        assert len(failing_generator.calls) == 1

    def test_completed_jobs_survive_later_failure(
        self, config: Config, tmp_project: Path, make_generator, steps_text: str
    ) -> None:
        """Jobs finished before the failing one stay on disk and are reported."""
        directory = tmp_project / "reviewedScript"
        directory.mkdir()
        for name in ("a.feature", "b.feature"):
            (directory / name).write_text("Feature: x", encoding="utf-8")
        generator = make_generator(
            reply=steps_text,
            error=GenerationProcessError("gemini exited with code 1", exit_code=1),
            fail_from_call=2,
        )
        pipeline = GenerationPipeline(config, generator, project_root=tmp_project)

        with pytest.raises(GenerationProcessError):
            pipeline.run_all(build_jobs(config, tmp_project, "step-definition", now=NOW))

        (done,) = pipeline.completed
        assert [f.name for f in done.manifest.files] == ["a.js"]
        assert (done.manifest.output_dir / "a.js").is_file()


# =============================================================================
# Preflight
# =============================================================================


class TestPreflight:
    def test_preflight_receives_required_modules(
        self, config: Config, tmp_project: Path, fake_generator
    ) -> None:
        preflight = MagicMock()
        pipeline = GenerationPipeline(
            config, fake_generator, project_root=tmp_project, preflight=preflight
        )

        pipeline.run_all(build_jobs(config, tmp_project, "test-plan", now=NOW))

        preflight.verify.assert_called_once_with(DOCX_MODULES)

    def test_preflight_failure_stops_before_generation(
        self, config: Config, tmp_project: Path, fake_generator
    ) -> None:
        preflight = MagicMock()
        preflight.verify.side_effect = MissingDependencyError("gemini CLI not found.")
        pipeline = GenerationPipeline(
            config, fake_generator, project_root=tmp_project, preflight=preflight
        )

        with pytest.raises(MissingDependencyError):
            pipeline.run_all(build_jobs(config, tmp_project, "test-plan", now=NOW))

        assert fake_generator.calls == []
        assert pipeline.history == (JobState.IDLE, JobState.FAILED, JobState.CLEANED_UP)
