"""Pytest configuration and fixtures for testgen-assist tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from testgen_assist.core.config import Config
from testgen_assist.core.exceptions import GenerationProcessError
from testgen_assist.core.workspace import TemporaryWorkspace, WorkspaceHandle
from testgen_assist.providers.base import BaseGenerator

PLAN_TEXT = """# Test Plan

## Scope
* Login
* Checkout

1. Verify login
This is **important** text
"""

FEATURES_TEXT = """Here are the feature files.

```gherkin
Feature: User Login
  Scenario: Valid credentials
    Given I am on the login page
```

Some commentary between blocks.

```gherkin
Feature: Checkout Flow
  Scenario: Pay
    Given I have items in my cart
```
"""

STEPS_TEXT = """```javascript
const { Given } = require('@cucumber/cucumber');

Given('I am on the login page', async function () {});
```
"""


class FakeGenerator(BaseGenerator):
    """Generator double returning canned text and recording its calls."""

    def __init__(
        self,
        reply: str = PLAN_TEXT,
        error: Exception | None = None,
        *,
        fail_from_call: int = 1,
    ) -> None:
        self.reply = reply
        self.error = error
        # 1-based call number from which ``error`` is raised
        self.fail_from_call = fail_from_call
        self.calls: list[dict] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def default_model(self) -> str | None:
        return "fake-model"

    def generate(
        self,
        prompt: str,
        *,
        model: str,
        timeout_ms: int,
        workspace: TemporaryWorkspace,
        handle: WorkspaceHandle,
    ) -> str:
        workspace.write(handle, "combined_prompt.txt", prompt)
        self.calls.append(
            {
                "prompt": prompt,
                "model": model,
                "timeout_ms": timeout_ms,
                "scratch_dir": handle.path,
            }
        )
        if self.error is not None and len(self.calls) >= self.fail_from_call:
            raise self.error
        return self.reply


def write_docx(path: Path, paragraphs: list[str]) -> Path:
    """Create a small .docx file with one paragraph per entry."""
    from docx import Document

    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    path.parent.mkdir(parents=True, exist_ok=True)
    document.save(str(path))
    return path


@pytest.fixture
def fake_generator() -> FakeGenerator:
    """Generator double replying with a markdown test plan."""
    return FakeGenerator()


@pytest.fixture
def failing_generator() -> FakeGenerator:
    """Generator double failing like a CLI exiting with status 1."""
    return FakeGenerator(error=GenerationProcessError("gemini exited with code 1", exit_code=1))


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Project directory with prompt templates, a PRD and a config file."""
    prompts = tmp_path / "systemPrompts"
    prompts.mkdir()
    (prompts / "testPlanPrompt.md").write_text("Write a test plan.", encoding="utf-8")
    (prompts / "testScenarioPrompt.md").write_text("Write scenarios.", encoding="utf-8")
    (prompts / "testAutomationPrompt.md").write_text("Write features.", encoding="utf-8")
    (prompts / "testStepGeneratorPrompt.md").write_text("Write steps.", encoding="utf-8")

    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "PRD.md").write_text("Users can log in.", encoding="utf-8")

    (tmp_path / "testgen-assist.yaml").write_text(
        "paths:\n  prd: docs/PRD.md\n",
        encoding="utf-8",
    )
    return tmp_path


@pytest.fixture
def config() -> Config:
    """Default configuration with a text PRD."""
    return Config.model_validate({"paths": {"prd": "docs/PRD.md"}})


@pytest.fixture
def make_generator() -> type[FakeGenerator]:
    """Factory for generator doubles with custom replies or errors."""
    return FakeGenerator


@pytest.fixture
def make_docx():
    """Factory writing small .docx files."""
    return write_docx


@pytest.fixture
def plan_text() -> str:
    return PLAN_TEXT


@pytest.fixture
def features_text() -> str:
    return FEATURES_TEXT


@pytest.fixture
def steps_text() -> str:
    return STEPS_TEXT
