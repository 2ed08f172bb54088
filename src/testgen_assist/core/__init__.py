"""Core infrastructure: configuration, errors, subprocess commands and scratch space."""

from testgen_assist.core.config import Config, find_config_file, load_config
from testgen_assist.core.exceptions import (
    ConfigError,
    DocumentReadError,
    EmptyGenerationOutputError,
    GenerationError,
    GenerationProcessError,
    GenerationTimeoutError,
    InputNotFoundError,
    MissingDependencyError,
    ParseYieldedNothingError,
    TestgenAssistError,
    WriteError,
)
from testgen_assist.core.workspace import TemporaryWorkspace, WorkspaceHandle

__all__ = [
    "Config",
    "ConfigError",
    "DocumentReadError",
    "EmptyGenerationOutputError",
    "GenerationError",
    "GenerationProcessError",
    "GenerationTimeoutError",
    "InputNotFoundError",
    "MissingDependencyError",
    "ParseYieldedNothingError",
    "TemporaryWorkspace",
    "TestgenAssistError",
    "WorkspaceHandle",
    "WriteError",
    "find_config_file",
    "load_config",
]
