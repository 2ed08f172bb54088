"""Dependency preflight for generation jobs.

Verifies, before any job work begins, that:
1. The generator CLI is installed (``gemini --version`` succeeds).
   A missing CLI is fatal; it is never installed automatically.
2. Required Python libraries resolve. Missing ones are installed once
   with ``python -m pip install`` and then re-checked.

Usage:
    checker = PreflightChecker("gemini")
    checker.verify([("docx", "python-docx")])
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
import subprocess
import sys
from collections.abc import Sequence
from dataclasses import dataclass

from testgen_assist.core.exceptions import MissingDependencyError
from testgen_assist.core.platform_command import resolve_executable
from testgen_assist.providers.gemini_cli import CLI_INSTALL_HINT

logger = logging.getLogger(__name__)

__all__ = ["PreflightChecker", "PreflightResult"]

DEFAULT_CHECK_TIMEOUT = 30
INSTALL_TIMEOUT = 600


@dataclass(frozen=True)
class PreflightResult:
    """Outcome of a successful preflight.

    Attributes:
        cli_version: Version string reported by the CLI.
        available_modules: Modules that resolved (import names).
        installed_modules: Distributions installed during this preflight.

    """

    cli_version: str
    available_modules: tuple[str, ...] = ()
    installed_modules: tuple[str, ...] = ()


class PreflightChecker:
    """Checks the generator CLI and Python library availability."""

    def __init__(
        self,
        executable: str,
        *,
        version_args: Sequence[str] = ("--version",),
        timeout: int = DEFAULT_CHECK_TIMEOUT,
        auto_install: bool = True,
    ) -> None:
        self._executable = executable
        self._version_args = list(version_args)
        self._timeout = timeout
        self._auto_install = auto_install
        self._cli_version: str | None = None
        self._verified_modules: set[str] = set()

    def verify(self, required_modules: Sequence[tuple[str, str]] = ()) -> PreflightResult:
        """Run all checks.

        Args:
            required_modules: (import name, distribution name) pairs.

        Returns:
            PreflightResult describing what was found or installed.

        Raises:
            MissingDependencyError: If the CLI is unavailable or a library
                is still missing after the install attempt.

        """
        logger.info("Checking dependencies...")
        cli_version = self.check_cli()
        installed = self.ensure_modules(required_modules)
        return PreflightResult(
            cli_version=cli_version,
            available_modules=tuple(name for name, _ in required_modules),
            installed_modules=installed,
        )

    def check_cli(self) -> str:
        """Probe the CLI with its version command; memoized on success."""
        if self._cli_version is not None:
            return self._cli_version

        command = [resolve_executable(self._executable), *self._version_args]
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except FileNotFoundError:
            raise MissingDependencyError(
                f"{self._executable} CLI not found.",
                dependency=self._executable,
                guidance=CLI_INSTALL_HINT,
            ) from None
        except subprocess.TimeoutExpired:
            raise MissingDependencyError(
                f"{self._executable} --version did not respond within {self._timeout}s.",
                dependency=self._executable,
                guidance=CLI_INSTALL_HINT,
            ) from None
        except OSError as e:
            raise MissingDependencyError(
                f"Cannot run {self._executable}: {e}",
                dependency=self._executable,
                guidance=CLI_INSTALL_HINT,
            ) from e

        if result.returncode != 0:
            raise MissingDependencyError(
                f"{self._executable} --version exited with code {result.returncode}: "
                f"{result.stderr.strip()[:200]}",
                dependency=self._executable,
                guidance=CLI_INSTALL_HINT,
            )

        self._cli_version = result.stdout.strip() or "unknown"
        logger.info("%s CLI is available (%s)", self._executable, self._cli_version)
        return self._cli_version

    def ensure_modules(self, required_modules: Sequence[tuple[str, str]]) -> tuple[str, ...]:
        """Make sure every module resolves, installing missing ones once.

        Returns:
            Distributions installed by this call.

        """
        missing: list[tuple[str, str]] = []
        for module, dist in required_modules:
            if module in self._verified_modules:
                continue
            if _module_available(module):
                self._verified_modules.add(module)
            else:
                missing.append((module, dist))

        if not missing:
            return ()

        dists = [dist for _, dist in missing]
        if not self._auto_install:
            raise MissingDependencyError(
                f"Missing packages: {', '.join(dists)}",
                dependency=", ".join(dists),
                guidance=f"Install them with: pip install {' '.join(dists)}",
            )

        logger.warning("Missing packages: %s", ", ".join(dists))
        logger.info("Installing missing packages...")
        self._pip_install(dists)

        importlib.invalidate_caches()
        still_missing = [dist for module, dist in missing if not _module_available(module)]
        if still_missing:
            raise MissingDependencyError(
                f"Packages still unavailable after install: {', '.join(still_missing)}",
                dependency=", ".join(still_missing),
                guidance=f"Install them manually: pip install {' '.join(still_missing)}",
            )

        self._verified_modules.update(module for module, _ in missing)
        logger.info("Packages installed successfully")
        return tuple(dists)

    def _pip_install(self, dists: Sequence[str]) -> None:
        command = [sys.executable, "-m", "pip", "install", *dists]
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=INSTALL_TIMEOUT,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise MissingDependencyError(
                f"Failed to install required packages: {e}",
                dependency=", ".join(dists),
                guidance=f"Install them manually: pip install {' '.join(dists)}",
            ) from e

        if result.returncode != 0:
            raise MissingDependencyError(
                "Failed to install required packages: "
                f"pip exited with code {result.returncode}: {result.stderr.strip()[-300:]}",
                dependency=", ".join(dists),
                guidance=f"Install them manually: pip install {' '.join(dists)}",
            )


def _module_available(module: str) -> bool:
    try:
        return importlib.util.find_spec(module) is not None
    except (ImportError, ValueError):
        return False
