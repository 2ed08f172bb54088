"""Text generator backends."""

from testgen_assist.providers.base import BaseGenerator
from testgen_assist.providers.gemini_cli import GeminiCLIGenerator

__all__ = ["BaseGenerator", "GeminiCLIGenerator"]
