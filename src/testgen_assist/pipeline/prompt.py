"""Prompt composition.

A composed prompt is the instruction template, a fixed separator, a label
introducing the source material, and the extracted source text:

    <template>

    ---

    <LABEL>:

    <source text>
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["SEPARATOR", "LABEL_SUFFIX", "DEFAULT_LABEL", "ComposedPrompt", "compose"]

SEPARATOR = "\n\n---\n\n"
LABEL_SUFFIX = ":\n\n"
DEFAULT_LABEL = "CONTENT TO ANALYZE"


def compose(template: str, source_text: str, label: str = DEFAULT_LABEL) -> str:
    """Concatenate template and source text into one prompt payload.

    Examples:
        >>> compose("Write a plan.", "Login page", "PRD CONTENT TO ANALYZE")
        'Write a plan.\\n\\n---\\n\\nPRD CONTENT TO ANALYZE:\\n\\nLogin page'

    """
    return template + SEPARATOR + label + LABEL_SUFFIX + source_text


@dataclass(frozen=True)
class ComposedPrompt:
    """Template and source text awaiting concatenation."""

    template_text: str
    source_text: str
    label: str = DEFAULT_LABEL

    @property
    def text(self) -> str:
        """The prompt payload sent to the generator."""
        return compose(self.template_text, self.source_text, self.label)
