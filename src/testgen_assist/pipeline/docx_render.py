"""Markdown-like text to Word document conversion.

Conversion is line-oriented and one-way. Every line is stripped, then the
first matching rule wins:

    blank line          -> spacer paragraph
    "# text"            -> heading, bold 16pt
    "## text"           -> heading, bold 14pt
    "### text"          -> heading, bold 12pt
    "* text" / "- text" -> bullet (marker removed, no nesting)
    "1. text"           -> numbered item (kept verbatim)
    contains "**"       -> paragraph of alternating plain/bold runs
    anything else       -> plain paragraph

markdown_to_blocks() produces a format-independent block list;
render_docx() writes that list with python-docx.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from testgen_assist.core.config import DocumentMetadata

logger = logging.getLogger(__name__)

__all__ = [
    "BLOCK_SPACER",
    "BLOCK_HEADING1",
    "BLOCK_HEADING2",
    "BLOCK_HEADING3",
    "BLOCK_BULLET",
    "BLOCK_NUMBERED",
    "BLOCK_PARAGRAPH",
    "DocBlock",
    "TextRun",
    "markdown_to_blocks",
    "render_docx",
]

BLOCK_SPACER = "spacer"
BLOCK_HEADING1 = "heading1"
BLOCK_HEADING2 = "heading2"
BLOCK_HEADING3 = "heading3"
BLOCK_BULLET = "bullet"
BLOCK_NUMBERED = "numbered"
BLOCK_PARAGRAPH = "paragraph"

# Heading prefixes with their block kind and font size, most specific marker last
HEADING_RULES: tuple[tuple[str, str, int], ...] = (
    ("# ", BLOCK_HEADING1, 16),
    ("## ", BLOCK_HEADING2, 14),
    ("### ", BLOCK_HEADING3, 12),
)

BULLET_PREFIXES = ("* ", "- ")
NUMBERED_PATTERN = re.compile(r"^\d+\. ")
BOLD_DELIMITER = "**"


@dataclass(frozen=True)
class TextRun:
    """A span of text with uniform formatting."""

    text: str
    bold: bool = False
    size_pt: int | None = None


@dataclass(frozen=True)
class DocBlock:
    """One paragraph of the structured document."""

    kind: str
    runs: tuple[TextRun, ...] = ()

    @property
    def text(self) -> str:
        """Plain text of the paragraph."""
        return "".join(run.text for run in self.runs)


def _bold_runs(line: str) -> tuple[TextRun, ...]:
    """Split on ``**``; even segments are plain, odd segments bold."""
    runs: list[TextRun] = []
    for index, part in enumerate(line.split(BOLD_DELIMITER)):
        if part:
            runs.append(TextRun(part, bold=index % 2 == 1))
    return tuple(runs)


def _convert_line(line: str) -> DocBlock:
    if not line:
        return DocBlock(BLOCK_SPACER)

    for prefix, kind, size in HEADING_RULES:
        if line.startswith(prefix):
            return DocBlock(kind, (TextRun(line[len(prefix):], bold=True, size_pt=size),))

    if line.startswith(BULLET_PREFIXES):
        return DocBlock(BLOCK_BULLET, (TextRun(line[2:]),))

    if NUMBERED_PATTERN.match(line):
        return DocBlock(BLOCK_NUMBERED, (TextRun(line),))

    if BOLD_DELIMITER in line:
        return DocBlock(BLOCK_PARAGRAPH, _bold_runs(line))

    return DocBlock(BLOCK_PARAGRAPH, (TextRun(line),))


def markdown_to_blocks(text: str) -> list[DocBlock]:
    """Convert markdown-like text into document blocks, one per line.

    Examples:
        >>> markdown_to_blocks("## Setup")[0]
        DocBlock(kind='heading2', runs=(TextRun(text='Setup', bold=True, size_pt=14),))

    """
    return [_convert_line(line.strip()) for line in text.split("\n")]


def render_docx(
    blocks: list[DocBlock],
    path: Path,
    metadata: DocumentMetadata | None = None,
) -> None:
    """Write blocks to a .docx file.

    Args:
        blocks: Blocks from markdown_to_blocks().
        path: Destination file.
        metadata: Core document properties (title, subject, keywords, description).

    Raises:
        OSError: If the file cannot be saved.

    """
    from docx import Document
    from docx.shared import Pt

    document = Document()

    if metadata is not None:
        properties = document.core_properties
        properties.title = metadata.title
        properties.subject = metadata.subject
        properties.keywords = metadata.keywords
        properties.comments = metadata.description

    for block in blocks:
        if block.kind == BLOCK_BULLET:
            paragraph = document.add_paragraph(style="List Bullet")
        else:
            paragraph = document.add_paragraph()
        for run in block.runs:
            docx_run = paragraph.add_run(run.text)
            if run.bold:
                docx_run.bold = True
            if run.size_pt is not None:
                docx_run.font.size = Pt(run.size_pt)

    document.save(str(path))
    logger.debug("Rendered %d block(s) to %s", len(blocks), path)
