"""Artifact parsing of raw generator output.

Two variants, selected by the job's output kind:

- single-document: the whole output is one artifact body, with fence
  delimiter lines (```` ``` ```` / ```` ```javascript ````) removed.
- multi-artifact: the output is lexed into fenced blocks. Grammar:

      document := (text | block)*
      block    := fence, headerLine, body, closingFence
      fence    := "```" <language> (a whole line)
      closingFence := "```" (a whole line)

  Only blocks with the requested language whose first meaningful line
  starts with the header prefix (``Feature:``) become artifacts. Other
  blocks are skipped without error.

Usage:
    from testgen_assist.pipeline.parser import parse_multi_artifact

    artifacts = parse_multi_artifact(raw, fence_language="gherkin",
                                     header_prefix="Feature:", extension="feature")
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from testgen_assist.core.exceptions import ParseYieldedNothingError
from testgen_assist.pipeline.types import Artifact

logger = logging.getLogger(__name__)

__all__ = [
    "FENCE",
    "FencedBlock",
    "derive_artifact_name",
    "lex_fenced_blocks",
    "parse_multi_artifact",
    "parse_single_document",
    "strip_fence_lines",
]

FENCE = "```"

# Whole-line fence delimiter with optional language tag
FENCE_LINE_PATTERN = re.compile(r"^[ \t]*```[\w.+#-]*[ \t]*(?:\r?\n|$)", re.MULTILINE)

# Runs of characters not allowed in derived names
_NAME_SEPARATOR_PATTERN = re.compile(r"[^a-z0-9]+")

# Lines skipped when looking for a block's header (Gherkin tags and comments)
_NON_MEANINGFUL_PREFIXES = ("#", "@")

FALLBACK_NAME = "unnamed"


@dataclass(frozen=True)
class FencedBlock:
    """A fenced region of generator output.

    Attributes:
        language: Language tag following the opening fence ("" if none).
        text: Lines between the fences, unmodified.
        line: 1-based line number of the opening fence.

    """

    language: str
    text: str
    line: int


def strip_fence_lines(text: str) -> str:
    """Remove fence delimiter lines and surrounding whitespace.

    Examples:
        >>> strip_fence_lines("```javascript\\nconst a = 1;\\n```\\n")
        'const a = 1;'

    """
    return FENCE_LINE_PATTERN.sub("", text.strip()).strip()


def parse_single_document(raw: str, *, name: str) -> Artifact:
    """Interpret the whole generator output as one artifact.

    Args:
        raw: Raw generator output.
        name: File name for the artifact.

    Raises:
        ParseYieldedNothingError: If nothing remains after cleanup.

    """
    body = strip_fence_lines(raw)
    if not body:
        raise ParseYieldedNothingError(
            "Generated output contains no content once formatting is removed"
        )
    return Artifact(name=name, body=body)


def lex_fenced_blocks(raw: str, fence_language: str | None = None) -> list[FencedBlock]:
    """Split raw text into fenced blocks.

    Args:
        raw: Raw generator output.
        fence_language: Keep only blocks with this language tag
            (case-insensitive); None keeps every block.

    Returns:
        Blocks in order of appearance. A block left open at end of input
        is dropped.

    """
    blocks: list[FencedBlock] = []
    open_language: str | None = None
    open_line = 0
    body: list[str] = []

    for lineno, line in enumerate(raw.splitlines(), start=1):
        stripped = line.strip()
        if open_language is None:
            if stripped.startswith(FENCE):
                open_language = stripped[len(FENCE):].strip()
                open_line = lineno
                body = []
            continue

        if stripped == FENCE:
            blocks.append(FencedBlock(language=open_language, text="\n".join(body), line=open_line))
            open_language = None
        else:
            body.append(line)

    if open_language is not None:
        logger.debug("Dropping unterminated fenced block opened at line %d", open_line)

    if fence_language is None:
        return blocks
    wanted = fence_language.lower()
    return [block for block in blocks if block.language.lower() == wanted]


def _header_line(text: str) -> str | None:
    """Return the first meaningful line of a block, stripped."""
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(_NON_MEANINGFUL_PREFIXES):
            continue
        return stripped
    return None


def derive_artifact_name(header: str) -> str:
    """Derive a filesystem-safe name from a header string.

    Lowercases, collapses every run of non-alphanumerics into a single
    hyphen and trims hyphens from both ends.

    Examples:
        >>> derive_artifact_name("User Login & Logout")
        'user-login-logout'
        >>> derive_artifact_name("  --Checkout!!  ")
        'checkout'
        >>> derive_artifact_name("???")
        'unnamed'

    """
    name = _NAME_SEPARATOR_PATTERN.sub("-", header.lower()).strip("-")
    return name or FALLBACK_NAME


def parse_multi_artifact(
    raw: str,
    *,
    fence_language: str,
    header_prefix: str,
    extension: str,
) -> list[Artifact]:
    """Extract one artifact per valid fenced block.

    Args:
        raw: Raw generator output.
        fence_language: Language tag of candidate blocks (e.g. "gherkin").
        header_prefix: Required start of the first meaningful line.
        extension: File extension for artifact names.

    Returns:
        Artifacts in order of appearance. Names are not deduplicated.

    Raises:
        ParseYieldedNothingError: If no block is valid.

    """
    artifacts: list[Artifact] = []
    blocks = lex_fenced_blocks(raw, fence_language)

    for block in blocks:
        header_line = _header_line(block.text)
        if header_line is None or not header_line.startswith(header_prefix):
            logger.debug("Skipping fenced block at line %d: no %s header", block.line, header_prefix)
            continue
        header = header_line[len(header_prefix):].strip()
        artifacts.append(
            Artifact(
                name=f"{derive_artifact_name(header)}.{extension}",
                body=block.text.strip(),
                header=header,
            )
        )

    if not artifacts:
        raise ParseYieldedNothingError(
            f"No valid ```{fence_language} block starting with '{header_prefix}' "
            f"found in generated output ({len(blocks)} candidate block(s))"
        )

    logger.debug("Parsed %d artifact(s) from %d fenced block(s)", len(artifacts), len(blocks))
    return artifacts
