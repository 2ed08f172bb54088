"""Source document discovery and text extraction.

Supported source formats:
- ``.docx``: paragraph text via python-docx, table cell text appended
- anything else: read as UTF-8 text (markdown, plain text, feature files)
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path

from testgen_assist.core.exceptions import DocumentReadError, InputNotFoundError

logger = logging.getLogger(__name__)

__all__ = [
    "FEATURE_SUFFIX",
    "find_feature_files",
    "find_latest_document",
    "read_prompt_template",
    "read_source_document",
]

FEATURE_SUFFIX = ".feature"


def _extract_docx_text(path: Path) -> str:
    from docx import Document
    from docx.opc.exceptions import PackageNotFoundError

    try:
        document = Document(str(path))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
        raise DocumentReadError(f"Failed to read DOCX document {path}: {e}") from e

    lines = [paragraph.text for paragraph in document.paragraphs]

    if document.tables:
        logger.warning(
            "Warnings while reading DOCX %s: %d table(s) flattened to plain text",
            path.name,
            len(document.tables),
        )
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                lines.append(" | ".join(cells))

    return "\n".join(lines)


def read_source_document(path: Path) -> str:
    """Extract plain text from a source document.

    Args:
        path: Document to read.

    Returns:
        Extracted text.

    Raises:
        InputNotFoundError: If the document does not exist.
        DocumentReadError: If the document cannot be decoded.

    """
    if not path.is_file():
        raise InputNotFoundError(f"Source document not found: {path}")

    logger.info("Reading source document: %s", path.name)
    try:
        if path.suffix.lower() == ".docx":
            text = _extract_docx_text(path)
        else:
            text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise DocumentReadError(f"Cannot decode {path} as UTF-8: {e}") from e
    except OSError as e:
        raise DocumentReadError(f"Failed to read {path}: {e}") from e

    if not text.strip():
        logger.warning("Source document %s contains no extractable text", path.name)
    return text


def read_prompt_template(path: Path) -> str:
    """Read an instruction template.

    Raises:
        InputNotFoundError: If the template does not exist.
        DocumentReadError: If the template cannot be read.

    """
    if not path.is_file():
        raise InputNotFoundError(f"Prompt file not found: {path}")
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentReadError(f"Failed to read prompt template {path}: {e}") from e


def find_latest_document(root: Path, prefix: str, suffix: str = ".docx") -> Path:
    """Find the most recently modified generated document.

    Searches ``root`` recursively, since every run writes into its own
    timestamped directory.

    Args:
        root: Output root of the producing artifact kind.
        prefix: Required file name prefix.
        suffix: Required file suffix.

    Raises:
        InputNotFoundError: If the root or a matching document is missing.

    """
    if not root.is_dir():
        raise InputNotFoundError(f"Output directory not found: {root}")

    candidates = [
        path
        for path in root.rglob(f"{prefix}*{suffix}")
        if path.is_file() and not path.name.startswith("~$")
    ]
    if not candidates:
        raise InputNotFoundError(
            f"No {prefix}*{suffix} documents found in {root}. Generate one first."
        )

    latest = max(candidates, key=lambda p: p.stat().st_mtime)
    logger.debug("Latest %s document: %s", prefix, latest)
    return latest


def find_feature_files(features_dir: Path, specific: str | None = None) -> list[Path]:
    """List reviewed feature files, optionally restricted to one.

    Args:
        features_dir: Directory holding ``*.feature`` files.
        specific: File name to restrict processing to.

    Returns:
        Feature files sorted by name.

    Raises:
        InputNotFoundError: If the directory, the named file, or any
            feature file is missing.

    """
    if not features_dir.is_dir():
        raise InputNotFoundError(f"Feature directory not found: {features_dir}")

    files = sorted(
        path for path in features_dir.iterdir()
        if path.is_file() and path.suffix == FEATURE_SUFFIX
    )

    if specific is not None:
        for path in files:
            if path.name == specific:
                return [path]
        raise InputNotFoundError(f"Feature file not found: {specific} in {features_dir}")

    if not files:
        raise InputNotFoundError(f"No {FEATURE_SUFFIX} files found in {features_dir}")
    return files
