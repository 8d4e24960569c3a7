"""YAML front-matter parser for skill documents.

A front-matter block opens with a line that is exactly ``---`` at the very top
of the document and closes at the next ``---`` line. Anything that does not
fit that shape is treated as "no metadata": the parser never raises, so one
malformed skill cannot block a sync.

Usage:
    meta, body = parse_frontmatter(path.read_text(encoding="utf-8"))
    title = meta_str(meta, "title")
"""

from __future__ import annotations

from typing import Any

import yaml

_DELIMITER = "---"


def _is_delimiter(line: str) -> bool:
    return line.rstrip() == _DELIMITER


def parse_frontmatter(raw: str) -> tuple[dict[str, Any] | None, str]:
    """Split *raw* into (metadata, body).

    Returns:
        ``(dict, body)`` when a well-formed block is present (an empty block
        gives ``{}``), otherwise ``(None, raw)`` with *raw* untouched.
    """
    lines = raw.splitlines(keepends=True)
    if not lines or not _is_delimiter(lines[0]):
        return None, raw

    end_idx = next(
        (i for i in range(1, len(lines)) if _is_delimiter(lines[i])), None
    )
    if end_idx is None:
        return None, raw

    block = "".join(lines[1:end_idx])
    try:
        data = yaml.safe_load(block)
    except Exception:  # YAMLError, plus ValueError/RecursionError from constructors
        return None, raw

    if data is None:
        data = {}
    if not isinstance(data, dict):
        return None, raw

    return data, "".join(lines[end_idx + 1:])


def meta_str(meta: dict[str, Any] | None, key: str) -> str | None:
    """Return ``meta[key]`` as a string, or None if absent or empty."""
    if not meta:
        return None
    value = meta.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None
