"""File discovery and path-derived skill taxonomy."""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass
from pathlib import Path, PurePath

UNCATEGORIZED = "uncategorized"

SKILL_EXTS = frozenset({".md"})
PROMPT_CONFIG_EXTS = frozenset({".yaml"})


@dataclass(frozen=True)
class SkillPath:
    category: str
    name: str


def classify_path(path: str | PurePath, root_marker: str = "skills") -> SkillPath:
    """Derive ``{category, name}`` from a skill's location.

    Examples:
        "skills/language/clojure_intro.md"          -> ("language", "clojure_intro")
        "skills/libraries/data_validation/malli.md" -> ("libraries/data_validation", "malli")
        "other/skill.md"                            -> ("uncategorized", "skill")
    """
    parts = PurePath(path).parts
    name = PurePath(path).stem
    try:
        marker_idx = parts.index(root_marker)
    except ValueError:
        return SkillPath(category=UNCATEGORIZED, name=name)

    category_parts = parts[marker_idx + 1 : -1]
    category = "/".join(category_parts) if category_parts else UNCATEGORIZED
    return SkillPath(category=category, name=name)


def scan_files(
    directory: Path,
    extensions: frozenset[str] | set[str],
    exclude: list[str] | None = None,
    max_depth: int = 32,
) -> list[Path]:
    """Return files under *directory* whose suffix is in *extensions*, sorted by path.

    A missing directory yields an empty list. Unreadable sub-directories are
    skipped.
    """
    if not directory.is_dir():
        return []
    files = _scan_dir(directory, extensions, exclude or [], depth=0, max_depth=max_depth)
    return sorted(files, key=str)


def _scan_dir(
    directory: Path,
    extensions: frozenset[str] | set[str],
    exclude: list[str],
    depth: int,
    max_depth: int,
) -> list[Path]:
    if depth > max_depth:
        return []
    files: list[Path] = []
    try:
        entries = sorted(directory.iterdir())
    except PermissionError:
        return []
    for entry in entries:
        if any(fnmatch.fnmatch(entry.name, pat) for pat in exclude):
            continue
        if entry.is_file() and entry.suffix.lower() in extensions:
            files.append(entry)
        elif entry.is_dir():
            files.extend(_scan_dir(entry, extensions, exclude, depth + 1, max_depth))
    return files
