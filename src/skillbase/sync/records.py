"""Record builders: turn files on disk into rows ready for the repository.

Builders only read files; they never touch the database. Read failures
(missing file, permissions, invalid UTF-8) propagate to the caller, which
records them as per-file errors. Malformed front matter degrades to "no
metadata" instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from skillbase.db.models import Prompt, Skill
from skillbase.sync.frontmatter import meta_str, parse_frontmatter
from skillbase.sync.hashing import combined_prompt_bytes, compute_hash
from skillbase.sync.paths import classify_path


class RecordError(ValueError):
    """Raised when a file parses but cannot produce a valid record."""


@dataclass
class PromptConfig:
    """A parsed ``prompt_configs/<name>.yaml`` file.

    Attributes:
        path: The config file.
        name: ``name`` from the YAML, falling back to the filename stem.
        text: Raw config text (part of the prompt's hashed input).
        size_bytes: Byte length of the config file.
        skills: Declared skill paths, relative to the project root, in order.
    """

    path: Path
    name: str
    text: str
    size_bytes: int
    title: str | None = None
    description: str | None = None
    author: str | None = None
    skills: list[str] = field(default_factory=list)


def estimate_tokens(text: str) -> int:
    """Approximate token count: 4 characters ≈ 1 token. Never exact."""
    return len(text) // 4


def _read_utf8(path: Path) -> tuple[bytes, str]:
    raw = path.read_bytes()
    return raw, raw.decode("utf-8")


def build_skill_record(path: Path, skills_dir: Path | None = None) -> Skill:
    """Build an unsaved Skill from a markdown file.

    The category is taken from the directories between *skills_dir* and the
    file. Without *skills_dir*, a ``skills`` path segment is used as the root.

    Raises:
        OSError: if the file cannot be read.
        UnicodeDecodeError: if the file is not valid UTF-8.
        RecordError: if no name can be derived from the path.
    """
    raw, text = _read_utf8(path)
    meta, body = parse_frontmatter(text)

    rel: Path = path
    marker = "skills"
    if skills_dir is not None:
        try:
            rel = path.relative_to(skills_dir.parent)
            marker = skills_dir.name
        except ValueError:
            pass
    derived = classify_path(rel, root_marker=marker)
    if not derived.name:
        raise RecordError(f"Cannot derive a skill name from '{path}'")

    return Skill(
        path=str(path),
        category=derived.category,
        name=derived.name,
        title=meta_str(meta, "title"),
        description=meta_str(meta, "description"),
        content=body,
        file_hash=compute_hash(raw),
        size_bytes=len(raw),
        token_count=estimate_tokens(body),
    )


def parse_prompt_config(path: Path) -> PromptConfig:
    """Parse a prompt config YAML file.

    Raises:
        OSError / UnicodeDecodeError: if the file cannot be read.
        yaml.YAMLError: if the file is not valid YAML.
        RecordError: if the YAML is not a mapping or ``skills`` is not a list.
    """
    raw, text = _read_utf8(path)
    data = yaml.safe_load(text)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise RecordError(f"Prompt config '{path}' must be a YAML mapping")

    skills = data.get("skills") or []
    if not isinstance(skills, list):
        raise RecordError(f"'skills' in '{path}' must be a list of paths")

    name = meta_str(data, "name") or path.stem
    if not name:
        raise RecordError(f"Prompt config '{path}' has no usable name")

    return PromptConfig(
        path=path,
        name=name,
        text=text,
        size_bytes=len(raw),
        title=meta_str(data, "title"),
        description=meta_str(data, "description"),
        author=meta_str(data, "author"),
        skills=[str(s) for s in skills if s is not None],
    )


def prompt_content_path(config: PromptConfig, prompts_dir: Path) -> Path:
    """Return the rendered markdown file paired with *config*."""
    return prompts_dir / f"{config.name}.md"


def build_prompt_record(config: PromptConfig, prompts_dir: Path) -> Prompt:
    """Build an unsaved Prompt from a config and its paired markdown body.

    The hash covers config text and body together, so editing either one
    marks the prompt as changed.

    Raises:
        OSError / UnicodeDecodeError: if the markdown body cannot be read.
    """
    content_path = prompt_content_path(config, prompts_dir)
    raw, body = _read_utf8(content_path)

    return Prompt(
        name=config.name,
        path=str(content_path),
        title=config.title,
        author=config.author,
        description=config.description,
        content=body,
        file_hash=compute_hash(combined_prompt_bytes(config.text, body)),
        size_bytes=config.size_bytes + len(raw),
        token_count=estimate_tokens(body),
    )


def is_unchanged(existing: Skill | Prompt | None, record: Skill | Prompt) -> bool:
    """True when the stored row's hash matches the freshly built record.

    Only ``file_hash`` is compared; mtimes and individual fields are ignored.
    """
    return existing is not None and existing.file_hash == record.file_hash
