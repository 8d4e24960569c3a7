"""Domain models for the skillbase database layer."""

from __future__ import annotations

from dataclasses import dataclass

FRAGMENT_REFERENCE = "fragment"


@dataclass
class Skill:
    path: str
    category: str
    name: str
    content: str
    file_hash: str
    size_bytes: int
    token_count: int = 0
    title: str | None = None
    description: str | None = None
    id: int | None = None  # set after upsert; None for unsaved records
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Prompt:
    name: str
    path: str  # rendered .md file; several configs may point at one path
    content: str
    file_hash: str
    size_bytes: int
    token_count: int = 0
    title: str | None = None
    author: str | None = None
    description: str | None = None
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Fragment:
    id: int
    name: str
    title: str | None = None
    description: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class FragmentSkill:
    fragment_id: int
    skill_id: int
    position: int


@dataclass
class PromptReference:
    source_prompt_id: int
    target_fragment_id: int
    reference_type: str = FRAGMENT_REFERENCE
    position: int = 0
    id: int | None = None
