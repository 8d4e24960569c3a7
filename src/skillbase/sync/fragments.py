"""Fragment reconciliation: make a prompt's declared skill list authoritative.

Each prompt owns exactly one derived fragment, ``{prompt-name}-embedded``.
On every pass the fragment's memberships and the prompt's fragment reference
are cleared and rewritten from the config, inside a single transaction, so
the stored state always matches the current declaration:

  1. resolve the prompt by name (absent → skip, nothing written)
  2. get-or-create the fragment
  3. delete all of the fragment's memberships
  4. insert one membership per resolvable skill, position = declared index
  5. delete the prompt's ``fragment`` references
  6. insert a single reference at REFERENCE_POSITION

Unresolvable skill paths are reported back in ``FragmentResult.missing``; they
never stop the other references from being linked.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from skillbase.db.models import FRAGMENT_REFERENCE, Fragment, FragmentSkill, PromptReference
from skillbase.db.repository import Repository
from skillbase.sync.records import PromptConfig

FRAGMENT_SUFFIX = "-embedded"
REFERENCE_POSITION = 1


@dataclass
class FragmentResult:
    prompt_name: str
    fragment_name: str
    linked: list[tuple[int, str]] = field(default_factory=list)  # (position, skill name)
    missing: list[str] = field(default_factory=list)  # declared paths not in the store
    prompt_found: bool = True


def fragment_name_for(prompt_name: str) -> str:
    return f"{prompt_name}{FRAGMENT_SUFFIX}"


def resolve_skill_path(declared: str, project_root: Path) -> str:
    """Map a declared skill path to the identity it was stored under.

    Relative paths are joined to *project_root*; absolute paths pass through.
    """
    return str(project_root / declared)


def reconcile_prompt_fragment(
    repo: Repository, config: PromptConfig, project_root: Path
) -> FragmentResult:
    """Rewrite the fragment and fragment reference for *config*'s prompt.

    Returns a FragmentResult with ``prompt_found=False`` (and no writes) when
    the prompt has not been synced yet.

    Raises:
        sqlite3.Error: on a store failure; every write for this prompt is
            rolled back.
    """
    result = FragmentResult(
        prompt_name=config.name, fragment_name=fragment_name_for(config.name)
    )

    prompt = repo.get_prompt_by_name(config.name)
    if prompt is None or prompt.id is None:
        result.prompt_found = False
        return result

    with repo.transaction():
        fragment = _get_or_create_fragment(repo, config, result.fragment_name)
        repo.clear_fragment_skills(fragment.id)

        for position, declared in enumerate(config.skills):
            skill = repo.get_skill_by_path(resolve_skill_path(declared, project_root))
            if skill is None or skill.id is None:
                result.missing.append(declared)
                continue
            repo.add_fragment_skill(
                FragmentSkill(fragment_id=fragment.id, skill_id=skill.id, position=position)
            )
            result.linked.append((position, skill.name))

        repo.clear_prompt_references(prompt.id, FRAGMENT_REFERENCE)
        repo.add_prompt_reference(
            PromptReference(
                source_prompt_id=prompt.id,
                target_fragment_id=fragment.id,
                reference_type=FRAGMENT_REFERENCE,
                position=REFERENCE_POSITION,
            )
        )

    return result


def _get_or_create_fragment(repo: Repository, config: PromptConfig, name: str) -> Fragment:
    existing = repo.get_fragment_by_name(name)
    if existing is not None:
        return existing
    return repo.create_fragment(
        name=name,
        title=f"{config.title or config.name} Embedded Skills",
        description=f"Embedded skills for {config.name} prompt",
    )
