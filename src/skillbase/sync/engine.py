"""Sync orchestrator: mirror the content tree into the store.

Passes run in a fixed order because each one resolves rows the previous one
created:

  1. skills     skills/**/*.md             keyed by path
  2. prompts    prompt_configs/*.yaml      keyed by name, body from prompts/<name>.md
  (prune)       optional: drop rows whose source is gone
  3. fragments  prompt_configs/*.yaml      prompt → fragment → skills

Each file goes through build → change check → upsert. Any exception raised
for one file is caught at the file boundary, printed, and counted; the pass moves on to the
next file. Only schema or connection failures abort a run.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from skillbase.config import ProjectPaths
from skillbase.db.repository import Repository
from skillbase.db.schema import ensure_schema
from skillbase.sync.fragments import FRAGMENT_SUFFIX, reconcile_prompt_fragment
from skillbase.sync.paths import PROMPT_CONFIG_EXTS, SKILL_EXTS, scan_files
from skillbase.sync.records import (
    build_prompt_record,
    RecordError,
    build_skill_record,
    is_unchanged,
    parse_prompt_config,
)

SKILLS_PASS = "skills"
PROMPTS_PASS = "prompts"
FRAGMENTS_PASS = "fragments"


class Outcome(str, Enum):
    SYNCED = "synced"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class FileError:
    path: str
    message: str


@dataclass
class PassReport:
    """Outcome counts for one pass."""

    name: str
    synced: int = 0
    skipped: int = 0
    errored: int = 0
    errors: list[FileError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.synced + self.skipped + self.errored

    def count(self, outcome: Outcome) -> None:
        if outcome is Outcome.SYNCED:
            self.synced += 1
        elif outcome is Outcome.SKIPPED:
            self.skipped += 1
        else:
            self.errored += 1


@dataclass
class SyncReport:
    passes: list[PassReport] = field(default_factory=list)
    pruned: int = 0

    @property
    def errored(self) -> int:
        return sum(p.errored for p in self.passes)

    @property
    def complete(self) -> bool:
        """False when any file failed; the run itself still finished."""
        return self.errored == 0

    def get(self, name: str) -> PassReport | None:
        return next((p for p in self.passes if p.name == name), None)


class SyncEngine:
    """Runs the sync passes against one repository and one project layout.

    Args:
        repo: Repository over a connection whose schema is already in place.
        paths: Absolute content directories for this run.
        console: Where per-file progress lines go (a fresh Console by default).
    """

    def __init__(
        self, repo: Repository, paths: ProjectPaths, console: Console | None = None
    ) -> None:
        self.repo = repo
        self.paths = paths
        self.console = console or Console()
        # prompt name → config path that claimed it, per pass
        self._prompt_owners: dict[str, Path] = {}
        self._fragment_owners: dict[str, Path] = {}

    # ------------------------------------------------------------------
    # Whole run
    # ------------------------------------------------------------------

    def sync_all(self, prune: bool = False) -> SyncReport:
        """Run skills → prompts → (prune) → fragments and return the report."""
        report = SyncReport()
        report.passes.append(self.sync_skills())
        prompts = self.sync_prompts()
        report.passes.append(prompts)
        if prune:
            report.pruned = self.prune(prune_prompts=prompts.errored == 0)
        report.passes.append(self.sync_fragments())
        return report

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def sync_skills(self, files: list[Path] | None = None) -> PassReport:
        """Sync skill markdown files (defaults to every .md under skills_dir)."""
        if files is None:
            files = scan_files(self.paths.skills_dir, SKILL_EXTS)
        self.console.print(
            f"\n[bold]Syncing {len(files)} skills from {escape(str(self.paths.skills_dir))}…[/]"
        )
        return self._run_pass(SKILLS_PASS, files, self.sync_skill_file)

    def sync_prompts(self, files: list[Path] | None = None) -> PassReport:
        """Sync prompts from their configs (defaults to every .yaml under prompt_configs_dir)."""
        if files is None:
            files = scan_files(self.paths.prompt_configs_dir, PROMPT_CONFIG_EXTS)
        self.console.print(
            f"\n[bold]Syncing {len(files)} prompts from "
            f"{escape(str(self.paths.prompt_configs_dir))}…[/]"
        )
        self._prompt_owners.clear()
        return self._run_pass(PROMPTS_PASS, files, self.sync_prompt_config)

    def sync_fragments(self, files: list[Path] | None = None) -> PassReport:
        """Reconcile every prompt's embedded-skill fragment with its config."""
        if files is None:
            files = scan_files(self.paths.prompt_configs_dir, PROMPT_CONFIG_EXTS)
        self.console.print(
            f"\n[bold]Syncing prompt fragments from {len(files)} config files…[/]"
        )
        self._fragment_owners.clear()
        return self._run_pass(FRAGMENTS_PASS, files, self.sync_fragment_config)

    def _run_pass(
        self,
        name: str,
        files: list[Path],
        step: Callable[[Path, PassReport], Outcome],
    ) -> PassReport:
        report = PassReport(name=name)
        for path in files:
            try:
                outcome = step(path, report)
            except Exception as exc:
                message = f"{type(exc).__name__}: {exc}"
                report.errors.append(FileError(path=str(path), message=message))
                self.console.print(
                    f"  [red]✗ Error:[/] {escape(str(path))}: {escape(message)}"
                )
                outcome = Outcome.ERROR
            report.count(outcome)
        self.console.print(
            f"[bold]{name.capitalize()} sync complete:[/] "
            f"{report.synced} synced, {report.skipped} unchanged, {report.errored} errors"
        )
        return report

    # ------------------------------------------------------------------
    # Per-file steps (raise on failure; _run_pass records the error)
    # ------------------------------------------------------------------

    def sync_skill_file(self, path: Path, report: PassReport | None = None) -> Outcome:
        record = build_skill_record(path, self.paths.skills_dir)
        existing = self.repo.get_skill_by_path(record.path)
        if is_unchanged(existing, record):
            self.console.print(f"  [dim]↷ Unchanged: {escape(record.path)}[/]")
            return Outcome.SKIPPED
        self.repo.upsert_skill(record)
        self.console.print(f"  [green]✓[/] Synced: {escape(record.path)}")
        return Outcome.SYNCED

    def sync_prompt_config(self, path: Path, report: PassReport | None = None) -> Outcome:
        config = parse_prompt_config(path)
        _claim_name(self._prompt_owners, config.name, path)
        record = build_prompt_record(config, self.paths.prompts_dir)
        existing = self.repo.get_prompt_by_name(record.name)
        if is_unchanged(existing, record):
            self.console.print(f"  [dim]↷ Unchanged: {escape(record.name)}[/]")
            return Outcome.SKIPPED
        self.repo.upsert_prompt(record)
        self.console.print(f"  [green]✓[/] Synced: {escape(record.name)}")
        return Outcome.SYNCED

    def sync_fragment_config(self, path: Path, report: PassReport | None = None) -> Outcome:
        config = parse_prompt_config(path)
        _claim_name(self._fragment_owners, config.name, path)
        result = reconcile_prompt_fragment(self.repo, config, self.paths.root)

        if not result.prompt_found:
            warning = f"Prompt '{config.name}' not found in database ({path})"
            self._warn(warning, report)
            return Outcome.SKIPPED

        for declared in result.missing:
            self._warn(f"Skill not found: {declared} (prompt '{config.name}')", report)
        for position, skill_name in result.linked:
            self.console.print(
                f"    Associated skill: {escape(config.name)} -> "
                f"{escape(skill_name)} (position {position})"
            )
        self.console.print(
            f"  [green]✓[/] Synced fragment for prompt: {escape(config.name)} "
            f"({len(result.linked)}/{len(config.skills)} skills)"
        )
        return Outcome.SYNCED

    def _warn(self, message: str, report: PassReport | None) -> None:
        if report is not None:
            report.warnings.append(message)
        self.console.print(f"  [yellow]⚠ WARNING:[/] {escape(message)}")

    # ------------------------------------------------------------------
    # Prune
    # ------------------------------------------------------------------

    def prune(self, prune_prompts: bool = True) -> int:
        """Delete rows whose source files are gone. Returns the number removed.

        Skills are pruned when their file no longer exists. Prompts are pruned
        when no config declares their name any more; pass
        ``prune_prompts=False`` when the prompt pass had errors, since a
        broken config hides its name. Orphaned ``*-embedded`` fragments are
        removed with their prompt.
        """
        removed = 0
        for skill in self.repo.list_skills():
            if skill.id is not None and not Path(skill.path).exists():
                self.repo.delete_skill(skill.id)
                self.console.print(f"  [yellow]− Pruned skill:[/] {escape(skill.path)}")
                removed += 1

        declared = self._declared_prompt_names() if prune_prompts else None
        if declared is not None:
            for prompt in self.repo.list_prompts():
                if prompt.id is not None and prompt.name not in declared:
                    self.repo.delete_prompt(prompt.id)
                    self.console.print(f"  [yellow]− Pruned prompt:[/] {escape(prompt.name)}")
                    removed += 1

        live = {p.name for p in self.repo.list_prompts()}
        for fragment in self.repo.list_fragments():
            owner = fragment.name.removesuffix(FRAGMENT_SUFFIX)
            if fragment.name.endswith(FRAGMENT_SUFFIX) and owner not in live:
                self.repo.delete_fragment(fragment.id)
                removed += 1
        return removed

    def _declared_prompt_names(self) -> set[str] | None:
        """Names declared by the current configs, or None if any config is unreadable."""
        names: set[str] = set()
        for path in scan_files(self.paths.prompt_configs_dir, PROMPT_CONFIG_EXTS):
            try:
                names.add(parse_prompt_config(path).name)
            except Exception:
                return None
        return names


def _claim_name(owners: dict[str, Path], name: str, path: Path) -> None:
    """Record *path* as the config for prompt *name* in the current pass.

    Raises:
        RecordError: if another config already declared *name*.
    """
    owner = owners.setdefault(name, path)
    if owner != path:
        raise RecordError(f"Duplicate prompt name '{name}' (already declared by {owner})")


def sync_all(
    conn: sqlite3.Connection,
    paths: ProjectPaths,
    console: Console | None = None,
    prune: bool = False,
) -> SyncReport:
    """Ensure the schema, then run every pass.

    Raises:
        SchemaError: if migrations fail; no pass runs.
    """
    ensure_schema(conn)
    return SyncEngine(Repository(conn), paths, console=console).sync_all(prune=prune)
