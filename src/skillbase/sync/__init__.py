"""skillbase sync pipeline — scan, build, change-check, upsert, reconcile fragments."""

from skillbase.sync.engine import Outcome, PassReport, SyncEngine, SyncReport, sync_all
from skillbase.sync.fragments import FragmentResult, reconcile_prompt_fragment
from skillbase.sync.frontmatter import parse_frontmatter
from skillbase.sync.hashing import compute_hash
from skillbase.sync.paths import classify_path, scan_files
from skillbase.sync.records import (
    PromptConfig,
    RecordError,
    build_prompt_record,
    build_skill_record,
    is_unchanged,
    parse_prompt_config,
)

__all__ = [
    "FragmentResult",
    "Outcome",
    "PassReport",
    "PromptConfig",
    "RecordError",
    "SyncEngine",
    "SyncReport",
    "build_prompt_record",
    "build_skill_record",
    "classify_path",
    "compute_hash",
    "is_unchanged",
    "parse_frontmatter",
    "parse_prompt_config",
    "reconcile_prompt_fragment",
    "scan_files",
    "sync_all",
]
