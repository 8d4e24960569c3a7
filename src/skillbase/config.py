"""skillbase configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (SKILLBASE_DB_PATH, SKILLBASE_PROJECT_ROOT)
  3. Per-project skillbase.yaml  (in the project directory)
  4. Global $XDG_CONFIG_HOME/skillbase/config.yaml
  5. Hardcoded defaults

The resolved project layout is handed to the sync engine as an explicit
ProjectPaths value; nothing here is cached at module level.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_APP_NAME: str = "skillbase"
_PROJECT_CONFIG_NAME: str = "skillbase.yaml"

# Known top-level sections — unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["database", "project", "search"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid value."""


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def get_xdg_config_home() -> Path:
    """Return $XDG_CONFIG_HOME, or ~/.config when unset."""
    if xdg := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg)
    return Path.home() / ".config"


def get_config_dir() -> Path:
    """Return the skillbase config directory (holds config.yaml and the default DB)."""
    return get_xdg_config_home() / _APP_NAME


def expand_path(path: str | Path) -> Path:
    """Expand ``~`` and environment variables in *path*."""
    return Path(os.path.expandvars(str(path))).expanduser()


def _default_db_path() -> str:
    return str(get_config_dir() / f"{_APP_NAME}.db")


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class DatabaseCfg:
    """SQLite store location (skillbase.yaml: database:)."""

    path: str = field(default_factory=_default_db_path)


@dataclass
class ProjectCfg:
    """Content layout (skillbase.yaml: project:).

    Attributes:
        root: Project root; defaults to the current working directory.
        skills_dir: Skills tree, relative to root.
        prompts_dir: Rendered prompt markdown files, relative to root.
        prompt_configs_dir: One ``<name>.yaml`` per prompt, relative to root.
    """

    root: str | None = None
    skills_dir: str = "skills"
    prompts_dir: str = "prompts"
    prompt_configs_dir: str = "prompt_configs"


@dataclass
class SearchCfg:
    """Full-text search defaults (skillbase.yaml: search:)."""

    max_results: int = 50


@dataclass
class SkillbaseConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    database: DatabaseCfg = field(default_factory=DatabaseCfg)
    project: ProjectCfg = field(default_factory=ProjectCfg)
    search: SearchCfg = field(default_factory=SearchCfg)


@dataclass(frozen=True)
class ProjectPaths:
    """Absolute content directories for one sync run."""

    root: Path
    skills_dir: Path
    prompts_dir: Path
    prompt_configs_dir: Path

    @classmethod
    def from_root(
        cls,
        root: Path,
        skills_dir: str = "skills",
        prompts_dir: str = "prompts",
        prompt_configs_dir: str = "prompt_configs",
    ) -> ProjectPaths:
        root = expand_path(root).resolve()
        return cls(
            root=root,
            skills_dir=root / expand_path(skills_dir),
            prompts_dir=root / expand_path(prompts_dir),
            prompt_configs_dir=root / expand_path(prompt_configs_dir),
        )


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file '{path}' is not valid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must contain a YAML mapping.")
    return data


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping.")
    return value


def _cfg_from_dict(data: dict[str, Any]) -> SkillbaseConfig:
    """Build a *SkillbaseConfig* from a merged raw YAML dict."""
    cfg = SkillbaseConfig()

    if "database" in data:
        d = _section(data, "database")
        cfg.database = DatabaseCfg(path=str(d.get("path", cfg.database.path)))

    if "project" in data:
        p = _section(data, "project")
        root = p.get("root")
        cfg.project = ProjectCfg(
            root=str(root) if root else None,
            skills_dir=str(p.get("skills_dir", cfg.project.skills_dir)),
            prompts_dir=str(p.get("prompts_dir", cfg.project.prompts_dir)),
            prompt_configs_dir=str(
                p.get("prompt_configs_dir", cfg.project.prompt_configs_dir)
            ),
        )

    if "search" in data:
        s = _section(data, "search")
        try:
            max_results = int(s.get("max_results", cfg.search.max_results))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"search.max_results must be an integer: {exc}") from exc
        if max_results < 1:
            raise ConfigError(f"search.max_results must be >= 1, got {max_results}")
        cfg.search = SearchCfg(max_results=max_results)

    return cfg


def _apply_env_overrides(cfg: SkillbaseConfig) -> SkillbaseConfig:
    """Apply SKILLBASE_* environment variable overrides."""
    if db_path := os.environ.get("SKILLBASE_DB_PATH"):
        cfg.database.path = db_path
    if root := os.environ.get("SKILLBASE_PROJECT_ROOT"):
        cfg.project.root = root
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> SkillbaseConfig:
    """Load and return a merged *SkillbaseConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.
    A relative ``project.root`` in the per-project file is taken relative to
    the directory holding that file.

    Args:
        project_dir: Directory to search for *skillbase.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If a config file is not a mapping or holds a bad value.
    """
    global_path = (
        global_config_path
        if global_config_path is not None
        else get_config_dir() / "config.yaml"
    )
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        root = _section(raw_project, "project").get("root")
        if root and not expand_path(root).is_absolute():
            raw_project = deep_merge(
                raw_project, {"project": {"root": str(search_dir / expand_path(root))}}
            )
        merged = deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    return _apply_env_overrides(cfg)


def resolve_db_path(cfg: SkillbaseConfig) -> Path:
    """Return the expanded database path from *cfg*."""
    return expand_path(cfg.database.path)


def resolve_project_paths(cfg: SkillbaseConfig, cwd: Path | None = None) -> ProjectPaths:
    """Return absolute content directories for *cfg*.

    Args:
        cfg: Loaded configuration.
        cwd: Fallback root when ``project.root`` is unset. Defaults to CWD.
    """
    root = Path(cfg.project.root) if cfg.project.root else (cwd or Path.cwd())
    return ProjectPaths.from_root(
        root,
        skills_dir=cfg.project.skills_dir,
        prompts_dir=cfg.project.prompts_dir,
        prompt_configs_dir=cfg.project.prompt_configs_dir,
    )
