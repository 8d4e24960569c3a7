"""Forward-only migration runner for the skillbase schema.

FTS5 indexes (skills_fts, prompts_fts) are external-content tables kept in
step with their base tables by triggers, so repository writes never touch them.
"""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS skills (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    path            TEXT NOT NULL UNIQUE,
    category        TEXT NOT NULL,
    name            TEXT NOT NULL,
    title           TEXT,
    description     TEXT,
    content         TEXT NOT NULL,
    file_hash       TEXT NOT NULL,
    size_bytes      INTEGER NOT NULL,
    token_count     INTEGER NOT NULL DEFAULT 0,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    updated_at      DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_skills_category ON skills(category);
CREATE INDEX IF NOT EXISTS idx_skills_name ON skills(name);

CREATE TABLE IF NOT EXISTS prompts (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT NOT NULL UNIQUE,
    path            TEXT NOT NULL,
    title           TEXT,
    author          TEXT,
    description     TEXT,
    content         TEXT NOT NULL,
    file_hash       TEXT NOT NULL,
    size_bytes      INTEGER NOT NULL,
    token_count     INTEGER NOT NULL DEFAULT 0,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    updated_at      DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS prompt_fragments (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT NOT NULL UNIQUE,
    title           TEXT,
    description     TEXT,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    updated_at      DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS prompt_fragment_skills (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    fragment_id     INTEGER NOT NULL REFERENCES prompt_fragments(id) ON DELETE CASCADE,
    skill_id        INTEGER NOT NULL REFERENCES skills(id) ON DELETE CASCADE,
    position        INTEGER NOT NULL DEFAULT 0,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    UNIQUE (fragment_id, position)
);

CREATE TABLE IF NOT EXISTS prompt_references (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    source_prompt_id    INTEGER NOT NULL REFERENCES prompts(id) ON DELETE CASCADE,
    target_fragment_id  INTEGER REFERENCES prompt_fragments(id) ON DELETE CASCADE,
    reference_type      TEXT NOT NULL DEFAULT 'fragment',
    position            INTEGER NOT NULL DEFAULT 0,
    created_at          DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_prompt_references_source
    ON prompt_references(source_prompt_id, reference_type);
"""

_V2_SQL = """
CREATE VIRTUAL TABLE IF NOT EXISTS skills_fts USING fts5(
    path, category, name, title, description, content,
    content='skills', content_rowid='id', tokenize='porter ascii'
);

CREATE TRIGGER IF NOT EXISTS skills_fts_ai AFTER INSERT ON skills BEGIN
    INSERT INTO skills_fts(rowid, path, category, name, title, description, content)
    VALUES (new.id, new.path, new.category, new.name, new.title, new.description, new.content);
END;

CREATE TRIGGER IF NOT EXISTS skills_fts_ad AFTER DELETE ON skills BEGIN
    INSERT INTO skills_fts(skills_fts, rowid, path, category, name, title, description, content)
    VALUES ('delete', old.id, old.path, old.category, old.name, old.title, old.description, old.content);
END;

CREATE TRIGGER IF NOT EXISTS skills_fts_au AFTER UPDATE ON skills BEGIN
    INSERT INTO skills_fts(skills_fts, rowid, path, category, name, title, description, content)
    VALUES ('delete', old.id, old.path, old.category, old.name, old.title, old.description, old.content);
    INSERT INTO skills_fts(rowid, path, category, name, title, description, content)
    VALUES (new.id, new.path, new.category, new.name, new.title, new.description, new.content);
END;

CREATE VIRTUAL TABLE IF NOT EXISTS prompts_fts USING fts5(
    name, title, description, content,
    content='prompts', content_rowid='id', tokenize='porter ascii'
);

CREATE TRIGGER IF NOT EXISTS prompts_fts_ai AFTER INSERT ON prompts BEGIN
    INSERT INTO prompts_fts(rowid, name, title, description, content)
    VALUES (new.id, new.name, new.title, new.description, new.content);
END;

CREATE TRIGGER IF NOT EXISTS prompts_fts_ad AFTER DELETE ON prompts BEGIN
    INSERT INTO prompts_fts(prompts_fts, rowid, name, title, description, content)
    VALUES ('delete', old.id, old.name, old.title, old.description, old.content);
END;

CREATE TRIGGER IF NOT EXISTS prompts_fts_au AFTER UPDATE ON prompts BEGIN
    INSERT INTO prompts_fts(prompts_fts, rowid, name, title, description, content)
    VALUES ('delete', old.id, old.name, old.title, old.description, old.content);
    INSERT INTO prompts_fts(rowid, name, title, description, content)
    VALUES (new.id, new.name, new.title, new.description, new.content);
END;
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
    (2, _V2_SQL),
]


def current_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied migration version (0 for a fresh database)."""
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] if row[0] is not None else 0


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    current = current_version(conn)

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
