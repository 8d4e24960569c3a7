"""Repository pattern for all skillbase database operations.

Single interface for: skills, prompts, fragments, fragment memberships,
prompt references, and FTS5 search. The FTS indexes are trigger-maintained,
so no method here writes to them directly.
"""

from __future__ import annotations

import re
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager

from skillbase.db.models import (
    FRAGMENT_REFERENCE,
    Fragment,
    FragmentSkill,
    Prompt,
    PromptReference,
    Skill,
)

_SKILL_COLUMNS = (
    "id, path, category, name, title, description, content, file_hash, "
    "size_bytes, token_count, created_at, updated_at"
)
_PROMPT_COLUMNS = (
    "id, name, path, title, author, description, content, file_hash, "
    "size_bytes, token_count, created_at, updated_at"
)
_FRAGMENT_COLUMNS = "id, name, title, description, created_at, updated_at"


class Repository:
    """Data access layer for all skillbase entities.

    Wraps an open sqlite3.Connection. Every write runs inside ``transaction()``;
    a caller may open an outer transaction to group several writes, in which
    case nothing is committed until the outer block exits. The connection is
    owned by the caller and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema in place
                (see skillbase.db.schema.ensure_schema).
        """
        self._conn = conn
        self._in_transaction = False

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Commit the enclosed writes together, or roll all of them back."""
        if self._in_transaction:
            yield
            return
        self._in_transaction = True
        try:
            yield
            self._conn.commit()
        except BaseException:
            self._conn.rollback()
            raise
        finally:
            self._in_transaction = False

    # ------------------------------------------------------------------
    # Skills
    # ------------------------------------------------------------------

    def get_skill_by_path(self, path: str) -> Skill | None:
        """Return the skill stored under *path* (its identity), or None."""
        row = self._conn.execute(
            f"SELECT {_SKILL_COLUMNS} FROM skills WHERE path = ?", (path,)
        ).fetchone()
        return _row_to_skill(row) if row else None

    def get_skill_by_name(self, name: str) -> Skill | None:
        """Return the first skill named *name* (names are not unique across categories)."""
        row = self._conn.execute(
            f"SELECT {_SKILL_COLUMNS} FROM skills WHERE name = ? ORDER BY path LIMIT 1",
            (name,),
        ).fetchone()
        return _row_to_skill(row) if row else None

    def list_skills(self, category: str | None = None) -> list[Skill]:
        """Return skills ordered by category then name.

        Args:
            category: Restrict to this category and its sub-categories.
        """
        if category is None:
            rows = self._conn.execute(
                f"SELECT {_SKILL_COLUMNS} FROM skills ORDER BY category, name"
            ).fetchall()
        else:
            rows = self._conn.execute(
                f"""
                SELECT {_SKILL_COLUMNS} FROM skills
                WHERE category = ? OR category LIKE ?
                ORDER BY category, name
                """,
                (category, f"{category}/%"),
            ).fetchall()
        return [_row_to_skill(r) for r in rows]

    def list_skill_names(self) -> list[str]:
        return [
            r["name"]
            for r in self._conn.execute("SELECT name FROM skills ORDER BY name").fetchall()
        ]

    def upsert_skill(self, skill: Skill) -> Skill:
        """Insert or update a skill keyed by path. Returns the stored row.

        The path itself is never rewritten; created_at is left alone on update.
        """
        with self.transaction():
            self._conn.execute(
                """
                INSERT INTO skills (path, category, name, title, description, content,
                                    file_hash, size_bytes, token_count)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(path) DO UPDATE SET
                    category    = excluded.category,
                    name        = excluded.name,
                    title       = excluded.title,
                    description = excluded.description,
                    content     = excluded.content,
                    file_hash   = excluded.file_hash,
                    size_bytes  = excluded.size_bytes,
                    token_count = excluded.token_count,
                    updated_at  = datetime('now')
                """,
                (
                    skill.path,
                    skill.category,
                    skill.name,
                    skill.title,
                    skill.description,
                    skill.content,
                    skill.file_hash,
                    skill.size_bytes,
                    skill.token_count,
                ),
            )
            stored = self.get_skill_by_path(skill.path)
        if stored is None:
            raise RuntimeError(f"Skill '{skill.path}' missing after upsert")
        return stored

    def delete_skill(self, skill_id: int) -> None:
        """Delete a skill. Fragment memberships cascade."""
        with self.transaction():
            self._conn.execute("DELETE FROM skills WHERE id = ?", (skill_id,))

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    def get_prompt_by_name(self, name: str) -> Prompt | None:
        """Return the prompt stored under *name* (its identity), or None."""
        row = self._conn.execute(
            f"SELECT {_PROMPT_COLUMNS} FROM prompts WHERE name = ?", (name,)
        ).fetchone()
        return _row_to_prompt(row) if row else None

    def list_prompts(self) -> list[Prompt]:
        rows = self._conn.execute(
            f"SELECT {_PROMPT_COLUMNS} FROM prompts ORDER BY name"
        ).fetchall()
        return [_row_to_prompt(r) for r in rows]

    def upsert_prompt(self, prompt: Prompt) -> Prompt:
        """Insert or update a prompt keyed by name. Returns the stored row."""
        with self.transaction():
            self._conn.execute(
                """
                INSERT INTO prompts (name, path, title, author, description, content,
                                     file_hash, size_bytes, token_count)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    path        = excluded.path,
                    title       = excluded.title,
                    author      = excluded.author,
                    description = excluded.description,
                    content     = excluded.content,
                    file_hash   = excluded.file_hash,
                    size_bytes  = excluded.size_bytes,
                    token_count = excluded.token_count,
                    updated_at  = datetime('now')
                """,
                (
                    prompt.name,
                    prompt.path,
                    prompt.title,
                    prompt.author,
                    prompt.description,
                    prompt.content,
                    prompt.file_hash,
                    prompt.size_bytes,
                    prompt.token_count,
                ),
            )
            stored = self.get_prompt_by_name(prompt.name)
        if stored is None:
            raise RuntimeError(f"Prompt '{prompt.name}' missing after upsert")
        return stored

    def delete_prompt(self, prompt_id: int) -> None:
        """Delete a prompt. Its references cascade; its fragment is left in place."""
        with self.transaction():
            self._conn.execute("DELETE FROM prompts WHERE id = ?", (prompt_id,))

    # ------------------------------------------------------------------
    # Fragments
    # ------------------------------------------------------------------

    def get_fragment_by_name(self, name: str) -> Fragment | None:
        row = self._conn.execute(
            f"SELECT {_FRAGMENT_COLUMNS} FROM prompt_fragments WHERE name = ?", (name,)
        ).fetchone()
        return _row_to_fragment(row) if row else None

    def list_fragments(self) -> list[Fragment]:
        rows = self._conn.execute(
            f"SELECT {_FRAGMENT_COLUMNS} FROM prompt_fragments ORDER BY name"
        ).fetchall()
        return [_row_to_fragment(r) for r in rows]

    def delete_fragment(self, fragment_id: int) -> None:
        """Delete a fragment. Memberships and references to it cascade."""
        with self.transaction():
            self._conn.execute("DELETE FROM prompt_fragments WHERE id = ?", (fragment_id,))

    def create_fragment(
        self, name: str, title: str | None = None, description: str | None = None
    ) -> Fragment:
        """Insert a new fragment and return it.

        Raises:
            sqlite3.IntegrityError: if a fragment with *name* already exists.
        """
        with self.transaction():
            self._conn.execute(
                "INSERT INTO prompt_fragments (name, title, description) VALUES (?, ?, ?)",
                (name, title, description),
            )
            fragment = self.get_fragment_by_name(name)
        if fragment is None:
            raise RuntimeError(f"Fragment '{name}' missing after insert")
        return fragment

    def clear_fragment_skills(self, fragment_id: int) -> int:
        """Delete every membership of *fragment_id*. Returns the number removed."""
        with self.transaction():
            cur = self._conn.execute(
                "DELETE FROM prompt_fragment_skills WHERE fragment_id = ?", (fragment_id,)
            )
        return cur.rowcount

    def add_fragment_skill(self, membership: FragmentSkill) -> None:
        with self.transaction():
            self._conn.execute(
                """
                INSERT INTO prompt_fragment_skills (fragment_id, skill_id, position)
                VALUES (?, ?, ?)
                """,
                (membership.fragment_id, membership.skill_id, membership.position),
            )

    def list_fragment_skills(self, fragment_id: int) -> list[tuple[int, Skill]]:
        """Return [(position, skill), ...] for a fragment, ordered by position."""
        rows = self._conn.execute(
            f"""
            SELECT pfs.position AS position, {_prefixed_skill_columns("s")}
            FROM prompt_fragment_skills pfs
            JOIN skills s ON s.id = pfs.skill_id
            WHERE pfs.fragment_id = ?
            ORDER BY pfs.position
            """,
            (fragment_id,),
        ).fetchall()
        return [(r["position"], _row_to_skill(r)) for r in rows]

    # ------------------------------------------------------------------
    # Prompt references
    # ------------------------------------------------------------------

    def clear_prompt_references(
        self, prompt_id: int, reference_type: str = FRAGMENT_REFERENCE
    ) -> int:
        """Delete *prompt_id*'s references of *reference_type*. Returns the count."""
        with self.transaction():
            cur = self._conn.execute(
                """
                DELETE FROM prompt_references
                WHERE source_prompt_id = ? AND reference_type = ?
                """,
                (prompt_id, reference_type),
            )
        return cur.rowcount

    def add_prompt_reference(self, ref: PromptReference) -> int:
        """Insert a prompt reference and return its id."""
        with self.transaction():
            cur = self._conn.execute(
                """
                INSERT INTO prompt_references
                    (source_prompt_id, target_fragment_id, reference_type, position)
                VALUES (?, ?, ?, ?)
                """,
                (ref.source_prompt_id, ref.target_fragment_id, ref.reference_type, ref.position),
            )
        return cur.lastrowid

    def list_prompt_references(
        self, prompt_id: int, reference_type: str = FRAGMENT_REFERENCE
    ) -> list[PromptReference]:
        rows = self._conn.execute(
            """
            SELECT id, source_prompt_id, target_fragment_id, reference_type, position
            FROM prompt_references
            WHERE source_prompt_id = ? AND reference_type = ?
            ORDER BY position, id
            """,
            (prompt_id, reference_type),
        ).fetchall()
        return [
            PromptReference(
                id=r["id"],
                source_prompt_id=r["source_prompt_id"],
                target_fragment_id=r["target_fragment_id"],
                reference_type=r["reference_type"],
                position=r["position"],
            )
            for r in rows
        ]

    def get_prompt_fragment_skills(self, prompt_id: int) -> list[Skill]:
        """Return the skills a prompt embeds, following references → fragments.

        Ordered by reference position, then membership position. An empty
        list means "nothing to embed", not an error.
        """
        rows = self._conn.execute(
            f"""
            SELECT {_prefixed_skill_columns("s")}
            FROM prompt_references pr
            JOIN prompt_fragments pf ON pf.id = pr.target_fragment_id
            JOIN prompt_fragment_skills pfs ON pfs.fragment_id = pf.id
            JOIN skills s ON s.id = pfs.skill_id
            WHERE pr.source_prompt_id = ? AND pr.reference_type = ?
            ORDER BY pr.position, pfs.position
            """,
            (prompt_id, FRAGMENT_REFERENCE),
        ).fetchall()
        return [_row_to_skill(r) for r in rows]

    # ------------------------------------------------------------------
    # FTS5 / BM25 search
    # ------------------------------------------------------------------

    def search_skills(
        self, query: str, limit: int = 10, category: str | None = None
    ) -> list[tuple[Skill, float]]:
        """BM25 full-text search over skills. Returns (skill, score) best-first.

        bm25() returns negative values; lower (more negative) = better match.
        """
        fts_query = _sanitise_fts_query(query)
        if not fts_query:
            return []
        sql = f"""
            SELECT {_prefixed_skill_columns("s")}, bm25(skills_fts) AS score
            FROM skills_fts
            JOIN skills s ON s.id = skills_fts.rowid
            WHERE skills_fts MATCH ?
        """
        params: list[object] = [fts_query]
        if category is not None:
            sql += " AND (s.category = ? OR s.category LIKE ?)"
            params.extend([category, f"{category}/%"])
        sql += " ORDER BY score LIMIT ?"
        params.append(limit)
        rows = self._conn.execute(sql, params).fetchall()
        return [(_row_to_skill(r), r["score"]) for r in rows]

    def search_prompts(self, query: str, limit: int = 10) -> list[tuple[Prompt, float]]:
        fts_query = _sanitise_fts_query(query)
        if not fts_query:
            return []
        rows = self._conn.execute(
            f"""
            SELECT {_prefixed_prompt_columns("p")}, bm25(prompts_fts) AS score
            FROM prompts_fts
            JOIN prompts p ON p.id = prompts_fts.rowid
            WHERE prompts_fts MATCH ?
            ORDER BY score LIMIT ?
            """,
            (fts_query, limit),
        ).fetchall()
        return [(_row_to_prompt(r), r["score"]) for r in rows]

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def counts(self) -> dict[str, int]:
        """Return row counts for skills, prompts, fragments, and memberships."""
        tables = {
            "skills": "skills",
            "prompts": "prompts",
            "fragments": "prompt_fragments",
            "fragment_skills": "prompt_fragment_skills",
        }
        return {
            key: self._conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]  # noqa: S608
            for key, table in tables.items()
        }

    def last_updated(self) -> str | None:
        """Return the most recent updated_at across skills and prompts."""
        row = self._conn.execute(
            """
            SELECT MAX(ts) FROM (
                SELECT MAX(updated_at) AS ts FROM skills
                UNION ALL
                SELECT MAX(updated_at) AS ts FROM prompts
            )
            """
        ).fetchone()
        return row[0]


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _sanitise_fts_query(query: str) -> str:
    # FTS5 MATCH rejects punctuation like commas as syntax errors.
    return re.sub(r"[^\w\s]", " ", query).strip()


def _prefixed_skill_columns(alias: str) -> str:
    return ", ".join(f"{alias}.{c.strip()}" for c in _SKILL_COLUMNS.split(","))


def _prefixed_prompt_columns(alias: str) -> str:
    return ", ".join(f"{alias}.{c.strip()}" for c in _PROMPT_COLUMNS.split(","))


def _row_to_skill(row: sqlite3.Row) -> Skill:
    return Skill(
        id=row["id"],
        path=row["path"],
        category=row["category"],
        name=row["name"],
        title=row["title"],
        description=row["description"],
        content=row["content"],
        file_hash=row["file_hash"],
        size_bytes=row["size_bytes"],
        token_count=row["token_count"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_prompt(row: sqlite3.Row) -> Prompt:
    return Prompt(
        id=row["id"],
        name=row["name"],
        path=row["path"],
        title=row["title"],
        author=row["author"],
        description=row["description"],
        content=row["content"],
        file_hash=row["file_hash"],
        size_bytes=row["size_bytes"],
        token_count=row["token_count"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_fragment(row: sqlite3.Row) -> Fragment:
    return Fragment(
        id=row["id"],
        name=row["name"],
        title=row["title"],
        description=row["description"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
