"""Tests for the Repository pattern."""

from __future__ import annotations

import sqlite3
from unittest.mock import patch

import pytest

from skillbase.db.models import FragmentSkill, Prompt, PromptReference, Skill
from skillbase.db.repository import Repository


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


def _skill(path="/p/skills/lang/intro.md", name="intro", category="lang", hash="h1",
           content="Intro body", title=None):
    return Skill(path=path, category=category, name=name, content=content,
                 file_hash=hash, size_bytes=len(content), token_count=len(content) // 4,
                 title=title)


def _prompt(name="builder", hash="p1", content="Prompt body", path="/p/prompts/builder.md"):
    return Prompt(name=name, path=path, content=content, file_hash=hash,
                  size_bytes=len(content), token_count=len(content) // 4)


# ------------------------------------------------------------------
# Skills
# ------------------------------------------------------------------

def test_upsert_skill_inserts_and_returns_stored_row(repo):
    stored = repo.upsert_skill(_skill(title="Intro"))
    assert stored.id is not None
    assert stored.title == "Intro"
    assert stored.created_at is not None
    assert stored.updated_at is not None


def test_get_skill_by_path_not_found(repo):
    assert repo.get_skill_by_path("/nope.md") is None


def test_upsert_skill_updates_existing_row_in_place(repo):
    first = repo.upsert_skill(_skill(hash="h1", content="v1"))
    second = repo.upsert_skill(_skill(hash="h2", content="v2"))
    assert second.id == first.id
    assert second.file_hash == "h2"
    assert second.content == "v2"
    assert second.created_at == first.created_at
    assert len(repo.list_skills()) == 1


def test_upsert_skill_update_advances_updated_at(repo, tmp_db):
    first = repo.upsert_skill(_skill(hash="h1"))
    tmp_db.execute("UPDATE skills SET updated_at = '2000-01-01 00:00:00' WHERE id = ?", (first.id,))
    tmp_db.commit()
    second = repo.upsert_skill(_skill(hash="h2"))
    assert second.updated_at > "2000-01-01 00:00:00"


def test_get_skill_by_name(repo):
    repo.upsert_skill(_skill(path="/p/skills/a/malli.md", name="malli"))
    found = repo.get_skill_by_name("malli")
    assert found is not None
    assert found.path == "/p/skills/a/malli.md"


def test_list_skills_by_category_includes_subcategories(repo):
    repo.upsert_skill(_skill(path="/s/libraries/x.md", name="x", category="libraries"))
    repo.upsert_skill(_skill(path="/s/libraries/dv/malli.md", name="malli", category="libraries/data_validation"))
    repo.upsert_skill(_skill(path="/s/language/y.md", name="y", category="language"))
    names = [s.name for s in repo.list_skills(category="libraries")]
    assert names == ["x", "malli"]


def test_list_skill_names_sorted(repo):
    repo.upsert_skill(_skill(path="/b.md", name="beta"))
    repo.upsert_skill(_skill(path="/a.md", name="alpha"))
    assert repo.list_skill_names() == ["alpha", "beta"]


def test_delete_skill(repo):
    stored = repo.upsert_skill(_skill())
    repo.delete_skill(stored.id)
    assert repo.get_skill_by_path(stored.path) is None


# ------------------------------------------------------------------
# Prompts
# ------------------------------------------------------------------

def test_upsert_prompt_keyed_by_name(repo):
    first = repo.upsert_prompt(_prompt(hash="p1", path="/p/prompts/a.md"))
    second = repo.upsert_prompt(_prompt(hash="p2", path="/p/prompts/b.md"))
    assert second.id == first.id
    assert second.path == "/p/prompts/b.md"
    assert len(repo.list_prompts()) == 1


def test_get_prompt_by_name_not_found(repo):
    assert repo.get_prompt_by_name("missing") is None


# ------------------------------------------------------------------
# Transactions
# ------------------------------------------------------------------

def test_transaction_rolls_back_every_write_on_error(repo):
    with pytest.raises(RuntimeError):
        with repo.transaction():
            repo.upsert_skill(_skill(path="/a.md"))
            repo.upsert_skill(_skill(path="/b.md"))
            raise RuntimeError("boom")
    assert repo.list_skills() == []


def test_transaction_commits_nested_writes_once(repo, tmp_db):
    with repo.transaction():
        repo.upsert_skill(_skill(path="/a.md"))
        assert tmp_db.in_transaction
    assert not tmp_db.in_transaction
    assert repo.get_skill_by_path("/a.md") is not None


def test_failed_insert_is_rolled_back(repo, tmp_db):
    repo.create_fragment("dup")
    with pytest.raises(sqlite3.IntegrityError):
        repo.create_fragment("dup")
    assert not tmp_db.in_transaction


# ------------------------------------------------------------------
# Fragments + references
# ------------------------------------------------------------------

def test_create_and_get_fragment(repo):
    created = repo.create_fragment("builder-embedded", title="T", description="D")
    found = repo.get_fragment_by_name("builder-embedded")
    assert found == created
    assert found.title == "T"


def test_fragment_skills_listed_in_position_order(repo):
    a = repo.upsert_skill(_skill(path="/a.md", name="a"))
    b = repo.upsert_skill(_skill(path="/b.md", name="b"))
    frag = repo.create_fragment("f")
    repo.add_fragment_skill(FragmentSkill(fragment_id=frag.id, skill_id=b.id, position=1))
    repo.add_fragment_skill(FragmentSkill(fragment_id=frag.id, skill_id=a.id, position=0))
    assert [(pos, s.name) for pos, s in repo.list_fragment_skills(frag.id)] == [(0, "a"), (1, "b")]


def test_clear_fragment_skills_returns_count(repo):
    a = repo.upsert_skill(_skill(path="/a.md"))
    frag = repo.create_fragment("f")
    repo.add_fragment_skill(FragmentSkill(fragment_id=frag.id, skill_id=a.id, position=0))
    assert repo.clear_fragment_skills(frag.id) == 1
    assert repo.list_fragment_skills(frag.id) == []


def test_deleting_skill_cascades_membership(repo):
    a = repo.upsert_skill(_skill(path="/a.md"))
    frag = repo.create_fragment("f")
    repo.add_fragment_skill(FragmentSkill(fragment_id=frag.id, skill_id=a.id, position=0))
    repo.delete_skill(a.id)
    assert repo.list_fragment_skills(frag.id) == []


def test_prompt_references_cleared_by_type(repo):
    prompt = repo.upsert_prompt(_prompt())
    frag = repo.create_fragment("f")
    repo.add_prompt_reference(PromptReference(source_prompt_id=prompt.id, target_fragment_id=frag.id, position=1))
    refs = repo.list_prompt_references(prompt.id)
    assert len(refs) == 1
    assert refs[0].reference_type == "fragment"
    assert repo.clear_prompt_references(prompt.id) == 1
    assert repo.list_prompt_references(prompt.id) == []


def test_get_prompt_fragment_skills_follows_references(repo):
    a = repo.upsert_skill(_skill(path="/a.md", name="a"))
    b = repo.upsert_skill(_skill(path="/b.md", name="b"))
    prompt = repo.upsert_prompt(_prompt())
    frag = repo.create_fragment("builder-embedded")
    repo.add_fragment_skill(FragmentSkill(fragment_id=frag.id, skill_id=b.id, position=0))
    repo.add_fragment_skill(FragmentSkill(fragment_id=frag.id, skill_id=a.id, position=1))
    repo.add_prompt_reference(PromptReference(source_prompt_id=prompt.id, target_fragment_id=frag.id, position=1))
    assert [s.name for s in repo.get_prompt_fragment_skills(prompt.id)] == ["b", "a"]


def test_get_prompt_fragment_skills_empty_without_references(repo):
    prompt = repo.upsert_prompt(_prompt())
    assert repo.get_prompt_fragment_skills(prompt.id) == []


def test_delete_fragment_cascades_references(repo):
    prompt = repo.upsert_prompt(_prompt())
    frag = repo.create_fragment("f")
    repo.add_prompt_reference(PromptReference(source_prompt_id=prompt.id, target_fragment_id=frag.id))
    repo.delete_fragment(frag.id)
    assert repo.list_fragments() == []
    assert repo.list_prompt_references(prompt.id) == []


# ------------------------------------------------------------------
# FTS5 search
# ------------------------------------------------------------------

def test_search_skills_returns_match(repo):
    repo.upsert_skill(_skill(path="/a.md", name="malli", content="Malli schema validation library"))
    repo.upsert_skill(_skill(path="/b.md", name="ring", content="HTTP server abstraction"))
    results = repo.search_skills("schema")
    assert [s.name for s, _ in results] == ["malli"]
    assert isinstance(results[0][1], float)


def test_search_skills_sees_updated_content(repo):
    repo.upsert_skill(_skill(path="/a.md", hash="h1", content="old words"))
    repo.upsert_skill(_skill(path="/a.md", hash="h2", content="fresh words"))
    assert repo.search_skills("old") == []
    assert len(repo.search_skills("fresh")) == 1


def test_search_skills_category_filter(repo):
    repo.upsert_skill(_skill(path="/a.md", name="a", category="libraries/dv", content="validation"))
    repo.upsert_skill(_skill(path="/b.md", name="b", category="language", content="validation"))
    results = repo.search_skills("validation", category="libraries")
    assert [s.name for s, _ in results] == ["a"]


def test_search_skills_query_with_punctuation_does_not_raise(repo):
    repo.upsert_skill(_skill(content="grounding best practices"))
    results = repo.search_skills("grounding: best, practices.")
    assert len(results) == 1


def test_search_skills_blank_query_returns_empty(repo):
    repo.upsert_skill(_skill())
    assert repo.search_skills("  ,,, ") == []


def test_search_prompts(repo):
    repo.upsert_prompt(_prompt(content="Build Clojure applications"))
    results = repo.search_prompts("clojure")
    assert [p.name for p, _ in results] == ["builder"]


# ------------------------------------------------------------------
# Status
# ------------------------------------------------------------------

def test_counts(repo):
    repo.upsert_skill(_skill())
    repo.upsert_prompt(_prompt())
    repo.create_fragment("f")
    assert repo.counts() == {"skills": 1, "prompts": 1, "fragments": 1, "fragment_skills": 0}


def test_last_updated_none_when_empty(repo):
    assert repo.last_updated() is None


def test_upsert_skill_raises_when_row_cannot_be_read_back(repo):
    with patch.object(repo, "get_skill_by_path", return_value=None):
        with pytest.raises(RuntimeError, match="missing after upsert"):
            repo.upsert_skill(_skill())


def test_create_fragment_raises_when_row_cannot_be_read_back(repo):
    with patch.object(repo, "get_fragment_by_name", return_value=None):
        with pytest.raises(RuntimeError, match="missing after insert"):
            repo.create_fragment("f")
