"""Content hashing for change detection."""

from __future__ import annotations

import hashlib

# Joins a prompt config and its rendered body before hashing, so an edit to
# either file changes the digest.
PROMPT_HASH_SEPARATOR = "\n---\n"


def compute_hash(content: bytes | str | None) -> str | None:
    """Return the SHA-256 hex digest of *content*, or None when there is none.

    Strings are hashed as their UTF-8 bytes.
    """
    if content is None:
        return None
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def combined_prompt_bytes(config_text: str, body: str) -> bytes:
    """Return the exact byte sequence hashed for a prompt built from a config."""
    return (config_text + PROMPT_HASH_SEPARATOR + body).encode("utf-8")
