# src/cache/fingerprint.py - v3
"""Request normalization and fingerprinting for cache keys.

Two semantically equal requests must produce the same fingerprint:
volatile fields are stripped, whitelisted list fields are sorted, a few
free-text fields are case/whitespace folded, and object keys are sorted
recursively before hashing. The folding is deliberate fuzziness; near
duplicates share a cache bucket.

Pure functions, no I/O, safe to call concurrently.
"""

from __future__ import annotations

import copy
import hashlib
import json
import re
from typing import Any

FINGERPRINT_LENGTH = 16

VOLATILE_FIELDS: frozenset[str] = frozenset({
    "createdAt", "created_at",
    "updatedAt", "updated_at",
    "userId", "user_id",
    "id",
    "timestamp",
})

SORTED_LIST_FIELDS: frozenset[str] = frozenset({
    "keywords",
    "focusAreas", "focus_areas",
    "tags",
})

# (parent key or None for top level, field)
_FOLDED_TEXT_FIELDS: tuple[tuple[str | None, str], ...] = (
    (None, "description"),
    ("subject", "name"),
)

_WS_RE = re.compile(r"\s+")


def normalize_input(raw_input: dict[str, Any] | None, document_type: str | None = None) -> dict[str, Any]:
    """Return the canonical form of a generation input.

    Args:
        raw_input: Arbitrary request payload (not mutated).
        document_type: Accepted for symmetry with key building; the rules
            are the same for every type.

    Returns:
        New dict with sorted keys at every level.
    """
    essential = {
        k: copy.deepcopy(v)
        for k, v in (raw_input or {}).items()
        if k not in VOLATILE_FIELDS
    }

    for field in SORTED_LIST_FIELDS:
        value = essential.get(field)
        if isinstance(value, list):
            essential[field] = sorted(value, key=_sort_token)

    for parent, field in _FOLDED_TEXT_FIELDS:
        container = essential if parent is None else essential.get(parent)
        if isinstance(container, dict) and isinstance(container.get(field), str):
            container[field] = _fold_text(container[field])

    return _sort_keys(essential)


def fingerprint(canonical_input: Any, length: int = FINGERPRINT_LENGTH) -> str:
    """SHA-256 of the canonical JSON serialization, truncated to ``length`` hex chars.

    Truncation bounds key size; it is not a security boundary.
    """
    serialized = json.dumps(
        canonical_input,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()[:length]


def fingerprint_request(raw_input: dict[str, Any] | None, document_type: str | None = None) -> str:
    """Normalize then fingerprint in one step."""
    return fingerprint(normalize_input(raw_input, document_type))


def hash_object(obj: Any, length: int = 8) -> str:
    """Short digest of an arbitrary JSON-serializable object (e.g. an outline)."""
    return fingerprint(_sort_keys(obj), length=length)


def hash_text(text: str, length: int = FINGERPRINT_LENGTH) -> str:
    """Digest of raw text, used for embedding keys."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:length]


def _fold_text(text: str) -> str:
    return _WS_RE.sub(" ", text).strip().lower()


def _sort_token(item: Any) -> str:
    if isinstance(item, str):
        return item
    return json.dumps(item, sort_keys=True, default=str)


def _sort_keys(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _sort_keys(obj[k]) for k in sorted(obj)}
    if isinstance(obj, list):
        return [_sort_keys(item) for item in obj]
    return obj
