# tests/unit/cache/test_fingerprint.py - v1
"""Tests for cache/fingerprint.py - request normalization and hashing."""

from __future__ import annotations

import copy

from docuforge.cache.fingerprint import (
    FINGERPRINT_LENGTH,
    fingerprint,
    fingerprint_request,
    hash_object,
    hash_text,
    normalize_input,
)


class TestNormalizeInput:
    def test_volatile_fields_removed(self):
        normalized = normalize_input({
            "title": "Doc", "createdAt": "2026-01-01", "userId": "u1", "id": 7, "timestamp": 1,
        })
        assert normalized == {"title": "Doc"}

    def test_keys_sorted_recursively(self):
        normalized = normalize_input({"b": 1, "a": {"z": 1, "y": 2}})
        assert list(normalized) == ["a", "b"]
        assert list(normalized["a"]) == ["y", "z"]

    def test_whitelisted_lists_sorted(self):
        normalized = normalize_input({"keywords": ["b", "a"], "focusAreas": ["z", "m"]})
        assert normalized["keywords"] == ["a", "b"]
        assert normalized["focusAreas"] == ["m", "z"]

    def test_other_lists_keep_order(self):
        normalized = normalize_input({"sections": ["b", "a"]})
        assert normalized["sections"] == ["b", "a"]

    def test_description_folded(self):
        normalized = normalize_input({"description": "  Hello   WORLD \n"})
        assert normalized["description"] == "hello world"

    def test_subject_name_folded(self):
        normalized = normalize_input({"subject": {"name": "Ada  LOVELACE"}})
        assert normalized["subject"]["name"] == "ada lovelace"

    def test_input_not_mutated(self):
        raw = {"keywords": ["b", "a"], "subject": {"name": "Ada  LOVELACE"}, "id": 1}
        original = copy.deepcopy(raw)
        normalize_input(raw)
        assert raw == original

    def test_none_input(self):
        assert normalize_input(None) == {}


class TestFingerprint:
    def test_length(self):
        assert len(fingerprint({"a": 1})) == FINGERPRINT_LENGTH

    def test_equal_requests_share_fingerprint(self):
        a = {"title": "Doc", "keywords": ["x", "y"], "userId": "u1", "subject": {"name": "Ada"}}
        b = {"subject": {"name": "  ada "}, "keywords": ["y", "x"], "userId": "u2", "title": "Doc"}
        assert fingerprint_request(a) == fingerprint_request(b)

    def test_different_requests_differ(self):
        assert fingerprint_request({"title": "A"}) != fingerprint_request({"title": "B"})

    def test_deterministic(self):
        payload = {"title": "Doc", "nested": {"list": [1, 2, 3]}}
        assert fingerprint(payload) == fingerprint(copy.deepcopy(payload))

    def test_non_json_values(self):
        from datetime import date

        assert len(fingerprint({"when": date(2026, 1, 1)})) == FINGERPRINT_LENGTH


class TestHashHelpers:
    def test_hash_object_ignores_key_order(self):
        assert hash_object({"a": 1, "b": {"c": 2, "d": 3}}) == hash_object({"b": {"d": 3, "c": 2}, "a": 1})

    def test_hash_object_default_length(self):
        assert len(hash_object({"a": 1})) == 8

    def test_hash_object_changes_with_content(self):
        assert hash_object({"title": "A"}) != hash_object({"title": "B"})

    def test_hash_text(self):
        assert hash_text("hello") == hash_text("hello")
        assert hash_text("hello") != hash_text("hello ")
        assert len(hash_text("hello")) == FINGERPRINT_LENGTH
