"""Tests for edit-distance similarity."""

from __future__ import annotations

import pytest

from cellengine.core.event import MalformedSignatureError
from cellengine.engine.similarity import levenshtein, signature_similarity, string_similarity


class TestLevenshtein:
    @pytest.mark.parametrize(
        ("a", "b", "expected"),
        [
            ("", "", 0),
            ("abc", "", 3),
            ("kitten", "sitting", 3),
            ("/users/1", "/users/2", 1),
            ("flaw", "lawn", 2),
        ],
    )
    def test_distance(self, a: str, b: str, expected: int) -> None:
        assert levenshtein(a, b) == expected
        assert levenshtein(b, a) == expected


class TestStringSimilarity:
    def test_identical(self) -> None:
        assert string_similarity("/a", "/a") == 1.0
        assert string_similarity("", "") == 1.0

    def test_one_empty(self) -> None:
        assert string_similarity("/a", "") == 0.0

    def test_one_character_apart(self) -> None:
        assert string_similarity("/users/1", "/users/2") == pytest.approx(0.875)


class TestSignatureSimilarity:
    def test_same_method_near_url_is_similar(self) -> None:
        score = signature_similarity("GET:/users/1", "GET:/users/2")
        assert score == pytest.approx(0.9)
        assert score > 0.8

    def test_different_method_is_not_similar(self) -> None:
        score = signature_similarity("GET:/users/1", "POST:/users/2")
        assert score == pytest.approx(0.7)

    def test_malformed_raises(self) -> None:
        with pytest.raises(MalformedSignatureError):
            signature_similarity("GET:/a", "broken")
