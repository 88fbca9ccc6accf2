"""Edit-distance similarity between events."""

from __future__ import annotations

from cellengine.core.event import split_signature

URL_WEIGHT = 0.8
METHOD_WEIGHT = 0.2


def levenshtein(a: str, b: str) -> int:
    """Minimum insertions, deletions and substitutions turning *a* into *b*."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def string_similarity(a: str, b: str) -> float:
    """Normalized similarity in [0, 1]; 1 for identical strings."""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    return 1.0 - levenshtein(a, b) / max(len(a), len(b))


def signature_similarity(signature_a: str, signature_b: str) -> float:
    """Blend URL similarity with method equality.

    Raises:
        MalformedSignatureError: If either signature lacks a delimiter
    """
    method_a, url_a = split_signature(signature_a)
    method_b, url_b = split_signature(signature_b)
    method_match = 1.0 if method_a == method_b else 0.0
    return URL_WEIGHT * string_similarity(url_a, url_b) + METHOD_WEIGHT * method_match
