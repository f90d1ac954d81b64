"""Keyword, relevance and similarity helpers shared by the scoring components."""

from __future__ import annotations

import re
from typing import Iterable


# Used when picking goal keywords.
KEYWORD_STOPWORDS = frozenset(
    {
        "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
        "with", "about", "from", "by", "is", "was", "were", "be", "been",
        "have", "has", "had", "do", "does", "did", "of", "that", "this",
        "these", "those", "they", "we", "you", "i", "he", "she", "it",
        "what", "which", "when", "where", "there", "their", "them", "into",
        "some", "more", "most", "than", "then", "also", "just", "only",
        "very", "will", "would", "could", "should",
    }
)

# Smaller list used for information density.
DENSITY_STOPWORDS = frozenset(
    {
        "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
        "with", "about", "from", "by", "is", "was", "were", "be", "been",
    }
)

MIN_KEYWORD_LENGTH = 4
MIN_SIGNATURE_TOKEN_LENGTH = 4
MIN_MEANINGFUL_WORD_LENGTH = 3

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def extract_keywords(text: str | None) -> list[str]:
    """Lowercase, strip punctuation and keep non-stopword tokens of 4+ chars.

    Order of first occurrence is kept; duplicates are dropped.
    """

    if not text:
        return []

    cleaned = _PUNCTUATION_RE.sub("", text.lower())
    keywords: list[str] = []
    seen: set[str] = set()
    for token in cleaned.split():
        if len(token) < MIN_KEYWORD_LENGTH or token in KEYWORD_STOPWORDS:
            continue
        if token in seen:
            continue
        seen.add(token)
        keywords.append(token)
    return keywords


def keyword_fraction(text: str | None, keywords: Iterable[str]) -> float:
    """Fraction of `keywords` appearing as substrings of lowercased `text`.

    Returns 0.0 when there are no keywords.
    """

    terms = list(keywords)
    if not terms:
        return 0.0
    haystack = (text or "").lower()
    matched = sum(1 for term in terms if term in haystack)
    return matched / len(terms)


def information_density(text: str | None) -> float:
    """Share of whitespace-separated words that are long enough and not stopwords."""

    words = (text or "").lower().split()
    if not words:
        return 0.0
    meaningful = [
        word
        for word in words
        if len(word) >= MIN_MEANINGFUL_WORD_LENGTH and word not in DENSITY_STOPWORDS
    ]
    return len(meaningful) / len(words)


def word_signature(text: str | None) -> frozenset[str]:
    """Token set of lowercase whitespace-separated words with 4+ characters."""

    return frozenset(
        token
        for token in (text or "").lower().split()
        if len(token) >= MIN_SIGNATURE_TOKEN_LENGTH
    )


def jaccard_similarity(left: frozenset[str] | set[str], right: frozenset[str] | set[str]) -> float:
    """Jaccard index of two token sets; two empty sets count as dissimilar."""

    union = len(left | right)
    if union == 0:
        return 0.0
    return len(left & right) / union


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


__all__ = [
    "DENSITY_STOPWORDS",
    "KEYWORD_STOPWORDS",
    "collapse_whitespace",
    "extract_keywords",
    "information_density",
    "jaccard_similarity",
    "keyword_fraction",
    "word_signature",
]
