"""Query expansion and cross-variant deduplication."""

from typing import Any, Callable, Dict, Iterable, List, Optional

EXPANSION_MIN_LENGTH = 50
EXPANSION_MIN_WORDS = 4
MIN_VARIANT_WORDS = 2
MIN_KEYWORD_LENGTH = 4
GENERIC_KEYWORDS = {"tech", "ai", "ml", "python"}
LOCATION_MARKERS = {"in", "near", "around"}


def _follows_location_marker(previous: Optional[str]) -> bool:
    return previous is not None and previous.lower() in LOCATION_MARKERS


def expand_query(query: str) -> List[str]:
    """Return the original query followed by at most two narrower variants.

    Only queries longer than 50 characters with more than three words are
    expanded: the first half of the words, and the words that look like a
    location or are long and not generic buzzwords.
    """
    query = " ".join((query or "").split())
    if not query:
        return []

    variants = [query]
    words = query.split(" ")
    if len(query) > EXPANSION_MIN_LENGTH and len(words) >= EXPANSION_MIN_WORDS:
        half = words[: (len(words) + 1) // 2]
        candidates = [half]

        keywords = []
        for index, word in enumerate(words):
            previous = words[index - 1] if index else None
            lowered = word.lower()
            if lowered in GENERIC_KEYWORDS:
                continue
            if _follows_location_marker(previous) or len(word) >= MIN_KEYWORD_LENGTH:
                keywords.append(word)
        candidates.append(keywords)

        for candidate in candidates:
            if len(candidate) < MIN_VARIANT_WORDS:
                continue
            variant = " ".join(candidate)
            if variant not in variants:
                variants.append(variant)

    return variants


def dedupe_places(
    *result_sets: Iterable[Dict[str, Any]],
    key: Callable[[Dict[str, Any]], Optional[str]] = lambda item: item.get("place_id"),
) -> List[Dict[str, Any]]:
    """Merge result lists, unique by identity, keeping first-seen order."""
    seen = set()
    merged: List[Dict[str, Any]] = []
    for results in result_sets:
        for item in results:
            identity = key(item)
            if not identity or identity in seen:
                continue
            seen.add(identity)
            merged.append(item)
    return merged
