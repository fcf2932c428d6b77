"""Tag normalisation and term matching shared by the scoring stages."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable


def normalize_tag(tag: str) -> str:
    """Lowercase, trim, and turn hyphens/underscores into spaces: "Ripe-Bananas" -> "ripe bananas"."""
    return " ".join(re.split(r"[\s_\-]+", tag.strip().lower())).strip()


def singularize(word: str) -> str:
    if len(word) > 4 and word.endswith("ies"):
        return word[:-3] + "y"
    if len(word) > 4 and word.endswith(("ches", "shes", "oes", "sses", "xes")):
        return word[:-2]
    if len(word) > 3 and word.endswith("s") and not word.endswith(("ss", "us", "is")):
        return word[:-1]
    return word


def term_variants(term: str) -> tuple[str, ...]:
    """Substrings that count as a hit for ``term``.

    The normalised phrase and the phrase with its last word singularised, so
    "ripe-bananas" hits "ripe banana" but "italian food" does not hit "food".
    """
    phrase = normalize_tag(term)
    if not phrase:
        return ()
    words = phrase.split(" ")
    singular = " ".join(words[:-1] + [singularize(words[-1])])
    return tuple(dict.fromkeys([phrase, singular]))


def count_term_hits(text: str, terms: Iterable[str]) -> int:
    """Number of distinct terms with at least one variant present in ``text``."""
    haystack = text.lower()
    seen: set[str] = set()
    hits = 0
    for term in terms:
        key = normalize_tag(term)
        if not key or key in seen:
            continue
        seen.add(key)
        if any(v in haystack for v in term_variants(term)):
            hits += 1
    return hits


@lru_cache(maxsize=1024)
def word_pattern(term: str) -> re.Pattern:
    """Whole-word, plural-tolerant pattern: "carrots" matches carrot/carrots, not carrotcake."""
    stem = singularize(normalize_tag(term))
    words = [re.escape(w) for w in stem.split(" ")]
    head = words[-1]
    forms = [head, head + "s", head + "es"]
    if head.endswith("y"):
        forms.append(head[:-1] + "ies")
    body = r"\s+".join(words[:-1] + ["(?:" + "|".join(forms) + ")"])
    return re.compile(rf"\b{body}\b", re.IGNORECASE)


def contains_word(text: str, term: str) -> bool:
    if not normalize_tag(term):
        return False
    return word_pattern(term).search(text) is not None
