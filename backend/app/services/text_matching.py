"""Keyword matching shared by every record source.

Keywords containing a space are phrases and must appear verbatim in the
searchable text. Single tokens only need one of them to appear. A record
matches when both buckets are satisfied, so "zen sciences" does not match a
record that has "zen" in its title and "sciences" in an unrelated decision.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence


def build_search_text(*parts: str | Iterable[str] | None) -> str:
    """Concatenate title and secondary fields into one lower-cased string."""
    pieces: list[str] = []
    for part in parts:
        if not part:
            continue
        if isinstance(part, str):
            pieces.append(part)
        else:
            pieces.extend(str(p) for p in part if p)
    return " ".join(pieces).lower()


def split_keywords(keywords: Sequence[str]) -> tuple[list[str], list[str]]:
    phrases: list[str] = []
    tokens: list[str] = []
    for keyword in keywords:
        keyword = keyword.strip().lower()
        if not keyword:
            continue
        if " " in keyword:
            phrases.append(keyword)
        else:
            tokens.append(keyword)
    return phrases, tokens


def matches_keywords(search_text: str, keywords: Sequence[str] | None) -> bool:
    if not keywords:
        return True

    text = search_text.lower()
    phrases, tokens = split_keywords(keywords)

    phrase_match = not phrases or any(phrase in text for phrase in phrases)
    token_match = not tokens or any(token in text for token in tokens)
    return phrase_match and token_match
