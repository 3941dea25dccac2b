from __future__ import annotations

from typing import Optional, Sequence

from ..errors import ParseError
from ..models import FilterMode, FilterSettings, Tweet
from ..utils.text import contains_any, strip_marker


def accept_record(tweet: Tweet, settings: FilterSettings) -> bool:
    if not settings.retweet and tweet.is_retweet:
        return False

    start_ms = settings.start_ms
    if start_ms is not None and tweet.timestamp_ms < start_ms:
        return False
    stop_ms = settings.stop_ms
    if stop_ms is not None and tweet.timestamp_ms > stop_ms:
        return False

    if not settings.contains and not settings.not_contains:
        return True
    if tweet.text is None:
        raise ParseError("Record payload has no text to match against")
    if settings.contains and not contains_any(tweet.text, settings.contains):
        return False
    if settings.not_contains and contains_any(tweet.text, settings.not_contains):
        return False
    return True


def include_entity(
    token: str,
    entities: Optional[Sequence[str]],
    mode: FilterMode = FilterMode.EXCLUDE,
) -> bool:
    """Allow/deny-list check for an extracted token.

    Entries are compared case-insensitively. An entry with a type marker
    (``@bob``) matches that token only; a bare entry (``bob``) matches the
    mention and the hashtag of the same name.
    """

    if entities is None:
        return True
    needle = token.lower()
    bare = strip_marker(needle)
    found = False
    for entry in entities:
        candidate = entry.lower()
        if candidate == needle or (candidate == strip_marker(candidate) and candidate == bare):
            found = True
            break
    if mode is FilterMode.INCLUDE:
        return found
    return not found
