from __future__ import annotations

from typing import Iterable, List, Optional, Union

ENTITY_MARKERS = ("@", "#")


def split_list(value: Union[str, Iterable[str], None]) -> Optional[List[str]]:
    """Parse a comma separated option into a list of trimmed, non-empty entries.

    ``None`` stays ``None`` so callers can tell "unset" apart from "empty".
    """

    if value is None:
        return None
    parts = value.split(",") if isinstance(value, str) else list(value)
    return [str(part).strip() for part in parts if str(part).strip()]


def lower_all(values: Iterable[str]) -> List[str]:
    return [value.lower() for value in values]


def contains_any(text: str, needles: Iterable[str]) -> bool:
    haystack = text.lower()
    return any(needle in haystack for needle in needles)


def strip_marker(token: str) -> str:
    if token and token[0] in ENTITY_MARKERS:
        return token[1:]
    return token
