from __future__ import annotations

from typing import List, Tuple

from ..errors import ParseError
from ..models import HASHTAG, MENTION, TypedGroup
from ..utils.timestamps import format_instant, parse_instant


def format_group(group: TypedGroup, delimiter: str = ",") -> str:
    """Render ``type,windowStart,token1,count1,...``.

    Tokens are written as-is; a token containing the delimiter makes the line
    ambiguous to split.
    """

    fields = [group.entity_type, format_instant(group.window_start)]
    for token, count in group.entries:
        fields.append(token)
        fields.append(str(count))
    return delimiter.join(fields)


def parse_line(line: str, delimiter: str = ",") -> TypedGroup:
    fields = line.rstrip("\r\n").split(delimiter)
    if len(fields) < 2 or len(fields) % 2:
        raise ParseError(f"Malformed result line: {line!r}")
    entity_type, window = fields[0], fields[1]
    if entity_type not in (MENTION, HASHTAG):
        raise ParseError(f"Unknown entity type in result line: {entity_type!r}")
    try:
        window_start = parse_instant(window)
        entries: List[Tuple[str, int]] = [
            (fields[i], int(fields[i + 1])) for i in range(2, len(fields), 2)
        ]
    except ValueError as exc:
        raise ParseError(f"Malformed result line: {line!r}") from exc
    return TypedGroup(entity_type=entity_type, window_start=window_start, entries=entries)
