from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Iterable, Iterator, List, Tuple

import duckdb
import pandas as pd

from ..errors import ParseError, ResourceError
from ..models import RawRecord, TypedGroup
from ..utils.logging import get_logger
from ..utils.timestamps import format_instant

RECORD_COLUMNS = ["json", "is_retweet"]
DEFAULT_TABLE = "tweets"
DUCKDB_SUFFIXES = {".duckdb", ".db"}
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


def split_location(location: str) -> Tuple[Path, str | None]:
    """Split ``path::table`` into the file path and the optional table name."""

    path, sep, table = location.partition("::")
    return Path(path), (table or None) if sep else None


def load_dataframe(location: str) -> pd.DataFrame:
    path, table = split_location(location)
    suffix = path.suffix.lower()
    try:
        if suffix in DUCKDB_SUFFIXES:
            return _load_duckdb(path, table or DEFAULT_TABLE)
        if suffix in {".jsonl", ".ndjson"}:
            return pd.read_json(path, lines=True, dtype=False)
        if suffix == ".json":
            return pd.read_json(path, dtype=False)
        if suffix == ".csv":
            return pd.read_csv(path, dtype={"json": str})
        if suffix in {".parquet", ".pq"}:
            return pd.read_parquet(path)
    except (OSError, ValueError, duckdb.Error) as exc:
        raise ResourceError(f"Failed to read records from {location}: {exc}") from exc
    raise ResourceError(f"Unsupported source format: {location}")


def _load_duckdb(path: Path, table: str) -> pd.DataFrame:
    if not _IDENTIFIER_RE.match(table):
        raise ResourceError(f"Invalid table name: {table!r}")
    if not path.exists():
        raise ResourceError(f"DuckDB database not found: {path}")
    conn = duckdb.connect(str(path), read_only=True)
    try:
        return conn.execute(f"SELECT json, is_retweet FROM {table}").df()
    finally:
        conn.close()


def iter_records(df: pd.DataFrame) -> Iterator[RawRecord]:
    # An empty jsonl file reads as a frame without rows or columns.
    if df.empty and len(df.columns) == 0:
        return
    missing = [column for column in RECORD_COLUMNS if column not in df.columns]
    if missing:
        raise ParseError(f"Source is missing required columns: {', '.join(missing)}")
    for payload, is_retweet in df[RECORD_COLUMNS].itertuples(index=False, name=None):
        yield RawRecord(
            payload=_payload_text(payload),
            is_retweet=False if _is_null(is_retweet) else _as_bool(is_retweet),
        )


def load_records(location: str) -> List[RawRecord]:
    df = load_dataframe(location)
    records = list(iter_records(df))
    get_logger(__name__).info("Loaded records", extra={"rows": len(records), "source": location})
    return records


def write_lines(lines: Iterable[str], path: Path) -> int:
    """Write all lines to a single file, replacing it only once writing succeeded."""

    tmp_path = path.with_name(path.name + ".tmp")
    written = 0
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tmp_path.open("w", encoding="utf-8", newline="\n") as fh:
            for line in lines:
                fh.write(line)
                fh.write("\n")
                written += 1
        os.replace(tmp_path, path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise ResourceError(f"Failed to write results to {path}: {exc}") from exc
    get_logger(__name__).info("Wrote results", extra={"lines": written, "path": str(path)})
    return written


def read_lines(path: Path) -> List[str]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            return [line.rstrip("\n") for line in fh if line.strip()]
    except OSError as exc:
        raise ResourceError(f"Failed to read results from {path}: {exc}") from exc


def groups_dataframe(groups: Iterable[TypedGroup]) -> pd.DataFrame:
    rows = [
        {
            "entity_type": group.entity_type,
            "window_start": format_instant(group.window_start),
            "rank": rank,
            "token": token,
            "count": count,
        }
        for group in groups
        for rank, (token, count) in enumerate(group.entries, start=1)
    ]
    return pd.DataFrame(rows, columns=["entity_type", "window_start", "rank", "token", "count"])


def export_groups(groups: Iterable[TypedGroup], out_path: Path) -> None:
    df = groups_dataframe(groups)
    suffix = out_path.suffix.lower()
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        if suffix == ".csv":
            df.to_csv(out_path, index=False)
        elif suffix == ".json":
            df.to_json(out_path, orient="records", lines=False)
        elif suffix in {".parquet", ".pq"}:
            df.to_parquet(out_path, index=False)
        else:
            raise ValueError("Unsupported export format")
    except OSError as exc:
        raise ResourceError(f"Failed to export results to {out_path}: {exc}") from exc
    get_logger(__name__).info("Exported dataset", extra={"rows": len(df), "path": str(out_path)})


def _payload_text(value) -> str:
    # Sources that store the post as a nested object instead of a JSON string.
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    # Null payloads become empty strings so that the parse stage reports them per record.
    if _is_null(value):
        return ""
    return str(value)


def _is_null(value) -> bool:
    return value is None or (not isinstance(value, str) and bool(pd.isna(value)))


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "t"}
    return bool(value)
