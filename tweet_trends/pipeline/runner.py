from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator, List

from pydantic import BaseModel, Field

from ..errors import ParseError
from ..models import EntityEvent, FilterMode, RawRecord, Settings, TypedGroup, WindowSettings
from ..utils.logging import get_logger
from ..utils.timestamps import minutes_to_ms
from .extractor import extract_entities, parse_record
from .filters import accept_record, include_entity
from .formatter import format_group
from .ranking import rank_window
from .storage import export_groups, load_records, write_lines
from .windowing import WindowCounter


class RunStats(BaseModel):
    records: int = 0
    accepted: int = 0
    rejected: int = 0
    skipped: int = 0
    events: int = 0
    filtered_entities: int = 0
    windows: int = 0
    groups: int = 0


class RunResult(BaseModel):
    groups: List[TypedGroup] = Field(default_factory=list)
    lines: List[str] = Field(default_factory=list)
    stats: RunStats = Field(default_factory=RunStats)


def iter_events(records: Iterable[RawRecord], settings: Settings, stats: RunStats) -> Iterator[EntityEvent]:
    """Parse, filter and extract: the per-record stages, ending with the entity deny-list."""

    logger = get_logger(__name__)
    filters = settings.filter
    for record in records:
        stats.records += 1
        try:
            tweet = parse_record(record)
            if not accept_record(tweet, filters):
                stats.rejected += 1
                continue
            events = extract_entities(tweet)
        except ParseError as exc:
            if not settings.skip_malformed:
                raise
            stats.skipped += 1
            logger.warning("Skipping malformed record", extra={"error": str(exc)})
            continue
        stats.accepted += 1
        for event in events:
            if not include_entity(event.token, filters.filter_entities, FilterMode.EXCLUDE):
                stats.filtered_entities += 1
                continue
            stats.events += 1
            yield event


def count_windows(events: Iterable[EntityEvent], settings: WindowSettings) -> WindowCounter:
    counter = WindowCounter(minutes_to_ms(settings.size), minutes_to_ms(settings.freq))
    for event in events:
        counter.add(event)
    return counter


def rank_windows(counter: WindowCounter, k: int) -> List[TypedGroup]:
    groups: List[TypedGroup] = []
    for window_start, counts in counter.drain():
        groups.extend(rank_window(window_start, counts, k))
    return groups


def run_pipeline(records: Iterable[RawRecord], settings: Settings) -> RunResult:
    stats = RunStats()
    # Every record is consumed before any window is ranked.
    counter = count_windows(iter_events(records, settings, stats), settings.window)
    stats.windows = len(counter.windows())
    groups = rank_windows(counter, settings.window.top_k)
    stats.groups = len(groups)
    lines = [format_group(group, settings.delimiter) for group in groups]
    get_logger(__name__).info("Aggregation complete", extra=stats.model_dump())
    return RunResult(groups=groups, lines=lines, stats=stats)


def analyze(settings: Settings) -> RunResult:
    records = load_records(settings.read_from)
    result = run_pipeline(records, settings)
    # The main output is the last thing written, so any failure leaves no save_to file.
    if settings.export_path:
        export_groups(result.groups, Path(settings.export_path))
    write_lines(result.lines, Path(settings.save_to))
    return result
