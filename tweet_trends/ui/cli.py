from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from ..config import load_settings
from ..errors import ConfigurationError, TrendError
from ..models import HASHTAG, MENTION
from ..pipeline.formatter import parse_line
from ..pipeline.runner import analyze as run_analysis
from ..pipeline.storage import read_lines
from ..utils.logging import configure_logging
from ..utils.timestamps import format_instant

app = typer.Typer(add_completion=False, help="Sliding-window trending mentions and hashtags")


@app.command()
def analyze(
    read_from: Optional[str] = typer.Option(None, help="Source of posts: jsonl, csv, parquet or duckdb[::table]"),
    save_to: Optional[str] = typer.Option(None, help="Output file for the ranked lines"),
    settings: Optional[Path] = typer.Option(None, help="YAML settings file; options below override it"),
    window_size: Optional[int] = typer.Option(None, min=1, help="Window size in minutes (default 30)"),
    window_freq: Optional[int] = typer.Option(None, min=1, help="Window frequency in minutes (default 5)"),
    top_k: Optional[int] = typer.Option(None, min=1, help="Entities kept per type and window (default 10)"),
    retweet: Optional[bool] = typer.Option(None, "--retweet/--no-retweet", help="Accept retweets (default yes)"),
    contains: Optional[str] = typer.Option(None, help="Comma separated strings; the text must contain one"),
    not_contains: Optional[str] = typer.Option(None, help="Comma separated strings; the text must contain none"),
    start: Optional[str] = typer.Option(None, help="Only posts at or after this ISO-8601 instant"),
    stop: Optional[str] = typer.Option(None, help="Only posts at or before this ISO-8601 instant"),
    filter_entities: Optional[str] = typer.Option(None, help="Comma separated entities to leave out"),
    skip_malformed: Optional[bool] = typer.Option(
        None, "--skip-malformed/--fail-on-malformed", help="Skip unparsable records instead of aborting"
    ),
    export: Optional[str] = typer.Option(None, help="Also export the ranking as csv, json or parquet"),
    log_level: str = typer.Option("INFO", help="Logging level"),
    log_file: Optional[Path] = typer.Option(None, help="Also log to this rotating file"),
):
    """Rank the top mentions and hashtags of every sliding window."""

    configure_logging(log_level, str(log_file) if log_file else None)
    try:
        cfg = load_settings(
            settings,
            {
                "read_from": read_from,
                "save_to": save_to,
                "window_size": window_size,
                "window_freq": window_freq,
                "top_k": top_k,
                "retweet": retweet,
                "contains": contains,
                "not_contains": not_contains,
                "start": start,
                "stop": stop,
                "filter_entities": filter_entities,
                "skip_malformed": skip_malformed,
                "export_path": export,
            },
        )
        result = run_analysis(cfg)
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=2)
    except TrendError as exc:
        typer.echo(f"Run failed: {exc}", err=True)
        raise typer.Exit(code=1)

    stats = result.stats
    typer.echo(
        f"Wrote {len(result.lines)} lines to {cfg.save_to} "
        f"({stats.accepted}/{stats.records} posts, {stats.events} entities, {stats.windows} windows)"
    )


@app.command()
def show(
    results: Path = typer.Argument(..., help="Result file written by analyze"),
    entity_type: Optional[str] = typer.Option(None, "--type", help="Only show mention or hashtag lines"),
    limit: int = typer.Option(5, min=1, help="Entries to show per line"),
    delimiter: str = typer.Option(",", help="Field delimiter of the result file"),
):
    """Preview a result file in the terminal."""

    if entity_type is not None and entity_type not in (MENTION, HASHTAG):
        typer.echo(f"Unknown type {entity_type!r}; use {MENTION} or {HASHTAG}", err=True)
        raise typer.Exit(code=2)
    try:
        groups = [parse_line(line, delimiter) for line in read_lines(results)]
    except TrendError as exc:
        typer.echo(f"Cannot read results: {exc}", err=True)
        raise typer.Exit(code=1)

    groups = [group for group in groups if entity_type is None or group.entity_type == entity_type]
    if not groups:
        typer.echo("No results available")
        return
    for group in sorted(groups, key=lambda g: (g.window_start, g.entity_type)):
        ranked = "  ".join(f"{token} {count}" for token, count in group.entries[:limit])
        typer.echo(f"{format_instant(group.window_start)}  {group.entity_type:<7}  {ranked}")


if __name__ == "__main__":  # pragma: no cover
    app()
