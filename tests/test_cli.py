import json
import logging

import pytest
from typer.testing import CliRunner

from tweet_trends.ui.cli import app
from tweet_trends.utils.logging import ExtraFormatter

runner = CliRunner()


@pytest.fixture(autouse=True)
def drop_cli_log_handlers():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler.formatter, ExtraFormatter):
            root.removeHandler(handler)


def write_source(path, posts):
    with path.open("w", encoding="utf-8") as fh:
        for text, mentions, hashtags, is_retweet in posts:
            payload = {
                "timestamp_ms": 1000,
                "text": text,
                "entities": {
                    "user_mentions": [{"screen_name": m} for m in mentions],
                    "hashtags": [{"text": h} for h in hashtags],
                },
            }
            fh.write(json.dumps({"json": json.dumps(payload), "is_retweet": is_retweet}) + "\n")


def test_analyze_writes_ranked_lines(tmp_path):
    source = tmp_path / "tweets.jsonl"
    write_source(
        source,
        [("hi @Bob #Go", ["Bob"], ["Go"], False)] * 3 + [("hi @bob", ["bob"], [], False)] * 2,
    )
    out = tmp_path / "trends.txt"

    result = runner.invoke(
        app,
        [
            "analyze",
            "--read-from",
            str(source),
            "--save-to",
            str(out),
            "--window-size",
            "30",
            "--window-freq",
            "30",
        ],
    )

    assert result.exit_code == 0, result.output
    assert sorted(out.read_text(encoding="utf-8").splitlines()) == [
        "hashtag,1970-01-01T00:00:00.000Z,#go,3",
        "mention,1970-01-01T00:00:00.000Z,@bob,5",
    ]


def test_analyze_with_filters(tmp_path):
    source = tmp_path / "tweets.jsonl"
    write_source(
        source,
        [
            ("go NASA go", ["bob", "amy"], ["space"], False),
            ("no match here", ["carl"], [], False),
            ("nasa retweet", ["dan"], [], True),
        ],
    )
    out = tmp_path / "trends.txt"

    result = runner.invoke(
        app,
        [
            "analyze",
            "--read-from",
            str(source),
            "--save-to",
            str(out),
            "--contains",
            "nasa",
            "--no-retweet",
            "--filter-entities",
            "bob",
        ],
    )

    assert result.exit_code == 0, result.output
    text = out.read_text(encoding="utf-8")
    assert "@amy" in text
    assert "#space" in text
    for dropped in ("@bob", "@carl", "@dan"):
        assert dropped not in text


def test_missing_required_option_is_configuration_error(tmp_path):
    result = runner.invoke(app, ["analyze", "--read-from", str(tmp_path / "in.jsonl")])
    assert result.exit_code == 2
    assert "Configuration error" in result.output


def test_bad_timestamp_is_configuration_error(tmp_path):
    result = runner.invoke(
        app,
        ["analyze", "--read-from", "in.jsonl", "--save-to", str(tmp_path / "o.txt"), "--start", "soon"],
    )
    assert result.exit_code == 2


def test_missing_source_fails_without_output(tmp_path):
    out = tmp_path / "trends.txt"
    result = runner.invoke(
        app, ["analyze", "--read-from", str(tmp_path / "missing.jsonl"), "--save-to", str(out)]
    )
    assert result.exit_code == 1
    assert "Run failed" in result.output
    assert not out.exists()


def test_malformed_record_fails_unless_skipped(tmp_path):
    source = tmp_path / "tweets.jsonl"
    write_source(source, [("hi @bob", ["bob"], [], False)])
    with source.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps({"json": "{oops", "is_retweet": False}) + "\n")
    out = tmp_path / "trends.txt"
    args = ["analyze", "--read-from", str(source), "--save-to", str(out)]

    failed = runner.invoke(app, args)
    assert failed.exit_code == 1
    assert not out.exists()

    skipped = runner.invoke(app, args + ["--skip-malformed"])
    assert skipped.exit_code == 0, skipped.output
    assert "@bob" in out.read_text(encoding="utf-8")


def test_show_previews_results(tmp_path):
    results = tmp_path / "trends.txt"
    results.write_text(
        "mention,2016-05-01T10:05:00.000Z,@bob,5,@amy,2\nhashtag,2016-05-01T10:05:00.000Z,#go,3\n",
        encoding="utf-8",
    )

    result = runner.invoke(app, ["show", str(results), "--type", "mention", "--limit", "1"])

    assert result.exit_code == 0, result.output
    assert "@bob 5" in result.output
    assert "@amy" not in result.output
    assert "#go" not in result.output


def test_show_rejects_unknown_type(tmp_path):
    results = tmp_path / "trends.txt"
    results.write_text("", encoding="utf-8")
    result = runner.invoke(app, ["show", str(results), "--type", "emoji"])
    assert result.exit_code == 2


def test_empty_source_writes_empty_output(tmp_path):
    source = tmp_path / "tweets.jsonl"
    source.write_text("", encoding="utf-8")
    out = tmp_path / "trends.txt"

    result = runner.invoke(app, ["analyze", "--read-from", str(source), "--save-to", str(out)])

    assert result.exit_code == 0, result.output
    assert out.exists()
    assert out.read_text(encoding="utf-8") == ""
