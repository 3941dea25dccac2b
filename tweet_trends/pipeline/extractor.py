from __future__ import annotations

import json
from typing import List

from pydantic import ValidationError

from ..errors import ParseError
from ..models import EntityEvent, RawRecord, Tweet, TweetEntities


def _invalid_fields(exc: ValidationError) -> str:
    return ", ".join(".".join(str(part) for part in error["loc"]) or "<root>" for error in exc.errors())


def parse_record(record: RawRecord) -> Tweet:
    """Decode the JSON payload of a stored post.

    Only ``timestamp_ms`` (and ``text``, when present) is checked here, which is
    all the record filter reads. The entity lists are checked by
    ``extract_entities`` once the post has been accepted.
    """

    try:
        data = json.loads(record.payload)
    except (TypeError, json.JSONDecodeError) as exc:
        raise ParseError(f"Record payload is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError("Record payload must be a JSON object")
    try:
        return Tweet.model_validate({**data, "is_retweet": record.is_retweet})
    except ValidationError as exc:
        raise ParseError(f"Record payload has missing or invalid fields: {_invalid_fields(exc)}") from exc


def extract_entities(tweet: Tweet) -> List[EntityEvent]:
    """Return one event per mention, then one per hashtag, all at the post's timestamp.

    Raises ``ParseError`` when the entity lists are missing or malformed, or when
    a screen name or hashtag already carries an ``@``/``#`` marker.
    """

    if tweet.entities is None:
        raise ParseError("Record payload has no entities")
    try:
        entities = TweetEntities.model_validate(tweet.entities)
        timestamp = tweet.timestamp_ms
        events = [
            EntityEvent(token="@" + mention.screen_name.lower(), timestamp_ms=timestamp)
            for mention in entities.user_mentions
        ]
        events.extend(
            EntityEvent(token="#" + hashtag.text.lower(), timestamp_ms=timestamp)
            for hashtag in entities.hashtags
        )
    except ValidationError as exc:
        raise ParseError(f"Record entities are missing or invalid: {_invalid_fields(exc)}") from exc
    return events
