from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .utils.text import ENTITY_MARKERS, lower_all, split_list
from .utils.timestamps import to_epoch_ms, to_utc

EntityType = Literal["mention", "hashtag"]
MENTION: EntityType = "mention"
HASHTAG: EntityType = "hashtag"
EXPORT_SUFFIXES = {".csv", ".json", ".parquet", ".pq"}


class FilterMode(str, Enum):
    INCLUDE = "include"
    EXCLUDE = "exclude"


class RawRecord(BaseModel):
    """One stored post as handed over by the source: JSON text plus the retweet flag."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    payload: str = Field(..., alias="json", description="Post serialized as JSON")
    is_retweet: bool = Field(False, description="Whether the post is a retweet")


class Mention(BaseModel):
    screen_name: str = Field(..., min_length=1)


class Hashtag(BaseModel):
    text: str = Field(..., min_length=1)


class TweetEntities(BaseModel):
    user_mentions: List[Mention]
    hashtags: List[Hashtag]


class Tweet(BaseModel):
    """The parts of a decoded post payload the pipeline reads."""

    timestamp_ms: int
    text: Optional[str] = None
    # Validated as TweetEntities only when the post reaches extraction.
    entities: Any = None
    is_retweet: bool = False


class EntityEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    timestamp_ms: int

    @field_validator("token")
    @classmethod
    def _check_marker(cls, value: str) -> str:
        if len(value) < 2 or value[0] not in ENTITY_MARKERS or value[1] in ENTITY_MARKERS:
            raise ValueError(f"entity token must start with exactly one of {ENTITY_MARKERS}: {value!r}")
        return value

    @property
    def entity_type(self) -> EntityType:
        return MENTION if self.token.startswith("@") else HASHTAG


class WindowedCount(BaseModel):
    token: str
    window_start: int
    count: int = Field(..., ge=0)


class TypedGroup(BaseModel):
    entity_type: EntityType
    window_start: int
    entries: List[Tuple[str, int]] = Field(default_factory=list)


class FilterSettings(BaseModel):
    contains: List[str] = Field(default_factory=list, description="Text must contain one of these")
    not_contains: List[str] = Field(default_factory=list, description="Text must contain none of these")
    retweet: bool = Field(True, description="Accept retweets")
    start: Optional[datetime] = Field(None, description="Drop posts before this instant")
    stop: Optional[datetime] = Field(None, description="Drop posts after this instant")
    filter_entities: Optional[List[str]] = Field(None, description="Entities excluded from aggregation")

    @field_validator("contains", "not_contains", mode="before")
    @classmethod
    def _split_substrings(cls, value):
        return lower_all(split_list(value) or [])

    @field_validator("filter_entities", mode="before")
    @classmethod
    def _split_entities(cls, value):
        return split_list(value)

    @field_validator("start", "stop")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc(value) if value is not None else None

    @property
    def start_ms(self) -> Optional[int]:
        return to_epoch_ms(self.start) if self.start is not None else None

    @property
    def stop_ms(self) -> Optional[int]:
        return to_epoch_ms(self.stop) if self.stop is not None else None


class WindowSettings(BaseModel):
    size: int = Field(30, ge=1, description="Sliding window length in minutes")
    freq: int = Field(5, ge=1, description="Sliding window stride in minutes")
    top_k: int = Field(10, ge=1, description="Entities kept per type and window")

    @model_validator(mode="after")
    def _freq_within_size(self) -> "WindowSettings":
        if self.freq > self.size:
            raise ValueError(f"window freq ({self.freq}) must not exceed window size ({self.size})")
        return self


class Settings(BaseModel):
    read_from: str = Field(..., description="Source location (jsonl, csv, parquet or duckdb[::table])")
    save_to: str = Field(..., description="Output text file")
    filter: FilterSettings = Field(default_factory=FilterSettings)
    window: WindowSettings = Field(default_factory=WindowSettings)
    skip_malformed: bool = Field(False, description="Skip and count malformed records instead of failing")
    export_path: Optional[str] = Field(None, description="Optional tabular export (csv, json, parquet)")
    delimiter: str = Field(",", min_length=1, max_length=1)

    @field_validator("read_from", "save_to")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("export_path")
    @classmethod
    def _export_format(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and Path(value).suffix.lower() not in EXPORT_SUFFIXES:
            raise ValueError(f"export format must be one of {sorted(EXPORT_SUFFIXES)}")
        return value
