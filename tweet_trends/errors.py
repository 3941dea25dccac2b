from __future__ import annotations


class TrendError(Exception):
    """Base class for failures that abort a trend analysis run."""


class ConfigurationError(TrendError):
    """A required option is missing or an option value cannot be parsed."""


class ParseError(TrendError):
    """A record payload is malformed or lacks an expected field."""


class ResourceError(TrendError):
    """Reading from the source or writing to the sink failed."""
