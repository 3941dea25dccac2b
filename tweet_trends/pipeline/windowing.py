from __future__ import annotations

from collections import Counter
from typing import Dict, Iterator, List, Optional, Tuple

from ..models import EntityEvent, WindowedCount


def window_end(start_ms: int, size_ms: int) -> int:
    return start_ms + size_ms


def assign_windows(
    timestamp_ms: int,
    size_ms: int,
    frequency_ms: int,
    lower_bound_ms: Optional[int] = None,
) -> List[int]:
    """Return the start of every sliding window that contains ``timestamp_ms``.

    Window starts are the multiples of ``frequency_ms`` counted from the Unix
    epoch, each window covering ``[start, start + size_ms)``. Starts are
    returned in ascending order. With ``lower_bound_ms`` set, windows that
    start before the bound are left out.
    """

    if size_ms <= 0 or frequency_ms <= 0:
        raise ValueError("window size and frequency must be positive")
    last_start = timestamp_ms - timestamp_ms % frequency_ms
    starts: List[int] = []
    start = last_start
    while start > timestamp_ms - size_ms:
        if lower_bound_ms is not None and start < lower_bound_ms:
            break
        starts.append(start)
        start -= frequency_ms
    starts.reverse()
    return starts


class WindowCounter:
    """Running ``(window, token) -> count`` table for sliding windows."""

    def __init__(self, size_ms: int, frequency_ms: int, lower_bound_ms: Optional[int] = None):
        if frequency_ms > size_ms:
            raise ValueError("window frequency must not exceed window size")
        self.size_ms = size_ms
        self.frequency_ms = frequency_ms
        self.lower_bound_ms = lower_bound_ms
        self._windows: Dict[int, Counter] = {}
        self._closed_before: Optional[int] = None

    def add(self, event: EntityEvent) -> List[int]:
        starts = assign_windows(event.timestamp_ms, self.size_ms, self.frequency_ms, self.lower_bound_ms)
        if self._closed_before is not None and starts and window_end(starts[0], self.size_ms) <= self._closed_before:
            raise ValueError(f"event at {event.timestamp_ms} arrived after window {starts[0]} was closed")
        for start in starts:
            self._windows.setdefault(start, Counter())[event.token] += 1
        return starts

    def windows(self) -> List[int]:
        return sorted(self._windows)

    def counts(self, window_start: int) -> Dict[str, int]:
        return dict(self._windows.get(window_start, {}))

    def items(self) -> Iterator[WindowedCount]:
        for start in self.windows():
            for token, count in self._windows[start].items():
                yield WindowedCount(token=token, window_start=start, count=count)

    def close_before(self, watermark_ms: int) -> List[Tuple[int, Dict[str, int]]]:
        """Pop every window that ends at or before the watermark.

        Events for a popped window must not arrive afterwards; ``add`` rejects them.
        """

        closed = [start for start in self.windows() if window_end(start, self.size_ms) <= watermark_ms]
        if self._closed_before is None or watermark_ms > self._closed_before:
            self._closed_before = watermark_ms
        return [(start, dict(self._windows.pop(start))) for start in closed]

    def drain(self) -> List[Tuple[int, Dict[str, int]]]:
        drained = [(start, dict(self._windows[start])) for start in self.windows()]
        self._windows.clear()
        return drained

    def __len__(self) -> int:
        return sum(len(tokens) for tokens in self._windows.values())
