"""Timing bookkeeping for the execution loop.

Durations come from ``time.perf_counter`` and are anchored to a wall-clock
start, so segment end times stay consistent with their durations even if the
system clock moves during a request.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
import time
from typing import TYPE_CHECKING

from conduit.types import SegmentType, TimeSegment

if TYPE_CHECKING:
    from collections.abc import Iterator


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def to_iso(epoch_ms: int) -> str:
    """Format epoch milliseconds as an ISO-8601 UTC timestamp."""
    seconds, millis = divmod(epoch_ms, 1000)
    dt = datetime.fromtimestamp(seconds, tz=UTC) + timedelta(milliseconds=millis)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Span:
    """A running or finished measurement, filled in when its scope exits."""

    start_time: int
    end_time: int = 0
    duration: int = 0


@contextmanager
def measure() -> Iterator[Span]:
    """Measure the enclosed block; the yielded span is final after exit."""
    span = Span(start_time=now_ms())
    start = time.perf_counter()
    try:
        yield span
    finally:
        span.duration = int((time.perf_counter() - start) * 1000)
        span.end_time = span.start_time + span.duration


@dataclass
class Timeline:
    """Append-only sequence of model/tool segments for one request."""

    started_at: int = field(default_factory=now_ms)
    segments: list[TimeSegment] = field(default_factory=list)

    def record(self, kind: SegmentType, name: str, span: Span) -> TimeSegment:
        segment = TimeSegment(
            type=kind,
            name=name,
            start_time=span.start_time,
            end_time=span.end_time,
            duration=span.duration,
        )
        self.segments.append(segment)
        return segment

    def total(self, kind: SegmentType) -> int:
        return sum(s.duration for s in self.segments if s.type == kind)

    def summary(self) -> dict[str, int | str]:
        """Start/end/duration from ``started_at`` until now."""
        ended_at = now_ms()
        return {
            "start_time": to_iso(self.started_at),
            "end_time": to_iso(ended_at),
            "duration": ended_at - self.started_at,
        }
