"""Per-cycle tracing: availability and probe spans plus point-in-time marks."""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import uuid4

from location_engine.models.domain import LocationResult, ResolutionTrace


@dataclass
class Span:
    name: str
    offset_ms: float
    duration_ms: float = 0.0
    outcome: str | None = None
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {
            "name": self.name,
            "offset_ms": round(self.offset_ms, 2),
            "duration_ms": round(self.duration_ms, 2),
            **self.metadata,
        }
        if self.outcome is not None:
            data["outcome"] = self.outcome
        return data


class TraceContext:
    """Collects what happened during one resolution cycle.

    Offsets are relative to cycle start on the monotonic clock; only the
    trace timestamp is wall-clock.
    """

    def __init__(self, trace_id: str | None = None) -> None:
        self.trace_id = trace_id or str(uuid4())
        self.spans: list[Span] = []
        self._started = time.monotonic()
        self._wall_start = datetime.now(timezone.utc)

    @contextmanager
    def span(self, name: str, **metadata):
        started = time.monotonic()
        s = Span(name=name, offset_ms=(started - self._started) * 1000, metadata=metadata)
        try:
            yield s
        finally:
            s.duration_ms = (time.monotonic() - started) * 1000
            self.spans.append(s)

    def mark(self, name: str, outcome: str, **metadata) -> None:
        """Record a zero-length event such as a probe being cancelled."""
        self.spans.append(
            Span(name=name, offset_ms=self.elapsed_ms, outcome=outcome, metadata=metadata)
        )

    @property
    def elapsed_ms(self) -> float:
        return (time.monotonic() - self._started) * 1000

    def to_trace(self, result: LocationResult) -> ResolutionTrace:
        return ResolutionTrace(
            trace_id=self.trace_id,
            timestamp=self._wall_start,
            latency_ms=self.elapsed_ms,
            success=result.success,
            method=result.method.value,
            source=result.source,
            consulted=list(result.consulted),
            error=result.error,
            spans=[s.to_dict() for s in sorted(self.spans, key=lambda s: s.offset_ms)],
        )
