"""
Per-item result types.

Batch stages never raise for a single bad item; they record an
ItemOutcome and move on. Workers running on a pool record into a shared
ResultTally, which is the only mutable state they share.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from nexrad_migration.core.errors import PipelineError


@dataclass(frozen=True, slots=True)
class ItemOutcome:
    item: str
    ok: bool
    output: str | None = None
    error_kind: str | None = None
    error: str | None = None

    @classmethod
    def success(cls, item: str, output: str | None = None) -> ItemOutcome:
        return cls(item=item, ok=True, output=output)

    @classmethod
    def failure(cls, item: str, exc: BaseException) -> ItemOutcome:
        kind = exc.kind if isinstance(exc, PipelineError) else type(exc).__name__
        return cls(item=item, ok=False, error_kind=kind, error=str(exc))

    def to_json_obj(self) -> dict[str, object]:
        record: dict[str, object] = {"item": self.item, "ok": self.ok}
        if self.output is not None:
            record["output"] = self.output
        if not self.ok:
            record["error_kind"] = self.error_kind
            record["error"] = self.error
        return record


@dataclass(frozen=True, slots=True)
class BatchResult:
    """Outcomes of one stage, in submission order."""

    stage: str
    outcomes: tuple[ItemOutcome, ...] = ()

    @property
    def succeeded(self) -> list[ItemOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[ItemOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    def merged(self, other: BatchResult) -> BatchResult:
        return BatchResult(stage=self.stage, outcomes=self.outcomes + other.outcomes)


@dataclass
class ResultTally:
    """
    Thread-safe accumulator of ItemOutcomes.

    Outcomes are returned ordered by the index the caller recorded them
    under, so the final report does not depend on completion order.
    """

    stage: str
    _entries: dict[int, ItemOutcome] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def record(self, index: int, outcome: ItemOutcome) -> None:
        with self._lock:
            self._entries[index] = outcome

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def result(self) -> BatchResult:
        with self._lock:
            ordered = tuple(self._entries[i] for i in sorted(self._entries))
        return BatchResult(stage=self.stage, outcomes=ordered)
