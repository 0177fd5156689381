"""
Time-window filtering of remote volumes.

The scan time is read from a fixed offset in the filename
(``KDIX20241212_093015_V06`` -> ``093015``). Names that do not carry six
digits at that offset are excluded and counted, never raised on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from nexrad_migration.core.domain.types import RemoteObjectRef, TimeWindow

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FilterResult:
    selected: list[RemoteObjectRef]
    out_of_window: int
    malformed: list[RemoteObjectRef]


def filter_by_window(
    refs: Iterable[RemoteObjectRef],
    window: TimeWindow,
) -> FilterResult:
    """
    Keep the refs whose embedded scan time lies in ``window`` (inclusive).

    Input order is preserved.
    """
    selected: list[RemoteObjectRef] = []
    malformed: list[RemoteObjectRef] = []
    out_of_window = 0

    for ref in refs:
        timestamp = ref.timestamp

        if timestamp is None:
            malformed.append(ref)
            continue

        if window.contains(timestamp):
            selected.append(ref)
        else:
            out_of_window += 1

    if malformed:
        LOGGER.warning(
            "Excluded %d objects without a HHMMSS timestamp in their name",
            len(malformed),
            extra={"examples": [ref.filename for ref in malformed[:5]]},
        )

    return FilterResult(
        selected=selected,
        out_of_window=out_of_window,
        malformed=malformed,
    )


def filter_keys(keys: Iterable[str], window: TimeWindow, *, bucket: str = "") -> list[str]:
    """Convenience form of filter_by_window over bare keys."""
    result = filter_by_window(
        (RemoteObjectRef(bucket=bucket, key=key) for key in keys),
        window,
    )
    return [ref.key for ref in result.selected]
