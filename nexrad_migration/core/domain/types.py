"""Core pipeline data models.

These are plain immutable records passed between the pipeline stages.
None of them is persisted: remote refs live only during listing, mirrored
paths are recomputed from the on-disk tree on every run.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# NEXRAD Level-II names look like KDIX20241212_093015_V06; the scan time
# sits at a fixed offset in the filename component.
TIMESTAMP_START = 13
TIMESTAMP_END = 19


def _parse_hhmmss(value: str | int) -> int:
    text = f"{value:06d}" if isinstance(value, int) else str(value)

    if len(text) != 6 or not text.isdigit():
        raise ValueError(f"time must be a 6-digit HHMMSS value, got {value!r}")

    hours, minutes, seconds = int(text[0:2]), int(text[2:4]), int(text[4:6])
    if hours > 23 or minutes > 59 or seconds > 59:
        raise ValueError(f"time out of range: {value!r}")

    return int(text)


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """
    Closed interval [start, end] of UTC time-of-day values (HHMMSS).

    Cross-midnight windows are not supported: start must be <= end.
    """

    start: int
    end: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", _parse_hhmmss(self.start))
        object.__setattr__(self, "end", _parse_hhmmss(self.end))

        if self.start > self.end:
            raise ValueError(
                f"window start {self.start:06d} is after end {self.end:06d}"
            )

    @classmethod
    def full_day(cls) -> TimeWindow:
        return cls(start=0, end=235959)

    def contains(self, timestamp: int) -> bool:
        return self.start <= timestamp <= self.end

    def __str__(self) -> str:
        return f"[{self.start:06d}, {self.end:06d}]"


@dataclass(frozen=True, slots=True)
class RemoteObjectRef:
    """
    Reference to one object in the remote bucket.
    """

    bucket: str
    key: str

    @property
    def filename(self) -> str:
        return self.key.rsplit("/", 1)[-1]

    @property
    def timestamp_text(self) -> str:
        return self.filename[TIMESTAMP_START:TIMESTAMP_END]

    @property
    def timestamp(self) -> int | None:
        """Embedded HHMMSS scan time, or None when the name does not conform."""
        text = self.timestamp_text
        if len(text) != 6 or not text.isdigit():
            return None
        return int(text)


@dataclass(frozen=True, slots=True)
class LocalFileRef:
    path: Path
    is_valid: bool

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))

    @classmethod
    def from_path(cls, path: str | Path, *, invalid_suffix: str) -> LocalFileRef:
        path = Path(path)
        return cls(path=path, is_valid=not path.name.endswith(invalid_suffix))


@dataclass(frozen=True, slots=True)
class MirroredPath:
    """
    One (input, output) pair handed to the profile converter.

    The output sits at the same relative location under the output root
    as the input does under the input root.
    """

    input_path: Path
    output_path: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "input_path", Path(self.input_path))
        object.__setattr__(self, "output_path", Path(self.output_path))
