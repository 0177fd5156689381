from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True, slots=True)
class RunContext:
    """
    Immutable identity of one pipeline run.

    One RunContext == one site == one UTC day.
    """

    site: str
    day: str
    prefix: str

    run_started_at: datetime

    output_root: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "output_root", Path(self.output_root))

    @property
    def run_id(self) -> str:
        return f"{self.site}_{self.day.replace('-', '')}"

    @property
    def output_run_dir(self) -> Path:
        return self.output_root / self.prefix.strip("/")

    @property
    def default_report_path(self) -> Path:
        return self.output_run_dir / "run_report.json"
