"""
Profile backend interfaces.

The vertical-profile math lives in an external library. The pipeline
only needs these three calls.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol, Sequence


class ProfileConverter(Protocol):
    def convert(self, input_path: Path, output_path: Path) -> Any:
        """Turn one polar volume into a vertical profile written to output_path."""


class ProfileAggregator(Protocol):
    def aggregate(self, profile_files: Sequence[Path]) -> Any:
        """Read vertical profile files and bind them into a time series."""


class MtrIntegrator(Protocol):
    def integrate(self, series: Any) -> Any:
        """Vertically integrate a profile time series (MTR, VID, ...)."""

    def export(self, table: Any, path: Path) -> None:
        """Write an integrated table to CSV."""
