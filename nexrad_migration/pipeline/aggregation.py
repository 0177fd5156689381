"""
Profile aggregation and MTR integration stage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Sequence

from nexrad_migration.core.errors import AggregationError

if TYPE_CHECKING:
    from nexrad_migration.profiles.ports import MtrIntegrator, ProfileAggregator

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IntegrationResult:
    profile_count: int
    series: Any
    table: Any
    exported_to: Path | None = None


def collect_profile_files(
    output_root: Path,
    *,
    output_suffix: str,
    subdirs: Sequence[str] | None = None,
) -> tuple[list[Path], list[str]]:
    """
    Find profile files under the output root.

    With ``subdirs`` only those subdirectories (e.g. "2024/12/12/KDIX" or
    a whole month "2024/05") are searched. Missing subdirectories are
    skipped and returned as the second element.
    """
    output_root = Path(output_root)
    roots = [output_root] if not subdirs else [output_root / s.strip("/") for s in subdirs]

    files: list[Path] = []
    missing: list[str] = []

    for root, label in zip(roots, subdirs or [""]):
        if not root.is_dir():
            if subdirs:
                LOGGER.warning("Subdirectory '%s' does not exist and will be skipped.", label)
                missing.append(label)
            continue

        files.extend(
            path
            for path in sorted(root.rglob(f"*{output_suffix}"))
            if path.is_file()
        )

    return files, missing


def integrate_profiles(
    profile_files: Sequence[Path],
    *,
    aggregator: ProfileAggregator,
    integrator: MtrIntegrator,
    export_path: Path | None = None,
) -> IntegrationResult:
    """
    Bind profiles into a time series and integrate it.

    Any backend failure is raised as AggregationError.
    """
    if not profile_files:
        raise AggregationError("no vertical profiles available for aggregation")

    try:
        series = aggregator.aggregate(list(profile_files))
        table = integrator.integrate(series)
    except AggregationError:
        raise
    except Exception as exc:
        raise AggregationError(f"profile integration failed: {exc}") from exc

    if export_path is not None:
        try:
            integrator.export(table, export_path)
        except Exception as exc:
            raise AggregationError(f"exporting MTR table to {export_path} failed: {exc}") from exc
        LOGGER.info("MTR table written to %s", export_path)

    return IntegrationResult(
        profile_count=len(profile_files),
        series=series,
        table=table,
        exported_to=export_path,
    )
