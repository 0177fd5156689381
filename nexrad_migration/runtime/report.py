from __future__ import annotations

import importlib.metadata
import json
import platform
import sys
import tomllib
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from nexrad_migration.core.errors import ConfigError

if TYPE_CHECKING:
    from nexrad_migration.core.domain.outcomes import BatchResult
    from nexrad_migration.core.domain.types import TimeWindow
    from nexrad_migration.runtime.context import RunContext

SCHEMA_VERSION = "1.0"


class RunReportWriter:
    """Writes run_report.json for a finished pipeline run."""

    @staticmethod
    def _read_pyproject_project_info(pyproject_path: Path) -> tuple[str | None, str | None]:
        """Read [project] name/version from pyproject.toml.

        This is used as a fallback when the project is executed from source without
        being installed as a distribution (importlib.metadata won't find it).
        """

        try:
            raw = pyproject_path.read_bytes()
        except OSError:
            return (None, None)

        try:
            data = tomllib.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, tomllib.TOMLDecodeError):
            return (None, None)

        project = data.get("project")
        if not isinstance(project, dict):
            return (None, None)

        name = project.get("name")
        version = project.get("version")

        return (
            name if isinstance(name, str) else None,
            version if isinstance(version, str) else None,
        )

    @classmethod
    def _resolve_project_metadata(cls) -> dict[str, str | None]:
        """Resolve project name/version without failing the run."""

        distribution_name = "nexrad-migration"

        try:
            return {
                "name": distribution_name,
                "version": importlib.metadata.version(distribution_name),
                "version_source": "importlib.metadata",
            }
        except importlib.metadata.PackageNotFoundError:
            pass

        pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
        name, version = cls._read_pyproject_project_info(pyproject_path)

        return {
            "name": name or distribution_name,
            "version": version,
            "version_source": "pyproject.toml" if version is not None else "unknown",
        }

    def build(
        self,
        *,
        ctx: RunContext,
        window: TimeWindow,
        status: str,
        finished_at: datetime,
        counts: dict[str, int],
        stages: list[BatchResult],
        warnings: list[str] | None = None,
    ) -> dict[str, Any]:
        duration_seconds = (finished_at - ctx.run_started_at).total_seconds()

        return {
            "schema_version": SCHEMA_VERSION,
            "identity": {
                "run_id": ctx.run_id,
                "site": ctx.site,
                "day": ctx.day,
                "prefix": ctx.prefix,
            },
            "lifecycle": {
                "status": status,
                "started_at": ctx.run_started_at.isoformat(),
                "finished_at": finished_at.isoformat(),
                "duration_seconds": duration_seconds,
            },
            "window": {
                "start": f"{window.start:06d}",
                "end": f"{window.end:06d}",
            },
            "counts": counts,
            "warnings": list(warnings or []),
            "stages": {
                result.stage: {
                    "attempted": result.attempted,
                    "succeeded": [o.to_json_obj() for o in result.succeeded],
                    "failed": [o.to_json_obj() for o in result.failed],
                }
                for result in stages
            },
            "code": {
                "project": self._resolve_project_metadata(),
            },
            "environment": {
                "python": sys.version.split()[0],
                "platform": platform.platform(),
            },
        }

    def write(self, report: dict[str, Any], target: Path) -> Path:
        target = Path(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(report, indent=2), encoding="utf-8")
        return target


def load_failed_inputs(report_path: Path) -> set[Path]:
    """
    Return the input files that failed conversion in a previous report.

    Used to re-run only the failed subset of a run.
    """
    if not report_path.exists():
        raise ConfigError(f"report does not exist: {report_path}")

    try:
        report = json.loads(report_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"report is not valid JSON: {report_path}: {exc}") from exc

    stages = report.get("stages", {}) if isinstance(report, dict) else None
    conversion = stages.get("conversion", {}) if isinstance(stages, dict) else None
    failed = conversion.get("failed", []) if isinstance(conversion, dict) else None

    if not isinstance(failed, list):
        raise ConfigError(f"report has no stages.conversion.failed list: {report_path}")

    inputs: set[Path] = set()
    for entry in failed:
        item = entry.get("item") if isinstance(entry, dict) else None
        if not isinstance(item, str) or not item:
            raise ConfigError(f"report has a failed entry without an item: {report_path}: {entry!r}")
        inputs.add(Path(item))

    return inputs
