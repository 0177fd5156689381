from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from nexrad_migration.core.domain.outcomes import BatchResult
from nexrad_migration.core.errors import AggregationError
from nexrad_migration.pipeline.aggregation import (
    IntegrationResult,
    collect_profile_files,
    integrate_profiles,
)
from nexrad_migration.pipeline.conversion import ConversionRunner
from nexrad_migration.pipeline.listing import list_remote_objects
from nexrad_migration.pipeline.materializer import LocalMaterializer
from nexrad_migration.pipeline.summary import RunSummary, summarize_run
from nexrad_migration.pipeline.time_filter import FilterResult, filter_by_window
from nexrad_migration.pipeline.tree_walker import walk_mirrored_tree
from nexrad_migration.runtime.context import RunContext
from nexrad_migration.runtime.mlflow_run_logger import MlflowRunLogger
from nexrad_migration.runtime.prometheus_metrics import PrometheusMetricsClient
from nexrad_migration.runtime.report import RunReportWriter

if TYPE_CHECKING:
    from nexrad_migration.config.pipeline_config import PipelineConfig
    from nexrad_migration.core.domain.types import RemoteObjectRef

LOGGER = logging.getLogger(__name__)


class ObjectStore(Protocol):
    def head_bucket(self, bucket: str) -> None: ...

    def list_keys(self, bucket: str, prefix: str) -> list[str]: ...

    def download_to_file(self, bucket: str, key: str, destination: str | Path) -> None: ...


class ProfileBackend(Protocol):
    def convert(self, input_path: Path, output_path: Path) -> Any: ...

    def aggregate(self, profile_files: Any) -> Any: ...

    def integrate(self, series: Any) -> Any: ...

    def export(self, table: Any, path: Path) -> None: ...


@dataclass(frozen=True, slots=True)
class RunOptions:
    download: bool = True
    integrate: bool = True
    # Restrict conversion to these inputs (re-run of a failed subset).
    only_inputs: frozenset[Path] | None = None
    report_path: Path | None = None


@dataclass(frozen=True, slots=True)
class PlanResult:
    listed: list[RemoteObjectRef]
    filtered: FilterResult


@dataclass
class RunOutcome:
    status: str
    summary: RunSummary
    report: dict[str, Any]
    report_path: Path
    stages: list[BatchResult] = field(default_factory=list)
    integration: IntegrationResult | None = None

    @property
    def exit_code(self) -> int:
        return 0 if self.status == "success" else 1


class PipelineRunner:
    """
    Runs the pipeline for one site and one UTC day.

    Stages, in order:
    - list the remote prefix and filter it by the time window
    - download the selected volumes into the mirrored input tree
    - walk the input tree and map each volume to its profile path
    - convert each volume (per-item failures are recorded, not raised)
    - aggregate the profiles and integrate them into an MTR table

    Listing failures and a non-creatable download directory abort the
    run. Everything per-item ends up in the run report.
    """

    def __init__(
        self,
        *,
        config: PipelineConfig,
        store: ObjectStore | None,
        backend: ProfileBackend | None,
    ) -> None:
        self._cfg = config
        self._store = store
        self._backend = backend

    # ------------------------------------------------------------------

    def plan(self) -> PlanResult:
        """List and filter only; nothing is written."""
        if self._store is None:
            raise RuntimeError("an object store is required for listing")

        cfg = self._cfg
        self._store.head_bucket(cfg.bucket)

        listed = list_remote_objects(self._store, bucket=cfg.bucket, prefix=cfg.prefix)
        filtered = filter_by_window(listed, cfg.time_window)

        LOGGER.info(
            "Selected %d of %d volumes in window %s",
            len(filtered.selected),
            len(listed),
            cfg.time_window,
            extra={"prefix": cfg.prefix},
        )
        return PlanResult(listed=listed, filtered=filtered)

    def summarize_plan(self, plan: PlanResult) -> RunSummary:
        cfg = self._cfg
        return summarize_run(
            site=cfg.site,
            day=cfg.date.isoformat(),
            prefix=cfg.prefix,
            window=cfg.time_window,
            listed=len(plan.listed),
            selected=len(plan.filtered.selected),
            malformed=len(plan.filtered.malformed),
        )

    # ------------------------------------------------------------------

    def run(self, options: RunOptions | None = None) -> RunOutcome:
        options = options or RunOptions()
        cfg = self._cfg

        if self._backend is None:
            raise RuntimeError("a profile backend is required to run the pipeline")

        ctx = RunContext(
            site=cfg.site,
            day=cfg.date.isoformat(),
            prefix=cfg.prefix,
            run_started_at=datetime.now(timezone.utc),
            output_root=cfg.output_root,
        )

        stages: list[BatchResult] = []
        plan: PlanResult | None = None
        extra_warnings: list[str] = []

        # --- 1. list, filter, download ---
        if options.download:
            plan = self.plan()

            if self._store is None:
                raise RuntimeError("an object store is required for downloading")

            materializer = LocalMaterializer(
                store=self._store,
                input_root=cfg.input_root,
                max_workers=cfg.max_workers,
                skip_existing=cfg.skip_existing,
            )
            stages.append(materializer.materialize(plan.filtered.selected, prefix=cfg.prefix))

        # --- 2. mirror the input tree ---
        walk = walk_mirrored_tree(
            cfg.input_root,
            cfg.output_root,
            invalid_suffix=cfg.invalid_suffix,
            output_suffix=cfg.output_suffix,
            scan_root=cfg.local_raw_dir,
        )

        pairs = walk.pairs
        failed_dirs = walk.failed
        if options.only_inputs is not None:
            wanted = {Path(p) for p in options.only_inputs}
            pairs = [p for p in pairs if p.input_path in wanted]
            failed_dirs = [o for o in failed_dirs if Path(o.item) in wanted]
            LOGGER.info("Re-running %d previously failed inputs", len(pairs))

        # --- 3. convert ---
        runner = ConversionRunner(
            converter=self._backend,
            max_workers=cfg.max_workers,
            timeout_s=cfg.conversion_timeout_s,
        )
        conversion = BatchResult(stage="conversion", outcomes=tuple(failed_dirs)).merged(
            runner.run(pairs)
        )
        stages.append(conversion)

        # --- 4. aggregate + integrate ---
        integration: IntegrationResult | None = None
        profile_count: int | None = None
        aggregation_failed = False

        if options.integrate:
            profile_files = self._profile_files_for(conversion, extra_warnings)
            profile_count = len(profile_files)

            if profile_files:
                try:
                    integration = integrate_profiles(
                        profile_files,
                        aggregator=self._backend,
                        integrator=self._backend,
                        export_path=cfg.mtr_csv,
                    )
                except AggregationError as exc:
                    LOGGER.error("MTR integration failed: %s", exc)
                    extra_warnings.append(str(exc))
                    aggregation_failed = True

        # --- 5. report ---
        status = self._status(stages, conversion, aggregation_failed)

        summary = summarize_run(
            site=ctx.site,
            day=ctx.day,
            prefix=ctx.prefix,
            window=cfg.time_window,
            listed=len(plan.listed) if plan else None,
            selected=len(plan.filtered.selected) if plan else None,
            malformed=len(plan.filtered.malformed) if plan else 0,
            excluded_invalid=len(walk.excluded),
            stages=stages,
            profile_count=profile_count,
            extra_warnings=extra_warnings,
        )

        finished_at = datetime.now(timezone.utc)
        writer = RunReportWriter()
        report = writer.build(
            ctx=ctx,
            window=cfg.time_window,
            status=status,
            finished_at=finished_at,
            counts={
                "listed": summary.listed or 0,
                "selected": summary.selected or 0,
                "malformed": summary.malformed,
                "excluded_invalid": summary.excluded_invalid,
                "profiles_integrated": profile_count or 0,
            },
            stages=stages,
            warnings=summary.warnings,
        )
        report_path = writer.write(report, options.report_path or ctx.default_report_path)
        LOGGER.info("Run report written to %s", report_path)

        self._publish_side_effects(
            ctx=ctx,
            summary=summary,
            status=status,
            duration_seconds=report["lifecycle"]["duration_seconds"],
            report_path=report_path,
        )

        return RunOutcome(
            status=status,
            summary=summary,
            report=report,
            report_path=report_path,
            stages=stages,
            integration=integration,
        )

    # ------------------------------------------------------------------

    def _profile_files_for(
        self, conversion: BatchResult, warnings: list[str]
    ) -> list[Path]:
        cfg = self._cfg

        if cfg.profile_subdirs:
            files, missing = collect_profile_files(
                cfg.output_root,
                output_suffix=cfg.output_suffix,
                subdirs=cfg.profile_subdirs,
            )
            warnings.extend(
                f"Profile subdirectory {subdir!r} does not exist and was skipped"
                for subdir in missing
            )
            return files

        return [Path(o.output) for o in conversion.succeeded if o.output]

    @staticmethod
    def _status(
        stages: list[BatchResult],
        conversion: BatchResult,
        aggregation_failed: bool,
    ) -> str:
        if aggregation_failed:
            return "failed"
        if conversion.attempted and conversion.success_count == 0:
            return "failed"
        if any(stage.failure_count for stage in stages):
            return "partial"
        return "success"

    @staticmethod
    def _publish_side_effects(
        *,
        ctx: RunContext,
        summary: RunSummary,
        status: str,
        duration_seconds: float,
        report_path: Path,
    ) -> None:
        # --- MLflow logging (side-effect only) ---
        try:
            MlflowRunLogger().log(
                ctx=ctx,
                summary=summary,
                duration_seconds=duration_seconds,
                status=status,
                report_path=str(report_path),
            )
        except Exception:
            LOGGER.exception("MLflow logging failed")

        # --- Prometheus metrics (side-effect only) ---
        metrics = PrometheusMetricsClient()

        if metrics.is_enabled():
            try:
                metrics.record_run(summary, duration_seconds=duration_seconds, status=status)
                metrics.push(site=ctx.site, day=ctx.day)
            except Exception:
                LOGGER.exception("Prometheus push failed")
