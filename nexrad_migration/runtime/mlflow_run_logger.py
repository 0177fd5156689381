from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

import mlflow

if TYPE_CHECKING:
    from nexrad_migration.pipeline.summary import RunSummary
    from nexrad_migration.runtime.context import RunContext

LOGGER = logging.getLogger(__name__)

EXPERIMENT_NAME = "nexrad-migration"


class MlflowRunLogger:
    """Logs one pipeline run (one site, one day) to MLflow.

    Enabled only when MLFLOW_TRACKING_URI is set, so local runs do not
    create an ./mlruns directory as a side effect.
    """

    def __init__(self) -> None:
        self._tracking_uri = os.environ.get("MLFLOW_TRACKING_URI")
        if self._tracking_uri:
            mlflow.set_tracking_uri(self._tracking_uri)

    def is_enabled(self) -> bool:
        return bool(self._tracking_uri)

    def log(
        self,
        *,
        ctx: RunContext,
        summary: RunSummary,
        duration_seconds: float,
        status: str,
        report_path: str | None = None,
    ) -> None:
        if not self.is_enabled():
            return

        mlflow.set_experiment(EXPERIMENT_NAME)

        with mlflow.start_run(run_name=ctx.run_id):
            mlflow.log_param("site", ctx.site)
            mlflow.log_param("day", ctx.day)
            mlflow.log_param("prefix", ctx.prefix)
            mlflow.log_param("window", summary.window)

            mlflow.log_metric("duration_seconds", duration_seconds)
            if summary.listed is not None:
                mlflow.log_metric("listed", summary.listed)
            if summary.selected is not None:
                mlflow.log_metric("selected", summary.selected)
            mlflow.log_metric("malformed", summary.malformed)
            for stage in summary.stages:
                mlflow.log_metric(f"{stage.stage}_succeeded", stage.succeeded)
                mlflow.log_metric(f"{stage.stage}_failed", stage.failed)
            if summary.profile_count is not None:
                mlflow.log_metric("profiles_integrated", summary.profile_count)

            mlflow.set_tag("status", status)

            if report_path is not None:
                mlflow.log_artifact(report_path)

        LOGGER.info(
            "MLflow run log submitted",
            extra={"run_id": ctx.run_id, "status": status},
        )
