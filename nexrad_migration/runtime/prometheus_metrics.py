from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Gauge, push_to_gateway

if TYPE_CHECKING:
    from nexrad_migration.pipeline.summary import RunSummary

LOGGER = logging.getLogger(__name__)

JOB_NAME = "nexrad_migration_run"


class PrometheusMetricsClient:
    """Prometheus Pushgateway client for one pipeline run.

    Expected environment:
    - PROMETHEUS_PUSHGATEWAY_URL: URL to the Pushgateway.
      Example: http://pushgateway.monitoring.svc.cluster.local:9091

    Optional:
    - PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON: JSON object merged into the
      grouping key. Site and day are always part of it so runs for
      different radars do not overwrite each other.

    Metric delivery is a side effect: callers catch and log failures.
    """

    def __init__(self) -> None:
        self._pushgateway_url = os.environ.get("PROMETHEUS_PUSHGATEWAY_URL")
        self._extra_grouping = self._load_grouping_key()
        self._registry = CollectorRegistry()
        self._gauges: dict[str, Gauge] = {}

    def is_enabled(self) -> bool:
        return self._pushgateway_url is not None

    @staticmethod
    def _load_grouping_key() -> dict[str, str]:
        raw = os.environ.get("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON")
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning(
                "Invalid PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON; ignoring"
            )
            return {}

        if not isinstance(data, dict):
            return {}

        return {
            key: value
            for key, value in data.items()
            if isinstance(key, str) and isinstance(value, str)
        }

    def _gauge(self, name: str, documentation: str, labelnames: list[str]) -> Gauge:
        if name not in self._gauges:
            self._gauges[name] = Gauge(
                name,
                documentation=documentation,
                labelnames=labelnames,
                registry=self._registry,
            )
        return self._gauges[name]

    def record_run(self, summary: RunSummary, *, duration_seconds: float, status: str) -> None:
        """Register the run's gauges in the local registry."""
        self._gauge(
            "nexrad_run_duration_seconds",
            "Wall time of the pipeline run",
            ["status"],
        ).labels(status=status).set(duration_seconds)

        if summary.selected is not None:
            self._gauge(
                "nexrad_run_selected_volumes",
                "Volumes inside the time window",
                [],
            ).set(summary.selected)

        self._gauge(
            "nexrad_run_malformed_names",
            "Listed objects without a parseable scan time",
            [],
        ).set(summary.malformed)

        items = self._gauge(
            "nexrad_run_stage_items",
            "Per-stage item tally",
            ["stage", "outcome"],
        )
        for stage in summary.stages:
            items.labels(stage=stage.stage, outcome="succeeded").set(stage.succeeded)
            items.labels(stage=stage.stage, outcome="failed").set(stage.failed)

    def push(self, *, site: str, day: str) -> None:
        if not self._pushgateway_url:
            return

        grouping_key = {**self._extra_grouping, "site": site, "day": day}

        push_to_gateway(
            gateway=self._pushgateway_url,
            job=JOB_NAME,
            registry=self._registry,
            grouping_key=grouping_key,
        )

        LOGGER.info(
            "Prometheus metrics pushed",
            extra={"job": JOB_NAME, "grouping_key": grouping_key},
        )
