"""
Shared fakes for the semantic test suite.

No test touches the network or R: the S3 client and the bioRad backend
are replaced by in-memory fakes with the same call shapes.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import pytest
from botocore.exceptions import ClientError

from nexrad_migration.config.pipeline_config import PipelineConfig
from nexrad_migration.io.s3_adapter import NexradS3Client

DAY_PREFIX = "2024/12/12/KDIX/"


def volume_key(hhmmss: str, *, suffix: str = "_V06") -> str:
    return f"{DAY_PREFIX}KDIX20241212_{hhmmss}{suffix}"


class _FakePaginator:
    def __init__(self, client: FakeBotoS3Client) -> None:
        self._client = client

    def paginate(self, *, Bucket: str, Prefix: str):
        self._client.check_bucket(Bucket, "ListObjectsV2")
        keys = [k for k in self._client.objects if k.startswith(Prefix)]
        size = self._client.page_size

        if not keys:
            yield {"KeyCount": 0}
            return

        for start in range(0, len(keys), size):
            yield {"Contents": [{"Key": k, "Size": 1} for k in keys[start : start + size]]}


class FakeBotoS3Client:
    """Just enough of a boto3 S3 client for NexradS3Client."""

    def __init__(
        self,
        objects: dict[str, bytes] | None = None,
        *,
        bucket: str = "noaa-nexrad-level2",
        failing_keys: set[str] | None = None,
        page_size: int = 1000,
    ) -> None:
        self.bucket = bucket
        self.objects = dict(objects or {})
        self.failing_keys = set(failing_keys or ())
        self.page_size = page_size
        self.downloads: list[str] = []
        self._lock = threading.Lock()

    def check_bucket(self, bucket: str, operation: str) -> None:
        if bucket != self.bucket:
            raise ClientError(
                {"Error": {"Code": "NoSuchBucket", "Message": "The specified bucket does not exist"}},
                operation,
            )

    def head_bucket(self, *, Bucket: str) -> dict[str, Any]:
        self.check_bucket(Bucket, "HeadBucket")
        return {}

    def get_paginator(self, name: str) -> _FakePaginator:
        assert name == "list_objects_v2"
        return _FakePaginator(self)

    def download_file(self, bucket: str, key: str, filename: str) -> None:
        self.check_bucket(bucket, "GetObject")
        with self._lock:
            self.downloads.append(key)

        if key in self.failing_keys or key not in self.objects:
            raise ClientError(
                {"Error": {"Code": "404", "Message": "Not Found"}},
                "HeadObject",
            )

        Path(filename).write_bytes(self.objects[key])


class FakeProfileBackend:
    """Stands in for bioRad: writes a small file per conversion."""

    thread_safe = True

    def __init__(self, *, fail_on: set[str] | None = None) -> None:
        self.fail_on = set(fail_on or ())
        self.converted: list[str] = []
        self.aggregated: list[Path] = []
        self.exported_to: Path | None = None
        self._lock = threading.Lock()

    def convert(self, input_path: Path, output_path: Path) -> str:
        with self._lock:
            self.converted.append(input_path.name)

        if input_path.name in self.fail_on:
            raise RuntimeError("could not read polar volume")

        output_path.write_text(f"vp of {input_path.name}", encoding="utf-8")
        return str(output_path)

    def aggregate(self, profile_files):
        self.aggregated = list(profile_files)
        return sorted(p.name for p in self.aggregated)

    def integrate(self, series):
        return {"profiles": len(series)}

    def export(self, table, path: Path) -> None:
        self.exported_to = Path(path)
        Path(path).write_text(f"profiles\n{table['profiles']}\n", encoding="utf-8")


@pytest.fixture(autouse=True)
def _no_side_effect_endpoints(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PROMETHEUS_PUSHGATEWAY_URL", raising=False)
    monkeypatch.delenv("MLFLOW_TRACKING_URI", raising=False)


@pytest.fixture
def roots(tmp_path: Path) -> tuple[Path, Path]:
    return tmp_path / "data_pvol", tmp_path / "data_vpts"


@pytest.fixture
def make_config(roots):
    input_root, output_root = roots

    def _make(**overrides: Any) -> PipelineConfig:
        raw: dict[str, Any] = {
            "site": "KDIX",
            "date": "2024-12-12",
            "input_root": str(input_root),
            "output_root": str(output_root),
            "max_workers": 2,
        }
        raw.update(overrides)
        return PipelineConfig.from_json_obj(raw)

    return _make


@pytest.fixture
def make_store():
    def _make(keys: list[str], **kwargs: Any) -> tuple[NexradS3Client, FakeBotoS3Client]:
        fake = FakeBotoS3Client({k: b"AR2V0006." for k in keys}, **kwargs)
        return NexradS3Client(client=fake), fake

    return _make


@pytest.fixture
def backend_factory():
    return FakeProfileBackend


@pytest.fixture
def key_factory():
    return volume_key
