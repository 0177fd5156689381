"""
Semantic test: a failing fetch does not abort the download batch.

Invariant:
Every selected key is attempted. Failed keys are reported as FetchError
outcomes in submission order, alongside the successful ones.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from nexrad_migration.core.domain.types import RemoteObjectRef
from nexrad_migration.core.errors import DirectoryError
from nexrad_migration.pipeline.materializer import LocalMaterializer

BUCKET = "noaa-nexrad-level2"
PREFIX = "2024/12/12/KDIX/"


def test_failed_fetch_is_recorded_and_batch_continues(
    tmp_path: Path, make_store, key_factory
) -> None:
    keys = [key_factory(f"0{i}0000") for i in range(1, 6)]
    store, fake = make_store(keys, failing_keys={keys[1]})

    result = LocalMaterializer(store=store, input_root=tmp_path, max_workers=2).materialize(
        [RemoteObjectRef(bucket=BUCKET, key=k) for k in keys],
        prefix=PREFIX,
    )

    assert sorted(fake.downloads) == sorted(keys)
    assert result.success_count == 4
    assert [o.item for o in result.failed] == [keys[1]]
    assert result.failed[0].error_kind == "fetch"
    assert [o.item for o in result.outcomes] == keys


def test_uncreatable_base_directory_is_fatal(tmp_path: Path, make_store, key_factory) -> None:
    blocker = tmp_path / "data_pvol"
    blocker.write_text("not a directory", encoding="utf-8")
    store, fake = make_store([key_factory("010000")])

    materializer = LocalMaterializer(store=store, input_root=blocker)

    with pytest.raises(DirectoryError):
        materializer.materialize(
            [RemoteObjectRef(bucket=BUCKET, key=key_factory("010000"))],
            prefix=PREFIX,
        )

    assert fake.downloads == []
