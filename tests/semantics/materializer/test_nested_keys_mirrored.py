"""
Semantic test: keys nested below a shallow prefix keep their structure.

Invariant:
With a prefix above the site/day level, each volume lands at
<input_root>/<key>, so different sites and days never collapse into one
folder. A worker error outside the fetch itself still ends up as a
failed outcome for that key.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from nexrad_migration.core.domain.types import RemoteObjectRef
from nexrad_migration.pipeline.materializer import LocalMaterializer

BUCKET = "noaa-nexrad-level2"

NESTED_KEYS = [
    "2024/12/12/KDIX/KDIX20241212_093015_V06",
    "2024/12/12/KHGX/KHGX20241212_093015_V06",
    "2024/12/13/KDIX/KDIX20241213_093015_V06",
]


def _local_files(root: Path) -> list[str]:
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file())


@pytest.mark.parametrize("prefix", ["2024/12/", "2024/12", "/2024/"])
def test_shallow_prefix_mirrors_full_keys(tmp_path: Path, make_store, prefix: str) -> None:
    store, _fake = make_store(NESTED_KEYS)

    result = LocalMaterializer(store=store, input_root=tmp_path, max_workers=3).materialize(
        [RemoteObjectRef(bucket=BUCKET, key=k) for k in NESTED_KEYS],
        prefix=prefix,
    )

    assert result.success_count == 3
    assert _local_files(tmp_path) == sorted(NESTED_KEYS)
    assert [o.output for o in result.outcomes] == [str(tmp_path / k) for k in NESTED_KEYS]


def test_relative_key() -> None:
    assert LocalMaterializer.relative_key(NESTED_KEYS[0], "2024/12/") == "12/KDIX/KDIX20241212_093015_V06"
    assert LocalMaterializer.relative_key(NESTED_KEYS[0], "2024/12/12/KDIX/") == "KDIX20241212_093015_V06"
    assert LocalMaterializer.relative_key(NESTED_KEYS[0], "other/") == "KDIX20241212_093015_V06"

    with pytest.raises(ValueError):
        LocalMaterializer.relative_key("2024/12/../../etc/passwd", "2024/12/")


def test_error_outside_download_is_a_failed_outcome(
    tmp_path: Path, make_store, monkeypatch: pytest.MonkeyPatch
) -> None:
    store, fake = make_store(NESTED_KEYS)
    original_exists = Path.exists
    blocked = tmp_path / NESTED_KEYS[1]

    def exists(self: Path, *args, **kwargs) -> bool:
        if self == blocked:
            raise PermissionError(13, "Permission denied", str(self))
        return original_exists(self, *args, **kwargs)

    monkeypatch.setattr(Path, "exists", exists)

    materializer = LocalMaterializer(
        store=store, input_root=tmp_path, max_workers=2, skip_existing=True
    )
    result = materializer.materialize(
        [RemoteObjectRef(bucket=BUCKET, key=k) for k in NESTED_KEYS],
        prefix="2024/12/",
    )

    assert result.attempted == 3
    assert [o.item for o in result.failed] == [NESTED_KEYS[1]]
    assert result.failed[0].error_kind == "fetch"
    assert NESTED_KEYS[1] not in fake.downloads
