"""
Semantic test: output paths mirror the input tree.

Invariant:
For every included input, the output directory equals output_root joined
with the input's directory relative to input_root, the output name is
the input name plus the fixed suffix, and mapping back recovers the input.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from nexrad_migration.pipeline.materializer import ensure_directory
from nexrad_migration.pipeline.tree_walker import (
    input_path_for,
    mirrored_path_for,
    walk_mirrored_tree,
)

SUFFIX = "_vp.h5"

RELATIVE_INPUTS = [
    "KDIX20241212_000000_V06",
    "2024/12/12/KDIX/KDIX20241212_093015_V06",
    "2024/12/13/KHGX/KHGX20241213_120000_V06",
    "x/y/z/w/v/u/file with spaces",
]


@pytest.mark.parametrize("relative", RELATIVE_INPUTS)
def test_output_directory_mirrors_input(tmp_path: Path, relative: str) -> None:
    input_root = tmp_path / "data_pvol"
    output_root = tmp_path / "data_vpts"
    input_path = input_root / relative

    pair = mirrored_path_for(
        input_path,
        input_root=input_root,
        output_root=output_root,
        output_suffix=SUFFIX,
    )

    assert pair.input_path == input_path
    assert pair.output_path.parent == output_root / input_path.parent.relative_to(input_root)
    assert pair.output_path.name == input_path.name + SUFFIX


@pytest.mark.parametrize("relative", RELATIVE_INPUTS)
def test_round_trip_recovers_input(tmp_path: Path, relative: str) -> None:
    input_root = tmp_path / "data_pvol"
    output_root = tmp_path / "data_vpts"
    input_path = input_root / relative

    pair = mirrored_path_for(
        input_path,
        input_root=input_root,
        output_root=output_root,
        output_suffix=SUFFIX,
    )

    assert input_path_for(
        pair.output_path,
        input_root=input_root,
        output_root=output_root,
        output_suffix=SUFFIX,
    ) == input_path


def test_input_path_for_rejects_foreign_names(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        input_path_for(
            tmp_path / "out" / "KDIX20241212_000000_V06.csv",
            input_root=tmp_path / "in",
            output_root=tmp_path / "out",
            output_suffix=SUFFIX,
        )


def test_walk_creates_output_directories(tmp_path: Path) -> None:
    input_root = tmp_path / "data_pvol"
    output_root = tmp_path / "data_vpts"
    for relative in RELATIVE_INPUTS:
        path = input_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"AR2V")

    result = walk_mirrored_tree(
        input_root,
        output_root,
        invalid_suffix="_MDM",
        output_suffix=SUFFIX,
    )

    assert len(result.pairs) == len(RELATIVE_INPUTS)
    for pair in result.pairs:
        assert pair.output_path.parent.is_dir()
        assert not pair.output_path.exists()


def test_scan_root_limits_walk_but_keeps_relative_layout(tmp_path: Path) -> None:
    input_root = tmp_path / "data_pvol"
    output_root = tmp_path / "data_vpts"
    wanted = input_root / "2024" / "12" / "12" / "KDIX" / "KDIX20241212_093015_V06"
    other = input_root / "2024" / "12" / "13" / "KDIX" / "KDIX20241213_093015_V06"
    for path in (wanted, other):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"AR2V")

    result = walk_mirrored_tree(
        input_root,
        output_root,
        invalid_suffix="_MDM",
        output_suffix=SUFFIX,
        scan_root=wanted.parent,
    )

    assert [p.input_path for p in result.pairs] == [wanted]
    assert result.pairs[0].output_path == (
        output_root / "2024" / "12" / "12" / "KDIX" / "KDIX20241212_093015_V06_vp.h5"
    )


def test_directory_failure_only_affects_its_branch(tmp_path: Path) -> None:
    input_root = tmp_path / "data_pvol"
    output_root = tmp_path / "data_vpts"
    good = input_root / "good" / "KDIX20241212_010000_V06"
    bad = [
        input_root / "bad" / "KDIX20241212_020000_V06",
        input_root / "bad" / "KDIX20241212_030000_V06",
    ]
    for path in [good, *bad]:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"AR2V")

    # A file where the "bad" output directory should go.
    ensure_directory(output_root)
    (output_root / "bad").write_text("blocker", encoding="utf-8")

    result = walk_mirrored_tree(
        input_root,
        output_root,
        invalid_suffix="_MDM",
        output_suffix=SUFFIX,
    )

    assert [p.input_path for p in result.pairs] == [good]
    assert sorted(o.item for o in result.failed) == sorted(str(p) for p in bad)
    assert {o.error_kind for o in result.failed} == {"directory"}
