"""
Input tree walking and output path mapping.

Every raw volume under the input root is mapped to exactly one profile
path under the output root at the same relative location:

    <input_root>/2024/12/12/KDIX/KDIX20241212_093015_V06
    -> <output_root>/2024/12/12/KDIX/KDIX20241212_093015_V06_vp.h5
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from nexrad_migration.core.domain.outcomes import ItemOutcome
from nexrad_migration.core.domain.types import LocalFileRef, MirroredPath
from nexrad_migration.core.errors import DirectoryError
from nexrad_migration.pipeline.materializer import ensure_directory

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WalkResult:
    pairs: list[MirroredPath]
    excluded: list[LocalFileRef] = field(default_factory=list)
    # Files whose output directory could not be created.
    failed: list[ItemOutcome] = field(default_factory=list)


def discover_files(input_root: Path, *, invalid_suffix: str) -> list[LocalFileRef]:
    """
    Recursively list regular files under ``input_root``, sorted by path.

    Every file is returned; those whose name ends with ``invalid_suffix``
    are flagged ``is_valid=False``.
    """
    input_root = Path(input_root)
    if not input_root.is_dir():
        return []

    return [
        LocalFileRef.from_path(path, invalid_suffix=invalid_suffix)
        for path in sorted(input_root.rglob("*"))
        if path.is_file()
    ]


def mirrored_path_for(
    input_path: Path,
    *,
    input_root: Path,
    output_root: Path,
    output_suffix: str,
) -> MirroredPath:
    """Compute the output location for one input file. No filesystem access."""
    input_path = Path(input_path)
    relative_dir = input_path.parent.relative_to(input_root)

    return MirroredPath(
        input_path=input_path,
        output_path=Path(output_root) / relative_dir / f"{input_path.name}{output_suffix}",
    )


def input_path_for(
    output_path: Path,
    *,
    input_root: Path,
    output_root: Path,
    output_suffix: str,
) -> Path:
    """Inverse of mirrored_path_for."""
    output_path = Path(output_path)
    name = output_path.name

    if not name.endswith(output_suffix):
        raise ValueError(f"{output_path} does not end with {output_suffix!r}")

    relative_dir = output_path.parent.relative_to(output_root)
    return Path(input_root) / relative_dir / name[: -len(output_suffix)]


def walk_mirrored_tree(
    input_root: Path,
    output_root: Path,
    *,
    invalid_suffix: str,
    output_suffix: str,
    scan_root: Path | None = None,
) -> WalkResult:
    """
    Discover the valid inputs and prepare their output directories.

    Only files under ``scan_root`` (default: ``input_root``) are visited;
    relative locations are always taken from ``input_root``.

    Each output directory is created at most once per walk. When a
    directory cannot be created, every file that would land in it is
    reported as failed and the other branches are still processed.
    """
    input_root = Path(input_root)
    output_root = Path(output_root)

    pairs: list[MirroredPath] = []
    excluded: list[LocalFileRef] = []
    failed: list[ItemOutcome] = []

    created: set[Path] = set()
    broken: dict[Path, DirectoryError] = {}

    scan_root = Path(scan_root) if scan_root is not None else input_root

    for ref in discover_files(scan_root, invalid_suffix=invalid_suffix):
        if not ref.is_valid:
            excluded.append(ref)
            continue

        pair = mirrored_path_for(
            ref.path,
            input_root=input_root,
            output_root=output_root,
            output_suffix=output_suffix,
        )
        out_dir = pair.output_path.parent

        if out_dir not in created and out_dir not in broken:
            try:
                ensure_directory(out_dir)
                created.add(out_dir)
            except DirectoryError as exc:
                LOGGER.error("Cannot create output directory %s: %s", out_dir, exc)
                broken[out_dir] = exc

        if out_dir in broken:
            failed.append(ItemOutcome.failure(str(ref.path), broken[out_dir]))
            continue

        pairs.append(pair)

    if excluded:
        LOGGER.info(
            "Excluded %d files ending with %s",
            len(excluded),
            invalid_suffix,
        )

    return WalkResult(pairs=pairs, excluded=excluded, failed=failed)
