"""
bioRad profile backend.

Calls the bioRad R package (Dokter et al. 2011, vol2bird algorithm)
through rpy2:

    calculate_vp       polar volume -> vertical profile (.h5)
    read_vpfiles       profile files -> list of vp objects
    bind_into_vpts     list of vp    -> vpts time series
    integrate_profile  vpts          -> vpi table (mtr, vid, vir, ...)

Embedded R is single-threaded and must be initialized from the main
thread, so the backend is flagged ``thread_safe = False`` and every R
call is additionally serialized by a module-level lock.
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Mapping, Sequence

from nexrad_migration.core.errors import AggregationError

LOGGER = logging.getLogger(__name__)

_R_LOCK = threading.Lock()


def _import_r_packages() -> tuple[Any, Any, Any]:
    try:
        from rpy2 import robjects
        from rpy2.robjects.packages import importr
    except ImportError as exc:
        raise RuntimeError(
            "the bioRad backend needs rpy2 and an R installation with bioRad; "
            "install the 'biorad' extra"
        ) from exc

    with _R_LOCK:
        biorad = importr("bioRad")
        utils = importr("utils")

    return robjects, biorad, utils


class BioRadBackend:
    """ProfileConverter, ProfileAggregator and MtrIntegrator backed by bioRad."""

    thread_safe = False

    def __init__(self, *, calculate_vp_kwargs: Mapping[str, Any] | None = None) -> None:
        self._calculate_vp_kwargs = dict(calculate_vp_kwargs or {"autoconf": True})
        self._robjects, self._biorad, self._utils = _import_r_packages()

        LOGGER.info(
            "bioRad backend ready",
            extra={"calculate_vp_kwargs": self._calculate_vp_kwargs},
        )

    def convert(self, input_path: Path, output_path: Path) -> Any:
        with _R_LOCK:
            return self._biorad.calculate_vp(
                str(input_path),
                str(output_path),
                **self._calculate_vp_kwargs,
            )

    def aggregate(self, profile_files: Sequence[Path]) -> Any:
        if not profile_files:
            raise AggregationError("no vertical profile files to aggregate")

        files = self._robjects.StrVector([str(path) for path in profile_files])

        with _R_LOCK:
            vplist = self._biorad.read_vpfiles(files)
            return self._biorad.bind_into_vpts(vplist)

    def integrate(self, series: Any) -> Any:
        with _R_LOCK:
            return self._biorad.integrate_profile(series)

    def export(self, table: Any, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with _R_LOCK:
            frame = self._robjects.r["as.data.frame"](table)
            self._utils.write_csv(frame, file=str(path), row_names=False)
