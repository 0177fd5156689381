from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Protocol

from nexrad_migration.core.domain.outcomes import BatchResult, ItemOutcome, ResultTally
from nexrad_migration.core.domain.types import RemoteObjectRef
from nexrad_migration.core.errors import DirectoryError, FetchError

LOGGER = logging.getLogger(__name__)


class ObjectDownloader(Protocol):
    def download_to_file(self, bucket: str, key: str, destination: str | Path) -> None:
        """Copy one object to ``destination``, overwriting it."""


def ensure_directory(path: Path) -> Path:
    """
    Create ``path`` and its parents.

    Safe to call concurrently and on an existing directory.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DirectoryError(str(path), exc.strerror or str(exc)) from exc
    return path


class LocalMaterializer:
    """
    Materializes selected radar volumes from the bucket into a local tree.

    Layout:

        <input_root>/<key>

    so the local tree mirrors the remote keys below the prefix
    (``2024/12/12/KDIX/KDIX20241212_093015_V06``).
    """

    def __init__(
        self,
        *,
        store: ObjectDownloader,
        input_root: Path,
        max_workers: int = 4,
        skip_existing: bool = False,
    ) -> None:
        self._store = store
        self._input_root = Path(input_root)
        self._max_workers = max_workers
        self._skip_existing = skip_existing

    def local_dir_for(self, prefix: str) -> Path:
        return self._input_root / prefix.strip("/")

    @staticmethod
    def relative_key(key: str, prefix: str) -> str:
        """
        Part of ``key`` below ``prefix``; keeps any deeper structure.

        ``2024/12/12/KDIX/KDIX20241212_093015_V06`` under ``2024/12/``
        becomes ``12/KDIX/KDIX20241212_093015_V06``.
        """
        prefix = prefix.strip("/")
        prefix = f"{prefix}/" if prefix else ""

        relative = key[len(prefix):] if key.startswith(prefix) else key.rsplit("/", 1)[-1]
        parts = [part for part in relative.split("/") if part]

        if not parts or any(part in (".", "..") for part in parts):
            raise ValueError(f"key does not map to a local file: {key}")
        return "/".join(parts)

    def materialize(
        self,
        refs: Iterable[RemoteObjectRef],
        *,
        prefix: str,
    ) -> BatchResult:
        """
        Fetch every ref into the local mirror of ``prefix``.

        The prefix directory is created before any fetch; if that fails
        the whole batch fails with DirectoryError. Keys nested deeper
        than the prefix keep their sub-path. A failing object is
        recorded and the remaining objects are still fetched.
        """
        refs = list(refs)
        local_dir = ensure_directory(self.local_dir_for(prefix))

        tally = ResultTally(stage="download")

        if not refs:
            return tally.result()

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = {
                pool.submit(self._fetch_one, tally, index, ref, local_dir, prefix): (index, ref)
                for index, ref in enumerate(refs)
            }

        for future, (index, ref) in futures.items():
            exc = future.exception()
            if exc is not None:
                LOGGER.warning("Fetch failed for %s: %s", ref.key, exc)
                tally.record(index, ItemOutcome.failure(ref.key, FetchError(ref.key, str(exc))))

        result = tally.result()

        LOGGER.info(
            "Download finished: %d ok, %d failed",
            result.success_count,
            result.failure_count,
            extra={"local_dir": str(local_dir)},
        )
        return result

    def _fetch_one(
        self,
        tally: ResultTally,
        index: int,
        ref: RemoteObjectRef,
        local_dir: Path,
        prefix: str,
    ) -> None:
        try:
            target_path = local_dir / self.relative_key(ref.key, prefix)

            if self._skip_existing and target_path.exists():
                LOGGER.debug("Skipping existing file %s", target_path)
                tally.record(index, ItemOutcome.success(ref.key, str(target_path)))
                return

            ensure_directory(target_path.parent)
            self._store.download_to_file(ref.bucket, ref.key, target_path)
        except (FetchError, DirectoryError) as exc:
            LOGGER.warning("Fetch failed for %s: %s", ref.key, exc)
            tally.record(index, ItemOutcome.failure(ref.key, exc))
            return
        except Exception as exc:
            LOGGER.warning("Fetch failed for %s: %s", ref.key, exc)
            tally.record(index, ItemOutcome.failure(ref.key, FetchError(ref.key, str(exc))))
            return

        tally.record(index, ItemOutcome.success(ref.key, str(target_path)))
