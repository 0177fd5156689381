from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import TYPE_CHECKING, Any, Callable, Sequence

from nexrad_migration.core.domain.outcomes import BatchResult, ItemOutcome, ResultTally
from nexrad_migration.core.errors import ConversionError

if TYPE_CHECKING:
    from nexrad_migration.core.domain.types import MirroredPath
    from nexrad_migration.profiles.ports import ProfileConverter

LOGGER = logging.getLogger(__name__)

TIMEOUT_THREAD_NAME = "conversion-timeout"


def _call_with_timeout(fn: Callable[[], Any], timeout_s: float | None) -> Any:
    """
    Run ``fn`` and wait at most ``timeout_s`` seconds for it.

    On timeout the call is abandoned, not stopped: it keeps running on a
    daemon thread until it returns, and its result is ignored. Daemon
    threads are not joined at interpreter exit, so a hung call does not
    keep the process alive.
    """
    if timeout_s is None:
        return fn()

    future: Future = Future()

    def target() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(fn())
        except BaseException as exc:  # forwarded to the waiting caller
            future.set_exception(exc)

    threading.Thread(target=target, name=TIMEOUT_THREAD_NAME, daemon=True).start()
    return future.result(timeout=timeout_s)


class ConversionRunner:
    """
    Runs the profile converter once per MirroredPath.

    A failing or timed-out conversion is recorded and never stops the
    batch. Thread-safe converters run on a bounded pool; converters
    flagged ``thread_safe = False`` run one after the other on the
    calling thread.

    ``timeout_s`` only applies to thread-safe converters. It is ignored
    (with a warning) for the others, which includes the bioRad backend:
    embedded R cannot be called from a helper thread. A timed-out call
    is abandoned rather than killed.
    """

    def __init__(
        self,
        *,
        converter: ProfileConverter,
        max_workers: int = 4,
        timeout_s: float | None = None,
    ) -> None:
        self._converter = converter
        self._max_workers = max_workers
        self._timeout_s = timeout_s

    @property
    def parallel(self) -> bool:
        return getattr(self._converter, "thread_safe", True) and self._max_workers > 1

    def run(self, pairs: Sequence[MirroredPath]) -> BatchResult:
        tally = ResultTally(stage="conversion")

        if self.parallel:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                futures = {
                    pool.submit(self._convert_one, tally, index, pair): (index, pair)
                    for index, pair in enumerate(pairs)
                }

            for future, (index, pair) in futures.items():
                exc = future.exception()
                if exc is not None:
                    item = str(pair.input_path)
                    error = ConversionError(item, str(exc) or type(exc).__name__)
                    LOGGER.warning("Error processing file %s: %s", item, error)
                    tally.record(index, ItemOutcome.failure(item, error))
        else:
            if self._timeout_s is not None and not getattr(self._converter, "thread_safe", True):
                LOGGER.warning(
                    "conversion_timeout_s is ignored for converters that are not thread-safe"
                )
            for index, pair in enumerate(pairs):
                self._convert_one(tally, index, pair)

        result = tally.result()

        LOGGER.info(
            "Conversion finished: %d ok, %d failed",
            result.success_count,
            result.failure_count,
        )
        return result

    def _convert_one(self, tally: ResultTally, index: int, pair: MirroredPath) -> None:
        item = str(pair.input_path)

        def call() -> Any:
            return self._converter.convert(pair.input_path, pair.output_path)

        timeout_s = self._timeout_s if getattr(self._converter, "thread_safe", True) else None

        try:
            _call_with_timeout(call, timeout_s)
        except FutureTimeoutError:
            error = ConversionError(item, f"timed out after {timeout_s:g}s")
            LOGGER.warning("Error processing file %s: %s", item, error)
            tally.record(index, ItemOutcome.failure(item, error))
            return
        except Exception as exc:
            error = ConversionError(item, str(exc) or type(exc).__name__)
            LOGGER.warning("Error processing file %s: %s", item, error)
            tally.record(index, ItemOutcome.failure(item, error))
            return

        LOGGER.info("Processed: %s -> %s", pair.input_path, pair.output_path)
        tally.record(index, ItemOutcome.success(item, str(pair.output_path)))
