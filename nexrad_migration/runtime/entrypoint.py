from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from nexrad_migration.config.pipeline_config import PipelineConfig, load_config
from nexrad_migration.core.errors import ConfigError, DirectoryError, RemoteListError
from nexrad_migration.io.s3_adapter import NexradS3Client
from nexrad_migration.pipeline.summary import print_run_summary
from nexrad_migration.runtime.report import load_failed_inputs
from nexrad_migration.runtime.run_pipeline import PipelineRunner, RunOptions

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_CONFIG = 2


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_store(cfg: PipelineConfig) -> NexradS3Client:
    return NexradS3Client(
        region=cfg.region,
        timeout_s=cfg.fetch_timeout_s,
        max_pool_connections=max(10, cfg.max_workers),
    )


def _build_backend(cfg: PipelineConfig):
    # Imported lazily: rpy2 and R are only needed for --run.
    from nexrad_migration.profiles.biorad import BioRadBackend

    return BioRadBackend(calculate_vp_kwargs=cfg.biorad.to_calculate_vp_kwargs())


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="nexrad-migration",
        description=(
            "Download NEXRAD Level-II volumes, convert them to vertical "
            "profiles with bioRad and integrate migration traffic rates."
        ),
        epilog=(
            "conversion_timeout_s in the config applies to thread-safe converters "
            "only. bioRad runs sequentially in embedded R and is never timed out."
        ),
    )

    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to the pipeline JSON config.",
    )

    parser.add_argument(
        "--plan",
        action="store_true",
        help="List and filter remote volumes and print a summary (no downloads).",
    )

    parser.add_argument(
        "--run",
        action="store_true",
        help="Run the full pipeline.",
    )

    parser.add_argument(
        "--skip-download",
        action="store_true",
        help="Convert what is already under input_root; do not contact the bucket.",
    )

    parser.add_argument(
        "--skip-integrate",
        action="store_true",
        help="Stop after conversion (no time series, no MTR).",
    )

    parser.add_argument(
        "--only-failed",
        type=Path,
        default=None,
        metavar="REPORT",
        help="Convert only the inputs that failed in a previous run_report.json.",
    )

    parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Where to write run_report.json (default: next to the profiles).",
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )

    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.log_level)

    if not args.plan and not args.run:
        print("Error: one of --plan or --run must be specified.", file=sys.stderr)
        return EXIT_CONFIG

    try:
        cfg = load_config(args.config)
        only_inputs = (
            frozenset(load_failed_inputs(args.only_failed))
            if args.only_failed is not None
            else None
        )
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    # ------------------------------------------------------------------
    # Plan only
    # ------------------------------------------------------------------

    if args.plan and not args.run:
        runner = PipelineRunner(config=cfg, store=_build_store(cfg), backend=None)
        try:
            plan = runner.plan()
        except RemoteListError as exc:
            LOGGER.error("Listing failed: %s", exc)
            return EXIT_PARTIAL

        print_run_summary(runner.summarize_plan(plan))
        return EXIT_OK

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    try:
        backend = _build_backend(cfg)
    except RuntimeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    store = None if args.skip_download else _build_store(cfg)
    runner = PipelineRunner(config=cfg, store=store, backend=backend)

    options = RunOptions(
        download=not args.skip_download,
        integrate=not args.skip_integrate,
        only_inputs=only_inputs,
        report_path=args.report,
    )

    try:
        outcome = runner.run(options)
    except (RemoteListError, DirectoryError) as exc:
        LOGGER.error("Run aborted: %s", exc)
        return EXIT_PARTIAL

    print_run_summary(outcome.summary)
    print()
    print(f"All files have been processed (with errors skipped) and saved to: {cfg.output_root}")
    print(f"Run report: {outcome.report_path}")

    return outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
