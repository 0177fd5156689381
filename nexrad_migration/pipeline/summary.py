from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from nexrad_migration.core.domain.outcomes import BatchResult
    from nexrad_migration.core.domain.types import TimeWindow


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class StageSummary:
    stage: str
    attempted: int
    succeeded: int
    failed: int
    failed_items: List[str]


@dataclass(frozen=True, slots=True)
class RunSummary:
    site: str
    day: str
    prefix: str
    window: str
    # None when the listing stage was skipped.
    listed: int | None
    selected: int | None
    malformed: int
    excluded_invalid: int
    stages: List[StageSummary]
    profile_count: int | None
    warnings: List[str] = field(default_factory=list)

    def stage(self, name: str) -> StageSummary | None:
        for s in self.stages:
            if s.stage == name:
                return s
        return None


# ---------------------------------------------------------------------------
# Summary builder
# ---------------------------------------------------------------------------

def _stage_summary(result: BatchResult) -> StageSummary:
    return StageSummary(
        stage=result.stage,
        attempted=result.attempted,
        succeeded=result.success_count,
        failed=result.failure_count,
        failed_items=[o.item for o in result.failed],
    )


def summarize_run(
    *,
    site: str,
    day: str,
    prefix: str,
    window: TimeWindow,
    listed: int | None,
    selected: int | None,
    malformed: int = 0,
    excluded_invalid: int = 0,
    stages: list[BatchResult] | None = None,
    profile_count: int | None = None,
    extra_warnings: list[str] | None = None,
) -> RunSummary:
    warnings: list[str] = []
    stage_summaries = [_stage_summary(r) for r in stages or []]

    if listed == 0:
        warnings.append(f"No objects listed under {prefix}")
    elif selected == 0:
        warnings.append(f"No objects fall in window {window}")

    if malformed:
        warnings.append(
            f"{malformed} objects have no HHMMSS timestamp at the expected offset"
        )

    for s in stage_summaries:
        if s.attempted and s.failed == s.attempted:
            warnings.append(f"Every {s.stage} attempt failed ({s.failed})")
        elif s.failed:
            warnings.append(f"{s.failed} of {s.attempted} {s.stage} attempts failed")

    if profile_count == 0:
        warnings.append("No vertical profiles were available for MTR integration")

    warnings.extend(extra_warnings or [])

    return RunSummary(
        site=site,
        day=day,
        prefix=prefix,
        window=str(window),
        listed=listed,
        selected=selected,
        malformed=malformed,
        excluded_invalid=excluded_invalid,
        stages=stage_summaries,
        profile_count=profile_count,
        warnings=warnings,
    )


# ---------------------------------------------------------------------------
# Pretty printer
# ---------------------------------------------------------------------------

def print_run_summary(summary: RunSummary) -> None:
    print(f"Site: {summary.site}")
    print(f"Day: {summary.day}")
    print(f"Prefix: {summary.prefix}")
    print(f"Window (UTC): {summary.window}")
    if summary.listed is not None:
        print(f"Listed: {summary.listed}")
        print(f"Selected: {summary.selected}")
    else:
        print("Listed: skipped (no download)")
    if summary.malformed:
        print(f"Malformed names: {summary.malformed}")
    if summary.excluded_invalid:
        print(f"Excluded invalid files: {summary.excluded_invalid}")
    print()

    if summary.warnings:
        print("Warnings:")
        for w in summary.warnings:
            print(f"  - {w}")
        print()

    if summary.stages:
        print("Stages:")
        for s in summary.stages:
            print(
                f"  - {s.stage}: "
                f"{s.succeeded} ok | "
                f"{s.failed} failed | "
                f"{s.attempted} attempted"
            )
        print()

    for s in summary.stages:
        if not s.failed_items:
            continue
        print(f"Failed {s.stage}:")
        for item in s.failed_items:
            print(f"  - {item}")
        print()

    if summary.profile_count is not None:
        print(f"Profiles integrated: {summary.profile_count}")
