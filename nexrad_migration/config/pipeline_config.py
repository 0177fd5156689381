"""Pipeline configuration models.

All run-specific settings (site, day, roots, window, suffixes, pool size)
live here and are validated once at startup. Components receive the
values they need explicitly; nothing reads global state.
"""

from __future__ import annotations

import json
from datetime import date as Date
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from nexrad_migration.core.domain.types import TimeWindow
from nexrad_migration.core.errors import ConfigError


class WindowConfig(BaseModel):
    """UTC time-of-day window as HHMMSS strings, e.g. "093000"."""

    start: str = Field(default="000000", pattern=r"^\d{6}$")
    end: str = Field(default="235959", pattern=r"^\d{6}$")

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_window(self) -> WindowConfig:
        # Delegates range and ordering checks to the domain type.
        self.to_time_window()
        return self

    def to_time_window(self) -> TimeWindow:
        return TimeWindow(start=self.start, end=self.end)


class BioRadConfig(BaseModel):
    """bioRad options that collects arbitrary extra keys into ``params``.

    JSON example:
        "biorad": {
          "autoconf": true,
          "range_max": 35000
        }

    Result:
        autoconf=True
        params={"range_max": 35000}
    """

    autoconf: bool = True

    params: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")

    @model_validator(mode="before")
    @classmethod
    def _collect_extras_into_params(cls, data: Any) -> Any:
        """Collect unknown top-level keys into the ``params`` mapping."""
        if not isinstance(data, dict):
            return data

        d = dict(data)

        explicit_params = d.pop("params", None)

        reserved = {"autoconf"}

        extras = {k: v for k, v in d.items() if k not in reserved}

        for k in extras.keys():
            d.pop(k, None)

        merged: dict[str, Any] = {}
        if isinstance(explicit_params, dict):
            merged.update(explicit_params)
        merged.update(extras)

        d["params"] = merged
        return d

    def to_calculate_vp_kwargs(self) -> dict[str, Any]:
        """Return keyword arguments for ``calculate_vp``; a fresh dict each call."""
        kwargs: dict[str, Any] = {"autoconf": self.autoconf}
        kwargs.update(self.params)
        return kwargs


class PipelineConfig(BaseModel):
    """Validated configuration for one site and one UTC day."""

    bucket: str = Field(default="noaa-nexrad-level2", min_length=1)
    region: str = Field(default="us-east-1", min_length=1)

    site: str = Field(..., pattern=r"^[A-Z0-9]{4}$")
    date: Date

    # Derived from date + site when omitted.
    key_prefix: str | None = None

    input_root: Path
    output_root: Path

    window: WindowConfig = Field(default_factory=WindowConfig)

    invalid_suffix: str = Field(default="_MDM", min_length=1)
    output_suffix: str = Field(default="_vp.h5", min_length=1)

    skip_existing: bool = False

    max_workers: int = Field(default=4, ge=1, le=64)
    fetch_timeout_s: float = Field(default=60.0, gt=0)
    conversion_timeout_s: float | None = Field(default=None, gt=0)

    profile_subdirs: list[str] = Field(default_factory=list)
    mtr_csv: Path | None = None

    biorad: BioRadConfig = Field(default_factory=BioRadConfig)

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> PipelineConfig:
        """Create a PipelineConfig instance from a JSON-compatible object."""
        return cls.model_validate(obj)

    @field_validator("site", mode="before")
    @classmethod
    def _upper_site(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("key_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip("/")
        if not value:
            raise ValueError("key_prefix must not be empty")
        return f"{value}/"

    @model_validator(mode="after")
    def validate_roots(self) -> PipelineConfig:
        """Input and output trees must not overlap."""
        input_root = self.input_root.expanduser().resolve()
        output_root = self.output_root.expanduser().resolve()

        if input_root == output_root:
            raise ValueError("input_root and output_root must differ")
        if output_root.is_relative_to(input_root):
            raise ValueError("output_root must not be inside input_root")
        if input_root.is_relative_to(output_root):
            raise ValueError("input_root must not be inside output_root")

        self.input_root = input_root
        self.output_root = output_root
        return self

    @property
    def prefix(self) -> str:
        """Remote key prefix, e.g. ``2024/12/12/KDIX/``."""
        if self.key_prefix is not None:
            return self.key_prefix
        return f"{self.date:%Y/%m/%d}/{self.site}/"

    @property
    def time_window(self) -> TimeWindow:
        return self.window.to_time_window()

    @property
    def local_raw_dir(self) -> Path:
        """Local folder mirroring the remote prefix."""
        return self.input_root / self.prefix.rstrip("/")


def load_config(path: Path) -> PipelineConfig:
    """Read and validate a JSON config file."""
    if not path.exists():
        raise ConfigError(f"config file does not exist: {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"config file is not valid JSON: {path}: {exc}") from exc

    try:
        return PipelineConfig.from_json_obj(raw)
    except ValidationError as exc:
        raise ConfigError(f"invalid config {path}:\n{exc}") from exc
