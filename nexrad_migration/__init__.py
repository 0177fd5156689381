"""Public API for the nexrad_migration package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Config API
# ----------------------------------------------------------------------
from nexrad_migration.config.pipeline_config import (
    BioRadConfig,
    PipelineConfig,
    WindowConfig,
    load_config,
)

# ----------------------------------------------------------------------
# Domain types
# ----------------------------------------------------------------------
from nexrad_migration.core.domain.outcomes import BatchResult, ItemOutcome, ResultTally
from nexrad_migration.core.domain.types import (
    LocalFileRef,
    MirroredPath,
    RemoteObjectRef,
    TimeWindow,
)
from nexrad_migration.core.errors import (
    AggregationError,
    ConfigError,
    ConversionError,
    DirectoryError,
    FetchError,
    PipelineError,
    RemoteListError,
)

# ----------------------------------------------------------------------
# Pipeline stages
# ----------------------------------------------------------------------
from nexrad_migration.io.s3_adapter import NexradS3Client
from nexrad_migration.pipeline.aggregation import collect_profile_files, integrate_profiles
from nexrad_migration.pipeline.conversion import ConversionRunner
from nexrad_migration.pipeline.listing import list_remote_objects
from nexrad_migration.pipeline.materializer import LocalMaterializer, ensure_directory
from nexrad_migration.pipeline.time_filter import filter_by_window, filter_keys
from nexrad_migration.pipeline.tree_walker import (
    discover_files,
    input_path_for,
    mirrored_path_for,
    walk_mirrored_tree,
)
from nexrad_migration.profiles.ports import MtrIntegrator, ProfileAggregator, ProfileConverter
from nexrad_migration.runtime.run_pipeline import PipelineRunner, RunOptions

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Config
    "PipelineConfig",
    "WindowConfig",
    "BioRadConfig",
    "load_config",

    # Domain
    "TimeWindow",
    "RemoteObjectRef",
    "LocalFileRef",
    "MirroredPath",
    "ItemOutcome",
    "BatchResult",
    "ResultTally",

    # Errors
    "PipelineError",
    "ConfigError",
    "RemoteListError",
    "FetchError",
    "ConversionError",
    "DirectoryError",
    "AggregationError",

    # Stages
    "NexradS3Client",
    "list_remote_objects",
    "filter_by_window",
    "filter_keys",
    "LocalMaterializer",
    "ensure_directory",
    "discover_files",
    "mirrored_path_for",
    "input_path_for",
    "walk_mirrored_tree",
    "ConversionRunner",
    "collect_profile_files",
    "integrate_profiles",
    "PipelineRunner",
    "RunOptions",

    # Backend interfaces
    "ProfileConverter",
    "ProfileAggregator",
    "MtrIntegrator",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("nexrad-migration")
except PackageNotFoundError:
    __version__ = "0.0.0"
