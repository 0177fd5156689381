"""
Pipeline error hierarchy.

Each stage raises its own error kind so callers can decide, per stage,
whether a failure is recovered per item or aborts the run.
"""
from __future__ import annotations


class PipelineError(Exception):
    """Base class for all pipeline errors."""

    kind: str = "pipeline"


class ConfigError(PipelineError):
    """Configuration file is missing or does not validate."""

    kind = "config"


class RemoteListError(PipelineError):
    """Listing the object store failed (network, auth, missing bucket)."""

    kind = "remote_list"


class FetchError(PipelineError):
    """Copying a single object to local disk failed."""

    kind = "fetch"

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key


class ConversionError(PipelineError):
    """The external profile converter failed on a single input file."""

    kind = "conversion"

    def __init__(self, input_path: str, message: str) -> None:
        super().__init__(f"{input_path}: {message}")
        self.input_path = input_path


class DirectoryError(PipelineError):
    """A local directory could not be created."""

    kind = "directory"

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class AggregationError(PipelineError):
    """Profile aggregation or MTR integration failed."""

    kind = "aggregation"
