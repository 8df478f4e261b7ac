"""
Sarkari Pulse — Exception Types
Transport failures are returned as FetchError values, not raised;
these exceptions cover the store and run-level failures.
"""


class SarkariPulseError(Exception):
    """Base class for all application errors."""


class StoreError(SarkariPulseError):
    """The scheme store could not be reached or rejected an operation."""


class UpsertError(StoreError):
    """A single scheme record could not be written."""

    def __init__(self, name: str, message: str):
        super().__init__(f"Failed to upsert scheme '{name}': {message}")
        self.name = name


class UnknownStrategyError(SarkariPulseError):
    """A run was requested with a strategy name that is not registered."""

    def __init__(self, names: list[str]):
        super().__init__(f"Unknown strategies: {', '.join(names)}")
        self.names = names


class SourceUnreachableError(SarkariPulseError):
    """The upstream source could not be reached at all on the first request."""


class RunInProgressError(SarkariPulseError):
    """Another scrape run is already active."""
