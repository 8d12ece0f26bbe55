from __future__ import annotations


class BenchmarkError(Exception):
    """Base class for every failure raised by the harness."""


class ConfigurationError(BenchmarkError):
    """Raised when the benchmark configuration is invalid."""


class ConnectionFailedError(BenchmarkError):
    """Raised when the target endpoint is unreachable or rejects the credential."""


class SubmitError(BenchmarkError):
    """Raised when a single transaction could not be written."""

    def __init__(
        self,
        reason: str,
        index: int | None = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.index = index
        self.timed_out = timed_out

    def with_index(self, index: int) -> "SubmitError":
        return SubmitError(self.reason, index=index, timed_out=self.timed_out)

    def __str__(self) -> str:
        prefix = "" if self.index is None else f"transaction #{self.index}: "
        suffix = " (timed out)" if self.timed_out else ""
        return f"{prefix}{self.reason}{suffix}"


class ReportingError(BenchmarkError):
    """Raised when the final report could not be written to its sink."""


__all__ = [
    "BenchmarkError",
    "ConfigurationError",
    "ConnectionFailedError",
    "SubmitError",
    "ReportingError",
]
