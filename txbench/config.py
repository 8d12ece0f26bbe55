from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field
from typing import Iterator, Sequence

from .errors import ConfigurationError

DEFAULT_TRANSACTIONS = 10_000
DEFAULT_NAMESPACE = "benchmark"
DEFAULT_TOPIC = "transactions"


class FailurePolicy(enum.Enum):
    """What the driver does when a single submission fails."""

    ABORT = "abort"
    CONTINUE = "continue"


@dataclass(frozen=True)
class BenchmarkConfig:
    """Inputs of a single benchmark run against one endpoint."""

    address: str
    credential: str
    transactions: int = DEFAULT_TRANSACTIONS
    namespace: str = DEFAULT_NAMESPACE
    topic: str = DEFAULT_TOPIC
    policy: FailurePolicy = FailurePolicy.ABORT
    workers: int = 1

    def validate(self) -> "BenchmarkConfig":
        if not self.address.strip():
            raise ConfigurationError("target address must not be empty")
        if not self.credential.strip():
            raise ConfigurationError("credential must not be empty")
        if any(ch.isspace() for ch in self.credential):
            raise ConfigurationError("credential must not contain whitespace")
        if not self.namespace:
            raise ConfigurationError("key namespace must not be empty")
        if not self.topic:
            raise ConfigurationError("topic must not be empty")
        if self.transactions < 0:
            raise ConfigurationError(
                f"transaction count must be >= 0, got {self.transactions}"
            )
        if self.workers < 1:
            raise ConfigurationError(f"worker count must be >= 1, got {self.workers}")
        return self

    def with_workers(self, workers: int) -> "BenchmarkConfig":
        return dataclasses.replace(self, workers=workers)


@dataclass(frozen=True)
class SweepPoint:
    workers: int
    run: int


@dataclass
class SweepPlan:
    """Worker counts to sweep and how many runs each point gets."""

    worker_counts: list[int] = field(default_factory=lambda: [1])
    runs: int = 1

    def __post_init__(self) -> None:
        if not self.worker_counts:
            raise ConfigurationError("at least one worker count is required")
        if any(count < 1 for count in self.worker_counts):
            raise ConfigurationError("worker counts must be >= 1")
        if self.runs < 1:
            raise ConfigurationError(f"runs must be >= 1, got {self.runs}")

    @property
    def is_sweep(self) -> bool:
        return len(self.worker_counts) > 1 or self.runs > 1

    def __iter__(self) -> Iterator[SweepPoint]:
        for workers in self.worker_counts:
            for run in range(1, self.runs + 1):
                yield SweepPoint(workers=workers, run=run)

    def __len__(self) -> int:
        return len(self.worker_counts) * self.runs


def parse_worker_counts(value: str | Sequence[int]) -> list[int]:
    if not isinstance(value, str):
        return [int(item) for item in value]
    try:
        counts = [int(item.strip()) for item in value.split(",") if item.strip()]
    except ValueError as exc:
        raise ConfigurationError(f"invalid worker list {value!r}") from exc
    if not counts:
        raise ConfigurationError(f"invalid worker list {value!r}")
    return counts


__all__ = [
    "BenchmarkConfig",
    "FailurePolicy",
    "SweepPlan",
    "SweepPoint",
    "parse_worker_counts",
]
