from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from .config import BenchmarkConfig, FailurePolicy
from .errors import BenchmarkError, ConnectionFailedError, SubmitError
from .generator import TransactionGenerator
from .session import open_session
from .transport import Transport

LOGGER = logging.getLogger("txbench.driver")

PROGRESS_LOG_EVERY = 1_000


class DriverState(enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    RUNNING = "running"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class RunMetrics:
    requested: int
    successful: int
    failed: int
    started_at: float
    finished_at: float
    started_wall: float
    payload_bytes: int = 0

    @classmethod
    def not_started(cls, requested: int) -> "RunMetrics":
        return cls(
            requested=requested,
            successful=0,
            failed=0,
            started_at=0.0,
            finished_at=0.0,
            started_wall=time.time(),
        )

    @property
    def attempted(self) -> int:
        return self.successful + self.failed

    @property
    def elapsed_s(self) -> float:
        return max(self.finished_at - self.started_at, 0.0)

    @property
    def tps(self) -> float | None:
        """Successful transactions per second, None when not measurable."""
        if self.attempted == 0 or self.elapsed_s <= 0:
            return None
        return self.successful / self.elapsed_s

    @property
    def transaction_time_ms(self) -> float | None:
        if self.attempted == 0 or self.elapsed_s <= 0:
            return None
        return self.elapsed_s / self.attempted * 1000.0


@dataclass
class RunResult:
    state: DriverState
    metrics: RunMetrics
    error: BenchmarkError | None = None
    failures: list[SubmitError] = field(default_factory=list)
    connected: bool = True
    worker_results: list["RunResult"] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is DriverState.DONE


class BenchmarkDriver:
    """Drives one session through ``config.transactions`` sequential writes.

    Connection and submission failures never escape ``run``; they end up in
    the returned ``RunResult``. With ``FailurePolicy.ABORT`` the first failed
    write stops the loop and the run ends FAILED with the partial count. With
    ``FailurePolicy.CONTINUE`` failures are collected and the run ends DONE.
    """

    def __init__(
        self,
        transport: Transport,
        config: BenchmarkConfig,
        clock: Callable[[], float] = time.perf_counter,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._transport = transport
        self._config = config
        self._clock = clock
        self._wall_clock = wall_clock
        self.state = DriverState.IDLE
        self._successful = 0
        self._payload_bytes = 0
        self._failures: list[SubmitError] = []
        self._started_at: float | None = None
        self._started_wall: float | None = None

    @property
    def started(self) -> bool:
        return self._started_at is not None

    @property
    def failures(self) -> list[SubmitError]:
        return list(self._failures)

    def progress(self) -> RunMetrics:
        """Counts reached so far, measured up to now."""
        if self._started_at is None:
            return RunMetrics.not_started(self._config.transactions)
        return self._metrics(self._clock())

    def run(self) -> RunResult:
        config = self._config
        generator = TransactionGenerator(config.namespace)

        self._transition(DriverState.CONNECTING)
        try:
            session = open_session(
                self._transport, config.address, config.credential, config.topic
            )
        except ConnectionFailedError as exc:
            LOGGER.error("Connection to %s failed: %s", config.address, exc)
            self._transition(DriverState.FAILED)
            return RunResult(
                state=DriverState.FAILED,
                metrics=RunMetrics.not_started(config.transactions),
                error=exc,
                connected=False,
            )

        error: SubmitError | None = None

        with session:
            self._transition(DriverState.RUNNING)
            self._started_wall = self._wall_clock()
            self._started_at = self._clock()
            for index, transaction in generator.iter_transactions(config.transactions):
                try:
                    session.submit(transaction.key, transaction.value)
                except SubmitError as exc:
                    failure = exc.with_index(index)
                    self._failures.append(failure)
                    if config.policy is FailurePolicy.ABORT:
                        LOGGER.error("Aborting run after failed %s", failure)
                        error = failure
                        break
                    LOGGER.warning("Failed %s", failure)
                    continue
                self._successful += 1
                self._payload_bytes += transaction.payload_bytes
                if self._successful % PROGRESS_LOG_EVERY == 0:
                    LOGGER.debug(
                        "%d/%d transactions acknowledged", self._successful, config.transactions
                    )
            finished_at = self._clock()
            self._transition(DriverState.REPORTING)

        metrics = self._metrics(finished_at)
        final_state = DriverState.FAILED if error is not None else DriverState.DONE
        self._transition(final_state)
        return RunResult(
            state=final_state, metrics=metrics, error=error, failures=list(self._failures)
        )

    def _metrics(self, finished_at: float) -> RunMetrics:
        return RunMetrics(
            requested=self._config.transactions,
            successful=self._successful,
            failed=len(self._failures),
            started_at=self._started_at,
            finished_at=finished_at,
            started_wall=self._started_wall,
            payload_bytes=self._payload_bytes,
        )

    def _transition(self, state: DriverState) -> None:
        LOGGER.debug("Driver %s -> %s", self.state.value, state.value)
        self.state = state


def run_benchmark(
    transport_factory: Callable[[], Transport],
    config: BenchmarkConfig,
    clock: Callable[[], float] = time.perf_counter,
) -> RunResult:
    if config.workers == 1:
        return BenchmarkDriver(transport_factory(), config, clock=clock).run()
    return run_workers(transport_factory, config, clock=clock)


def run_workers(
    transport_factory: Callable[[], Transport],
    config: BenchmarkConfig,
    clock: Callable[[], float] = time.perf_counter,
) -> RunResult:
    """Run ``config.workers`` independent drivers side by side.

    Every worker owns its own transport and session. The aggregate rate is
    the total number of acknowledged writes over the span from the earliest
    worker start to the latest worker finish.
    """
    results: list[RunResult | None] = [None] * config.workers
    drivers: list[BenchmarkDriver | None] = [None] * config.workers

    def worker(slot: int) -> None:
        try:
            driver = BenchmarkDriver(transport_factory(), config, clock=clock)
            drivers[slot] = driver
            results[slot] = driver.run()
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("worker %d crashed", slot)
            results[slot] = _crashed_result(drivers[slot], config, f"worker {slot} crashed: {exc!r}")

    threads = [
        threading.Thread(target=worker, args=(slot,), name=f"txbench-worker-{slot}", daemon=True)
        for slot in range(config.workers)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    finished: list[RunResult] = []
    for slot, result in enumerate(results):
        if result is None:
            LOGGER.error("worker %d exited without a result", slot)
            result = _crashed_result(drivers[slot], config, f"worker {slot} exited without a result")
        finished.append(result)
    for slot, result in enumerate(finished):
        LOGGER.info(
            "Worker %d finished: state=%s successful=%d/%d",
            slot,
            result.state.value,
            result.metrics.successful,
            result.metrics.requested,
        )
    return aggregate_results(finished)


def _crashed_result(
    driver: BenchmarkDriver | None,
    config: BenchmarkConfig,
    reason: str,
) -> RunResult:
    if driver is None:
        return RunResult(
            state=DriverState.FAILED,
            metrics=RunMetrics.not_started(config.transactions),
            error=BenchmarkError(reason),
            connected=False,
        )
    metrics = driver.progress()
    return RunResult(
        state=DriverState.FAILED,
        metrics=metrics,
        error=BenchmarkError(reason),
        failures=driver.failures,
        connected=driver.started,
    )


def aggregate_results(results: list[RunResult]) -> RunResult:
    connected = [result for result in results if result.connected]
    if connected:
        started_at = min(result.metrics.started_at for result in connected)
        finished_at = max(result.metrics.finished_at for result in connected)
        started_wall = min(result.metrics.started_wall for result in connected)
    else:
        started_at = finished_at = 0.0
        started_wall = time.time()

    metrics = RunMetrics(
        requested=sum(result.metrics.requested for result in results),
        successful=sum(result.metrics.successful for result in results),
        failed=sum(result.metrics.failed for result in results),
        started_at=started_at,
        finished_at=finished_at,
        started_wall=started_wall,
        payload_bytes=sum(result.metrics.payload_bytes for result in results),
    )
    errors = [result.error for result in results if result.error is not None]
    failures = [failure for result in results for failure in result.failures]
    state = (
        DriverState.FAILED
        if any(not result.ok for result in results)
        else DriverState.DONE
    )
    return RunResult(
        state=state,
        metrics=metrics,
        error=errors[0] if errors else None,
        failures=failures,
        connected=bool(connected),
        worker_results=list(results),
    )


__all__ = [
    "BenchmarkDriver",
    "DriverState",
    "RunMetrics",
    "RunResult",
    "aggregate_results",
    "run_benchmark",
    "run_workers",
]
