import pytest

from txbench.driver import DriverState, RunMetrics, RunResult, aggregate_results, run_workers

from conftest import FakeTransport


def test_each_worker_owns_its_session(make_config):
    created = []

    def factory():
        transport = FakeTransport()
        created.append(transport)
        return transport

    result = run_workers(factory, make_config(transactions=5, workers=3))

    assert result.ok
    assert len(created) == 3
    for transport in created:
        assert [value for _, _, value in transport.writes] == ["0", "1", "2", "3", "4"]
        assert transport.disconnects == 1
    assert result.metrics.requested == 15
    assert result.metrics.successful == 15
    assert len(result.worker_results) == 3


def test_one_failing_worker_fails_the_run(make_config):
    transports = iter([FakeTransport(), FakeTransport(fail_connect=True)])

    result = run_workers(lambda: next(transports), make_config(transactions=3, workers=2))

    assert result.state is DriverState.FAILED
    assert result.metrics.successful == 3
    assert result.connected


def _result(successful, started_at, finished_at, state=DriverState.DONE):
    return RunResult(
        state=state,
        metrics=RunMetrics(
            requested=successful,
            successful=successful,
            failed=0,
            started_at=started_at,
            finished_at=finished_at,
            started_wall=1_000.0 + started_at,
        ),
    )


def test_aggregate_uses_whole_wall_span():
    aggregated = aggregate_results([_result(10, 0.0, 2.0), _result(30, 1.0, 5.0)])

    assert aggregated.metrics.successful == 40
    assert aggregated.metrics.elapsed_s == pytest.approx(5.0)
    # Not the sum of per-worker rates (5.0 + 7.5).
    assert aggregated.metrics.tps == pytest.approx(8.0)


def test_aggregate_ignores_workers_that_never_connected():
    never = RunResult(
        state=DriverState.FAILED,
        metrics=RunMetrics.not_started(10),
        connected=False,
    )
    aggregated = aggregate_results([_result(10, 3.0, 5.0), never])

    assert aggregated.state is DriverState.FAILED
    assert aggregated.metrics.elapsed_s == pytest.approx(2.0)
    assert aggregated.metrics.requested == 20


class CrashingTransport(FakeTransport):
    def __init__(self, crash_at, exc_type):
        super().__init__()
        self.crash_at = crash_at
        self.exc_type = exc_type

    def write_key_value(self, handle, topic, key, value):
        if self.calls == self.crash_at:
            raise self.exc_type("worker blew up")
        return super().write_key_value(handle, topic, key, value)


def test_crashed_worker_keeps_counts_reached(make_config):
    transports = iter([FakeTransport(), CrashingTransport(2, RuntimeError)])

    result = run_workers(lambda: next(transports), make_config(transactions=5, workers=2))

    assert result.state is DriverState.FAILED
    assert result.metrics.successful == 7
    crashed = [worker for worker in result.worker_results if not worker.ok]
    assert len(crashed) == 1
    assert crashed[0].metrics.successful == 2
    assert crashed[0].connected
    assert "crashed" in str(crashed[0].error)


def test_worker_killed_by_base_exception_is_not_dropped(make_config):
    transports = iter([FakeTransport(), CrashingTransport(3, SystemExit)])

    result = run_workers(lambda: next(transports), make_config(transactions=5, workers=2))

    assert result.state is DriverState.FAILED
    assert len(result.worker_results) == 2
    assert result.metrics.requested == 10
    assert result.metrics.successful == 8
