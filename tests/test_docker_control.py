import pytest
from docker.errors import APIError, NotFound

from txbench.docker_control import ServiceManager
from txbench.errors import BenchmarkError


class FakeContainer:
    def __init__(self, name, running=True, fail_restart=False):
        self.name = name
        self.attrs = {"State": {"Running": running}}
        self.restarts = 0
        self.fail_restart = fail_restart

    def restart(self, timeout=None):
        if self.fail_restart:
            raise APIError("restart refused")
        self.restarts += 1

    def reload(self):
        pass


class FakeContainers:
    def __init__(self, containers):
        self._containers = {container.name: container for container in containers}

    def get(self, name):
        if name not in self._containers:
            raise NotFound(f"no such container: {name}")
        return self._containers[name]


class FakeClient:
    def __init__(self, *containers):
        self.containers = FakeContainers(containers)


def _manager(client, names):
    return ServiceManager(
        names,
        client=client,
        startup_grace_seconds=0.05,
        settle_seconds=0,
        poll_interval_seconds=0.01,
    )


def test_restart_restarts_every_named_container():
    peers = [FakeContainer("peer-1"), FakeContainer("peer-2")]
    _manager(FakeClient(*peers), ["peer-1", "peer-2"]).restart()
    assert [peer.restarts for peer in peers] == [1, 1]


def test_missing_container_is_reported():
    with pytest.raises(BenchmarkError):
        _manager(FakeClient(), ["peer-1"]).restart()


def test_failed_restart_is_reported():
    peer = FakeContainer("peer-1", fail_restart=True)
    with pytest.raises(BenchmarkError):
        _manager(FakeClient(peer), ["peer-1"]).restart()


def test_unhealthy_container_only_warns(caplog):
    peer = FakeContainer("peer-1")
    peer.attrs = {"State": {"Running": True, "Health": {"Status": "starting"}}}
    _manager(FakeClient(peer), ["peer-1"]).restart()
    assert peer.restarts == 1
    assert "may not be fully ready" in caplog.text


def test_no_names_is_a_no_op():
    _manager(FakeClient(), []).restart()
