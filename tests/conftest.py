"""
Shared fixtures for the txbench tests.

The fake transport records every write in memory and can be told to refuse
the connection or to fail specific submissions by zero-based index.
"""

import os

import pytest

os.environ.setdefault("MPLBACKEND", "Agg")

from txbench.config import BenchmarkConfig, FailurePolicy
from txbench.errors import ConnectionFailedError, SubmitError
from txbench.transport import Ack

ADDRESS = "127.0.0.1:3133"
CREDENTIAL = "406ed6170c8672e18707fb7512acf3c9dbfc6e5ad267d9a57b9c486a94d99dcc"


class FakeHandle:
    def __init__(self, address, credential):
        self.address = address
        self.credential = credential


class FakeTransport:
    def __init__(self, fail_on=(), timeout_on=(), fail_connect=False):
        self.fail_on = set(fail_on)
        self.timeout_on = set(timeout_on)
        self.fail_connect = fail_connect
        self.connects = 0
        self.disconnects = 0
        self.calls = 0
        self.writes = []

    def connect(self, address, credential):
        self.connects += 1
        if self.fail_connect:
            raise ConnectionFailedError(f"no broker reachable at {address}")
        return FakeHandle(address, credential)

    def write_key_value(self, handle, topic, key, value):
        index = self.calls
        self.calls += 1
        if index in self.timeout_on:
            raise SubmitError("no acknowledgment", timed_out=True)
        if index in self.fail_on:
            raise SubmitError("remote rejected write")
        self.writes.append((topic, key, value))
        return Ack(topic=topic, partition=0, offset=len(self.writes) - 1)

    def disconnect(self, handle):
        self.disconnects += 1


class StepClock:
    """Clock that advances by ``step`` seconds on every call."""

    def __init__(self, start=100.0, step=0.5):
        self.now = start
        self.step = step

    def __call__(self):
        value = self.now
        self.now += self.step
        return value


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def make_config():
    def factory(**overrides):
        values = {
            "address": ADDRESS,
            "credential": CREDENTIAL,
            "transactions": 10,
            "namespace": "ns",
            "topic": "transactions",
            "policy": FailurePolicy.ABORT,
        }
        values.update(overrides)
        return BenchmarkConfig(**values)

    return factory
