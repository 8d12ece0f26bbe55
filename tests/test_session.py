import pytest

from txbench.errors import ConnectionFailedError, SubmitError
from txbench.session import SessionState, open_session

from conftest import ADDRESS, CREDENTIAL, FakeTransport


def test_open_submit_close(fake_transport):
    session = open_session(fake_transport, ADDRESS, CREDENTIAL, "transactions")
    assert session.state is SessionState.OPEN

    ack = session.submit("ns", "0")

    assert ack.offset == 0
    assert fake_transport.writes == [("transactions", "ns", "0")]
    session.close()
    assert session.state is SessionState.CLOSED
    assert fake_transport.disconnects == 1


def test_close_is_idempotent(fake_transport):
    session = open_session(fake_transport, ADDRESS, CREDENTIAL, "transactions")
    session.close()
    session.close()
    assert session.close_count == 1
    assert fake_transport.disconnects == 1


def test_submit_after_close_fails(fake_transport):
    session = open_session(fake_transport, ADDRESS, CREDENTIAL, "transactions")
    session.close()
    with pytest.raises(SubmitError):
        session.submit("ns", "0")
    assert fake_transport.writes == []


def test_context_manager_closes_on_error(fake_transport):
    with pytest.raises(RuntimeError):
        with open_session(fake_transport, ADDRESS, CREDENTIAL, "transactions") as session:
            session.submit("ns", "0")
            raise RuntimeError("boom")
    assert session.state is SessionState.CLOSED
    assert fake_transport.disconnects == 1


def test_failed_submit_leaves_session_open():
    transport = FakeTransport(fail_on={0})
    session = open_session(transport, ADDRESS, CREDENTIAL, "transactions")
    with pytest.raises(SubmitError):
        session.submit("ns", "0")
    assert session.is_open
    session.submit("ns", "1")
    assert transport.writes == [("transactions", "ns", "1")]


def test_open_propagates_connection_failure():
    transport = FakeTransport(fail_connect=True)
    with pytest.raises(ConnectionFailedError):
        open_session(transport, ADDRESS, CREDENTIAL, "transactions")
    assert transport.disconnects == 0
