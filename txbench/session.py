from __future__ import annotations

import contextlib
import enum
import logging
from typing import Any

from .errors import SubmitError
from .transport import Ack, Transport

LOGGER = logging.getLogger("txbench.session")


class SessionState(enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


class ClientSession(contextlib.AbstractContextManager["ClientSession"]):
    """One live connection to the target endpoint.

    Submissions are serialized: ``submit`` blocks until the remote side
    acknowledges the write. A failed submission leaves the session open, so
    whether the run continues is up to the caller's failure policy.
    """

    def __init__(
        self,
        transport: Transport,
        handle: Any,
        address: str,
        credential: str,
        topic: str,
    ) -> None:
        self._transport = transport
        self._handle = handle
        self.address = address
        self.credential = credential
        self.topic = topic
        self.state = SessionState.OPEN
        self.close_count = 0

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.OPEN

    def submit(self, namespace: str, value: str) -> Ack:
        if not self.is_open:
            raise SubmitError(f"session to {self.address} is closed")
        return self._transport.write_key_value(self._handle, self.topic, namespace, value)

    def close(self) -> None:
        if not self.is_open:
            return
        self.state = SessionState.CLOSED
        self.close_count += 1
        LOGGER.debug("Closing session to %s", self.address)
        self._transport.disconnect(self._handle)

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_session(
    transport: Transport,
    address: str,
    credential: str,
    topic: str,
) -> ClientSession:
    """Connect to ``address``; raises ConnectionFailedError on failure."""
    handle = transport.connect(address, credential)
    LOGGER.info("Session opened to %s (topic=%s)", address, topic)
    return ClientSession(transport, handle, address, credential, topic)


__all__ = ["ClientSession", "SessionState", "open_session"]
