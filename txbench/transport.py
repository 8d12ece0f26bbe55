from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from kafka import KafkaProducer
from kafka.errors import KafkaError, KafkaTimeoutError, NoBrokersAvailable

from .errors import ConnectionFailedError, SubmitError

LOGGER = logging.getLogger("txbench.transport")

REQUEST_TIMEOUT_S_DEFAULT = 30.0
AUTHORIZATION_HEADER = "authorization"


@dataclass(frozen=True)
class Ack:
    """Remote acknowledgment of a single write."""

    topic: str
    partition: int
    offset: int


class Transport(Protocol):
    def connect(self, address: str, credential: str) -> Any: ...

    def write_key_value(self, handle: Any, topic: str, key: str, value: str) -> Ack: ...

    def disconnect(self, handle: Any) -> None: ...


@dataclass
class KafkaHandle:
    producer: KafkaProducer
    credential: str
    closed: bool = field(default=False)


class KafkaTransport:
    """Key/value writes over Kafka, one acknowledged record at a time."""

    def __init__(
        self,
        request_timeout_s: float = REQUEST_TIMEOUT_S_DEFAULT,
        client_id: str = "txbench",
    ) -> None:
        self._request_timeout_s = request_timeout_s
        self._client_id = client_id

    def connect(self, address: str, credential: str) -> KafkaHandle:
        LOGGER.debug("Connecting to %s", address)
        try:
            producer = create_producer(
                address,
                client_id=self._client_id,
                request_timeout_s=self._request_timeout_s,
            )
        except NoBrokersAvailable as exc:
            raise ConnectionFailedError(f"no broker reachable at {address}") from exc
        except KafkaError as exc:
            raise ConnectionFailedError(f"failed to connect to {address}: {exc}") from exc
        return KafkaHandle(producer=producer, credential=credential)

    def write_key_value(self, handle: KafkaHandle, topic: str, key: str, value: str) -> Ack:
        payload = {"type": "key_value", "key": key, "value": value}
        headers = [(AUTHORIZATION_HEADER, handle.credential.encode("utf-8"))]
        try:
            future = handle.producer.send(topic, key=key, value=payload, headers=headers)
            metadata = future.get(timeout=self._request_timeout_s)
        except KafkaTimeoutError as exc:
            raise SubmitError(f"no acknowledgment from broker: {exc}", timed_out=True) from exc
        except KafkaError as exc:
            raise SubmitError(f"broker rejected write: {exc}") from exc
        return Ack(topic=metadata.topic, partition=metadata.partition, offset=metadata.offset)

    def disconnect(self, handle: KafkaHandle) -> None:
        if handle.closed:
            return
        handle.closed = True
        try:
            handle.producer.flush(timeout=self._request_timeout_s)
        except KafkaError as exc:
            LOGGER.warning("Flush before disconnect failed: %s", exc)
        finally:
            handle.producer.close(timeout=self._request_timeout_s)


def create_producer(
    broker: str,
    client_id: str,
    request_timeout_s: float = REQUEST_TIMEOUT_S_DEFAULT,
) -> KafkaProducer:
    return KafkaProducer(
        bootstrap_servers=broker,
        client_id=client_id,
        acks="all",
        linger_ms=0,
        max_in_flight_requests_per_connection=1,
        request_timeout_ms=int(request_timeout_s * 1000),
        key_serializer=lambda v: v.encode("utf-8") if v else None,
        value_serializer=lambda v: json.dumps(v).encode("utf-8"),
    )


__all__ = [
    "Ack",
    "KafkaHandle",
    "KafkaTransport",
    "Transport",
    "create_producer",
]
