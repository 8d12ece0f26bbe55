from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class Transaction:
    """Single key/value write request."""

    key: str
    value: str

    @property
    def payload_bytes(self) -> int:
        return len(self.key.encode("utf-8")) + len(self.value.encode("utf-8"))


class TransactionGenerator:
    """Deterministic source of transactions: the i-th value is ``str(i)``."""

    def __init__(self, namespace: str) -> None:
        self._namespace = namespace

    @property
    def namespace(self) -> str:
        return self._namespace

    def transaction(self, index: int) -> Transaction:
        if index < 0:
            raise ValueError(f"transaction index must be >= 0, got {index}")
        return Transaction(key=self._namespace, value=str(index))

    def iter_transactions(self, count: int) -> Iterator[tuple[int, Transaction]]:
        for index in range(count):
            yield index, self.transaction(index)


__all__ = ["Transaction", "TransactionGenerator"]
