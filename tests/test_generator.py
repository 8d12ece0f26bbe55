import pytest

from txbench.generator import Transaction, TransactionGenerator


def test_values_are_decimal_indices_in_order():
    generator = TransactionGenerator("ns")
    produced = list(generator.iter_transactions(5))
    assert [index for index, _ in produced] == [0, 1, 2, 3, 4]
    assert [tx.value for _, tx in produced] == ["0", "1", "2", "3", "4"]
    assert {tx.key for _, tx in produced} == {"ns"}


def test_zero_count_yields_nothing():
    assert list(TransactionGenerator("ns").iter_transactions(0)) == []


def test_large_index_is_not_truncated():
    # A 10-byte buffer would have cut this value short.
    index = 12_345_678_901_234
    tx = TransactionGenerator("prellblock").transaction(index)
    assert tx.value == "12345678901234"
    assert int(tx.value) == index


def test_negative_index_is_rejected():
    with pytest.raises(ValueError):
        TransactionGenerator("ns").transaction(-1)


def test_transaction_is_immutable():
    tx = Transaction(key="ns", value="1")
    with pytest.raises(AttributeError):
        tx.value = "2"
    assert tx.payload_bytes == 3
