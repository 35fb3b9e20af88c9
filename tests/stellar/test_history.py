# tests/stellar/test_history.py
"""Tests for TransactionHistoryFetcher and TransactionLookup."""

import pytest
from stellar_sdk import Keypair

from sofizpay.domain import AssetFilter
from sofizpay.stellar.history import TransactionHistoryFetcher, TransactionLookup
from tests.fakes import DZT_CODE, DZT_ISSUER, OTHER_ISSUER, payment_op, transaction


@pytest.fixture
def account():
    return Keypair.random().public_key


@pytest.fixture
def history(gateway, settings):
    return TransactionHistoryFetcher(gateway, AssetFilter(DZT_CODE, DZT_ISSUER), settings)


@pytest.fixture
def lookup(gateway, settings):
    return TransactionLookup(gateway, AssetFilter(DZT_CODE, DZT_ISSUER), settings)


class TestHistoryFetcher:
    @pytest.mark.asyncio
    async def test_keeps_only_tracked_asset_payments(self, gateway, history, account):
        other = Keypair.random().public_key
        gateway.add_transaction(account, transaction("t1", created_at="2024-01-03T00:00:00Z"), [
            payment_op(other, account, "10", tx_hash="t1"),
        ])
        gateway.add_transaction(account, transaction("t2"), [
            payment_op(other, account, "99", asset_code="USDC", tx_hash="t2"),
            payment_op(other, account, "5", asset_issuer=OTHER_ISSUER, tx_hash="t2"),
        ])
        gateway.add_transaction(account, transaction("t3"), [
            payment_op(account, other, "3", tx_hash="t3"),
            payment_op(account, other, "7", op_type="create_account", tx_hash="t3"),
        ])

        records = await history.list_records(account)

        assert [(r.hash, r.amount) for r in records] == [("t1", "10"), ("t3", "3")]
        assert records[0].to_dict()["type"] == "received"
        assert records[1].to_dict()["type"] == "sent"
        assert records[0].processed_at == "2024-01-03T00:00:00Z"

    @pytest.mark.asyncio
    async def test_one_record_per_matching_operation(self, gateway, history, account):
        other = Keypair.random().public_key
        gateway.add_transaction(account, transaction("multi"), [
            payment_op(other, account, "1", tx_hash="multi"),
            payment_op(other, account, "2", tx_hash="multi"),
        ])

        records = await history.list_records(account)

        assert [r.amount for r in records] == ["1", "2"]
        assert {r.hash for r in records} == {"multi"}

    @pytest.mark.asyncio
    async def test_operation_fetch_failure_skips_transaction(self, gateway, history, account):
        other = Keypair.random().public_key
        gateway.add_transaction(account, transaction("bad"), [payment_op(other, account, "1", tx_hash="bad")])
        gateway.add_transaction(account, transaction("good"), [payment_op(other, account, "2", tx_hash="good")])
        gateway.operation_errors["bad"] = RuntimeError("boom")

        records = await history.list_records(account)

        assert [r.hash for r in records] == ["good"]

    @pytest.mark.asyncio
    async def test_limit_and_cursor_are_forwarded(self, gateway, history, account):
        await history.list_records(account, limit=10, cursor="123")

        assert gateway.list_calls == [{"account_id": account, "limit": 10, "cursor": "123", "desc": True}]

    @pytest.mark.asyncio
    async def test_default_limit_from_settings(self, gateway, history, account, settings):
        await history.list_records(account)

        assert gateway.list_calls[0]["limit"] == settings.history_limit

    @pytest.mark.asyncio
    async def test_empty_account(self, history, account):
        assert await history.list_records(account) == []

    @pytest.mark.asyncio
    async def test_search_by_memo_is_case_insensitive(self, gateway, history, account):
        other = Keypair.random().public_key
        gateway.add_transaction(account, transaction("a", memo="Order-42"), [payment_op(other, account, "1", tx_hash="a")])
        gateway.add_transaction(account, transaction("b", memo="refund"), [payment_op(other, account, "1", tx_hash="b")])
        gateway.add_transaction(account, transaction("c"), [payment_op(other, account, "1", tx_hash="c")])

        found = await history.search_by_memo(account, "order")

        assert [r.hash for r in found] == ["a"]


class TestLookup:
    @pytest.mark.asyncio
    async def test_found_with_matching_operations(self, gateway, lookup, account):
        other = Keypair.random().public_key
        gateway.add_transaction(account, transaction("h1", memo="pay"), [
            payment_op(other, account, "4", tx_hash="h1"),
            payment_op(other, account, "8", asset_code="USDC", tx_hash="h1"),
        ])

        result = await lookup.by_hash("h1")

        assert result.found is True
        assert result.error is None
        assert len(result.payment_operations) == 2
        assert len(result.matching_operations) == 1
        assert result.has_matching_operations is True
        assert result.transaction["memo"] == "pay"
        assert result.transaction["amount"] == "4"
        assert result.transaction["from"] == other
        assert result.message == "Transaction found with 2 payment operations (1 DZT payments)"

    @pytest.mark.asyncio
    async def test_found_without_payments(self, gateway, lookup, account):
        gateway.add_transaction(account, transaction("h2"), [
            payment_op(account, "GX", "1", op_type="create_account", tx_hash="h2"),
        ])

        result = await lookup.by_hash("h2")

        assert result.found is True
        assert result.has_matching_operations is False
        assert "amount" not in result.transaction

    @pytest.mark.asyncio
    async def test_not_found(self, lookup):
        result = await lookup.by_hash("missing")

        assert result.found is False
        assert result.error is None
        assert result.message == "Transaction not found on Stellar network"

    @pytest.mark.asyncio
    async def test_other_error(self, gateway, lookup):
        gateway.transaction_error = RuntimeError("horizon down")

        result = await lookup.by_hash("h1")

        assert result.found is False
        assert result.error == "horizon down"
        assert result.message == "Error while searching for transaction"
