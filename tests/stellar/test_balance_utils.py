# tests/stellar/test_balance_utils.py
from decimal import Decimal

import pytest
from stellar_sdk import Keypair
from stellar_sdk.exceptions import BadRequestError

from sofizpay.domain import AssetFilter
from sofizpay.stellar.balance_utils import BalanceError, get_asset_balance
from tests.fakes import DZT_CODE, DZT_ISSUER, OTHER_ISSUER, horizon_response

DZT = AssetFilter(DZT_CODE, DZT_ISSUER)


def _account(account_id, balances):
    return {"id": account_id, "account_id": account_id, "balances": balances}


@pytest.mark.asyncio
async def test_returns_tracked_asset_balance(gateway):
    key = Keypair.random().public_key
    gateway.accounts[key] = _account(key, [
        {"asset_type": "native", "balance": "100.0"},
        {"asset_type": "credit_alphanum4", "asset_code": "DZT", "asset_issuer": OTHER_ISSUER, "balance": "7.0"},
        {"asset_type": "credit_alphanum4", "asset_code": "DZT", "asset_issuer": DZT_ISSUER, "balance": "42.5000000"},
    ])

    assert await get_asset_balance(gateway, key, DZT) == Decimal("42.5")


@pytest.mark.asyncio
async def test_no_trustline_is_zero(gateway):
    key = Keypair.random().public_key
    gateway.accounts[key] = _account(key, [{"asset_type": "native", "balance": "100.0"}])

    assert await get_asset_balance(gateway, key, DZT) == Decimal(0)


@pytest.mark.asyncio
async def test_unknown_account(gateway):
    with pytest.raises(BalanceError, match="not activated"):
        await get_asset_balance(gateway, Keypair.random().public_key, DZT)


@pytest.mark.asyncio
async def test_bad_request(gateway):
    key = Keypair.random().public_key

    async def get_account(account_id):
        raise BadRequestError(horizon_response(400))

    gateway.get_account = get_account
    with pytest.raises(BalanceError, match="Bad request"):
        await get_asset_balance(gateway, key, DZT)


@pytest.mark.asyncio
async def test_invalid_key_is_rejected_before_request(gateway):
    with pytest.raises(BalanceError, match="Invalid public key format"):
        await get_asset_balance(gateway, "GNOTAKEY", DZT)


@pytest.mark.asyncio
async def test_malformed_balances(gateway):
    key = Keypair.random().public_key
    gateway.accounts[key] = {"id": key}

    with pytest.raises(BalanceError, match="invalid"):
        await get_asset_balance(gateway, key, DZT)
