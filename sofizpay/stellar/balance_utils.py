# sofizpay/stellar/balance_utils.py
"""Balance queries for the tracked asset."""

from decimal import Decimal, InvalidOperation
from typing import Optional

from loguru import logger
from stellar_sdk.exceptions import BadRequestError, NotFoundError

from sofizpay.domain import AssetFilter
from sofizpay.services.interfaces import IHorizonGateway
from .sdk_utils import get_asset_filter, is_valid_public_key


class BalanceError(Exception):
    """Balance could not be read; the message is meant for the caller."""
    pass


async def get_asset_balance(
    gateway: IHorizonGateway,
    public_key: str,
    asset_filter: Optional[AssetFilter] = None,
) -> Decimal:
    """
    Get the balance of the tracked asset for an account.

    Args:
        gateway: Horizon gateway
        public_key: Stellar public key
        asset_filter: Asset to look for (config asset by default)

    Returns:
        Balance, Decimal(0) when the account has no trustline to the asset

    Raises:
        BalanceError: Invalid key, unknown account or unreadable account data
    """
    asset_filter = asset_filter or get_asset_filter()

    if not public_key or not isinstance(public_key, str):
        raise BalanceError("Invalid public key: must be a non-empty string")
    if not is_valid_public_key(public_key):
        raise BalanceError("Invalid public key format. Public keys should start with G and be 56 characters long.")

    try:
        account = await gateway.get_account(public_key)
    except NotFoundError as ex:
        raise BalanceError(
            "Account not found or not activated on Stellar network. "
            "Make sure the account has been funded with at least 1 XLM."
        ) from ex
    except BadRequestError as ex:
        raise BalanceError("Bad request. Please check if the public key is valid.") from ex
    except Exception as ex:
        raise BalanceError(f"Failed to load account: {ex}") from ex

    balances = (account or {}).get("balances")
    if not isinstance(balances, list):
        raise BalanceError("Account balances data is invalid")

    for balance in balances:
        if asset_filter.matches(balance):
            try:
                return Decimal(balance["balance"])
            except (InvalidOperation, KeyError, TypeError):
                logger.warning(f"Invalid balance value for {public_key}: {balance.get('balance')}")
                return Decimal(0)

    logger.debug(f"{asset_filter.code} trustline not found for {public_key}")
    return Decimal(0)
