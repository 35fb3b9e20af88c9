# sofizpay/stellar/__init__.py
"""
Stellar utilities for the tracked asset.

Organized by responsibility:

- sdk_utils: Network selection, server factory, keypairs
- horizon_gateway: Horizon queries and submission (IHorizonGateway)
- payment_service: Payment building, memo truncation, submission
- balance_utils: Balance of the tracked asset
- history: Transaction history, memo search, lookup by hash
- stream_service: Live transaction stream with reconnects and backfill
- signature: SofizPay callback signature verification
"""

# SDK utilities
from .sdk_utils import (
    get_asset_filter,
    get_horizon_url,
    get_network_passphrase,
    get_server_async,
    is_valid_public_key,
    public_key_from_secret,
)

# Horizon access
from .horizon_gateway import HorizonGateway

# Payments
from .payment_service import (
    MEMO_MAX_BYTES,
    PaymentSubmitter,
    build_payment_transaction,
    describe_horizon_error,
    truncate_memo,
)

# Balances
from .balance_utils import BalanceError, get_asset_balance

# History
from .history import TransactionHistoryFetcher, TransactionLookup

# Streaming
from .stream_service import StreamState, TransactionStreamManager

# Signatures
from .signature import verify_signature

__all__ = [
    "get_asset_filter",
    "get_horizon_url",
    "get_network_passphrase",
    "get_server_async",
    "is_valid_public_key",
    "public_key_from_secret",
    "HorizonGateway",
    "MEMO_MAX_BYTES",
    "PaymentSubmitter",
    "build_payment_transaction",
    "describe_horizon_error",
    "truncate_memo",
    "BalanceError",
    "get_asset_balance",
    "TransactionHistoryFetcher",
    "TransactionLookup",
    "StreamState",
    "TransactionStreamManager",
    "verify_signature",
]
