# sofizpay/services/interfaces/horizon.py
"""Horizon gateway interface definition."""

from typing import AsyncIterator, Optional, Protocol

from stellar_sdk import Account, TransactionEnvelope


class IHorizonGateway(Protocol):
    """Interface for the Horizon queries and submissions the SDK relies on."""

    async def load_account(self, account_id: str) -> Account:
        """Load account with current sequence number."""
        ...

    async def get_account(self, account_id: str) -> dict:
        """Get raw account record (balances, signers...)."""
        ...

    async def list_transactions(
        self,
        account_id: str,
        limit: int = 200,
        cursor: Optional[str] = None,
        desc: bool = True,
    ) -> list[dict]:
        """List transaction records for account."""
        ...

    async def get_transaction(self, tx_hash: str) -> dict:
        """Get a single transaction record by hash."""
        ...

    async def list_operations(self, tx_hash: str) -> list[dict]:
        """List operation records of a transaction."""
        ...

    async def submit_transaction(self, envelope: TransactionEnvelope) -> dict:
        """Submit signed transaction."""
        ...

    def stream_transactions(self, account_id: str, cursor: str = "now") -> AsyncIterator[dict]:
        """Open an SSE subscription to new transactions of account."""
        ...
