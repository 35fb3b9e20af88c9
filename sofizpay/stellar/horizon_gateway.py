# sofizpay/stellar/horizon_gateway.py
"""Horizon access through stellar_sdk ServerAsync."""

from typing import AsyncIterator, Optional

from stellar_sdk import Account, TransactionEnvelope

from sofizpay.config_reader import Settings
from .sdk_utils import get_server_async

MAX_PAGE_SIZE = 200


class HorizonGateway:
    """
    IHorizonGateway implementation.

    A fresh ServerAsync is opened per call, the stream keeps its own for as
    long as the subscription lives.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings

    async def load_account(self, account_id: str) -> Account:
        async with get_server_async(self.settings) as server:
            return await server.load_account(account_id)

    async def get_account(self, account_id: str) -> dict:
        async with get_server_async(self.settings) as server:
            return await server.accounts().account_id(account_id).call()

    async def list_transactions(
        self,
        account_id: str,
        limit: int = MAX_PAGE_SIZE,
        cursor: Optional[str] = None,
        desc: bool = True,
    ) -> list[dict]:
        async with get_server_async(self.settings) as server:
            builder = server.transactions().for_account(account_id).order(desc=desc).limit(limit)
            if cursor:
                builder = builder.cursor(cursor)
            page = await builder.call()
        return page["_embedded"]["records"]

    async def get_transaction(self, tx_hash: str) -> dict:
        async with get_server_async(self.settings) as server:
            return await server.transactions().transaction(tx_hash).call()

    async def list_operations(self, tx_hash: str) -> list[dict]:
        async with get_server_async(self.settings) as server:
            page = await server.operations().for_transaction(tx_hash).limit(MAX_PAGE_SIZE).call()
        return page["_embedded"]["records"]

    async def submit_transaction(self, envelope: TransactionEnvelope) -> dict:
        async with get_server_async(self.settings) as server:
            return await server.submit_transaction(envelope)

    async def stream_transactions(self, account_id: str, cursor: str = "now") -> AsyncIterator[dict]:
        async with get_server_async(self.settings) as server:
            async for record in server.transactions().for_account(account_id).cursor(cursor).stream():
                yield record
