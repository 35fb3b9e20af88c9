# sofizpay/stellar/stream_service.py
"""
Live transaction stream for one account.

Subscribes to Horizon's transaction stream, expands every new transaction into
payment records of the tracked asset and hands them to a callback. The
subscription is restarted after errors until the stream is closed.
"""

import asyncio
import inspect
from enum import Enum
from functools import partial
from typing import Any, Awaitable, Callable, Optional, Union

from loguru import logger
from stellar_sdk.exceptions import BaseHorizonError, StreamClientError

from sofizpay.config_reader import config, Settings
from sofizpay.domain import AssetFilter, HistoryComplete, TransactionRecord
from sofizpay.domain.payment import utc_now_iso
from sofizpay.loguru_tools import log_errors_async
from sofizpay.services.interfaces import IHorizonGateway
from sofizpay.web_tools import HTTPSessionManager, RATE_LIMIT_STATUS, fetch_with_retry
from .history import TransactionHistoryFetcher
from .sdk_utils import get_asset_filter, get_horizon_url

StreamItem = Union[TransactionRecord, HistoryComplete]
TransactionCallback = Callable[[StreamItem], Any]
Fetcher = Callable[[str], Awaitable[Any]]


class StreamState(Enum):
    """Lifecycle of a transaction stream."""
    IDLE = "idle"
    STREAMING = "streaming"
    RECONNECTING = "reconnecting"


class TransactionStreamManager:
    """
    Owns the subscription task of one account.

    IDLE -> STREAMING on start(). STREAMING -> RECONNECTING when the
    subscription fails or is closed by the server, back to STREAMING after
    check_interval seconds. Any state -> IDLE on close().

    close() never interrupts an event that is being processed: it stops
    delivery, and the loop leaves as soon as that event is done. While the
    task is loading history, waiting for events or sleeping it is cancelled
    right away.
    """

    def __init__(
        self,
        account_id: str,
        on_transaction: TransactionCallback,
        gateway: IHorizonGateway,
        asset_filter: Optional[AssetFilter] = None,
        settings: Optional[Settings] = None,
        cursor: str = "now",
        check_interval: Optional[float] = None,
        include_history: bool = False,
        history_fetcher: Optional[TransactionHistoryFetcher] = None,
        fetcher: Optional[Fetcher] = None,
        session_manager: Optional[HTTPSessionManager] = None,
    ):
        self.account_id = account_id
        self.on_transaction = on_transaction
        self.gateway = gateway
        self.settings = settings or config
        self.asset_filter = asset_filter or get_asset_filter(self.settings)
        self.cursor = cursor
        self.check_interval = self.settings.stream_check_interval if check_interval is None else check_interval
        self.include_history = include_history
        self.history_fetcher = history_fetcher or TransactionHistoryFetcher(
            gateway, self.asset_filter, self.settings
        )
        self.fetch = fetcher or partial(fetch_with_retry, session_manager=session_manager)
        self.horizon_url = get_horizon_url(self.settings)

        self.state = StreamState.IDLE
        self.reconnect_count = 0
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self._processing = False

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._closed

    def start(self) -> None:
        """Schedule the subscription task. Must be called from a running event loop."""
        if self._task is not None:
            raise RuntimeError(f"Stream for {self.account_id} was already started")
        self.state = StreamState.STREAMING
        self._task = asyncio.create_task(self._run(), name=f"sofizpay-stream-{self.account_id}")
        logger.info(f"Transaction stream started for {self.account_id} (cursor={self.cursor})")

    def close(self) -> None:
        """Stop delivery and tear down the subscription. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self.state = StreamState.IDLE
        if self._task is not None and not self._task.done() and not self._processing:
            self._task.cancel()
        logger.info(f"Transaction stream closed for {self.account_id}")

    async def wait_closed(self) -> None:
        """Wait until the subscription task has finished."""
        if self._task is None or self._task.done():
            return
        await asyncio.wait({self._task})

    # === Subscription loop ===

    async def _run(self) -> None:
        try:
            if self.include_history:
                await self._backfill()

            while not self._closed:
                self.state = StreamState.STREAMING
                await self._consume()
                if self._closed:
                    break
                self.state = StreamState.RECONNECTING
                self.reconnect_count += 1
                logger.warning(f"Reconnecting transaction stream for {self.account_id} in {self.check_interval}s")
                await asyncio.sleep(self.check_interval)
        finally:
            self.state = StreamState.IDLE

    async def _consume(self) -> None:
        """Read the subscription until it fails or ends."""
        stream = None
        try:
            stream = self.gateway.stream_transactions(self.account_id, self.cursor)
            async for raw_transaction in stream:
                if self._closed:
                    break
                self._processing = True
                try:
                    await self._handle_event(raw_transaction)
                finally:
                    self._processing = False
                if raw_transaction.get("paging_token"):
                    self.cursor = raw_transaction["paging_token"]
                if self._closed:
                    break
            else:
                logger.warning(f"Transaction stream for {self.account_id} closed by server")
        except BaseHorizonError as ex:
            if ex.status == RATE_LIMIT_STATUS:
                logger.warning(f"Too many requests on stream for {self.account_id}")
            else:
                logger.error(f"Horizon error in transaction stream for {self.account_id}: {ex}")
        except StreamClientError as ex:
            logger.warning(f"Stream connection failed for {self.account_id}: {ex}")
        except ConnectionError as ex:
            # non-200 SSE answers, e.g. 429 rate limiting
            logger.warning(f"Stream refused for {self.account_id}: {ex}")
        except Exception as ex:
            logger.error(f"Error in transaction stream for {self.account_id}: {ex}")
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    @log_errors_async("Error processing stream event")
    async def _handle_event(self, raw_transaction: dict) -> None:
        """Expand one streamed transaction into tracked-asset records."""
        tx_id = raw_transaction["id"]
        transaction_data, operations_data = await asyncio.gather(
            self.fetch(f"{self.horizon_url}/transactions/{tx_id}"),
            self.fetch(f"{self.horizon_url}/transactions/{tx_id}/operations?limit=200"),
        )

        operations = [
            operation for operation in operations_data["_embedded"]["records"]
            if self.asset_filter.matches(operation) and operation.get("amount")
        ]
        processed_at = utc_now_iso()
        for operation in operations:
            await self._deliver(TransactionRecord.from_operation(
                transaction_data, operation, self.account_id, processed_at=processed_at
            ))

    async def _backfill(self) -> None:
        """Replay recent payments oldest-first, then send the HistoryComplete marker."""
        try:
            records = await self.history_fetcher.list_records(
                self.account_id, limit=self.settings.history_limit
            )
        except Exception as ex:
            logger.warning(f"Could not load previous transactions for {self.account_id}: {ex}")
            return

        for record in reversed(records):
            if self._closed:
                return
            self._processing = True
            try:
                await self._deliver(record.with_historical())
            finally:
                self._processing = False
            await asyncio.sleep(self.settings.history_delivery_pause)

        await self._deliver(HistoryComplete(
            historical_count=len(records),
            message=f"Loaded {len(records)} historical transactions, now listening for new transactions...",
        ))

    async def _deliver(self, item: StreamItem) -> None:
        if self._closed:
            return
        try:
            result = self.on_transaction(item)
            if inspect.isawaitable(result):
                await result
        except Exception as ex:
            logger.error(f"Transaction callback failed for {self.account_id}: {ex}")
