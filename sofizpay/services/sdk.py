# sofizpay/services/sdk.py
"""
SofizPay SDK facade.

Every public coroutine returns a plain dict envelope with at least 'success'
and 'timestamp'. Missing required input is the one thing that raises
(ValidationError), before any request is made.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from loguru import logger

from sofizpay.config_reader import config, Settings
from sofizpay.domain import AssetFilter, ValidationError
from sofizpay.domain.errors import require
from sofizpay.domain.payment import utc_now_iso
from sofizpay.services.cib_service import CibService, CibServiceError, CibTransactionRequest
from sofizpay.services.interfaces import IHorizonGateway
from sofizpay.services.stream_registry import StreamRegistry, StreamSession
from sofizpay.stellar.balance_utils import BalanceError, get_asset_balance
from sofizpay.stellar.history import TransactionHistoryFetcher, TransactionLookup
from sofizpay.stellar.horizon_gateway import HorizonGateway
from sofizpay.stellar.payment_service import PaymentSubmitter
from sofizpay.stellar.sdk_utils import get_asset_filter, public_key_from_secret
from sofizpay.stellar.signature import verify_signature
from sofizpay.stellar.stream_service import TransactionCallback, TransactionStreamManager
from sofizpay.web_tools import HTTPSessionManager

SDK_VERSION = "1.0.0"
MIN_CHECK_INTERVAL = 5
MAX_CHECK_INTERVAL = 300
DEFAULT_RESULT_LIMIT = 50


def _envelope(success: bool, **fields: Any) -> dict[str, Any]:
    return {"success": success, **fields, "timestamp": utc_now_iso()}


def _positive_amount(amount: Union[Decimal, str, int, float, None]) -> Decimal:
    if amount is None or amount == "":
        raise ValidationError("Valid amount is required.")
    try:
        value = Decimal(str(amount))
    except InvalidOperation as ex:
        raise ValidationError("Valid amount is required.") from ex
    if not value.is_finite() or value <= 0:
        raise ValidationError("Valid amount is required.")
    return value


class SofizPaySDK:
    """
    Send and monitor payments of the tracked Stellar asset.

    Example:
        async with SofizPaySDK() as sdk:
            result = await sdk.submit(secret, destination, "10", memo="order 42")
            await sdk.start_transaction_stream(public_key, print)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        gateway: Optional[IHorizonGateway] = None,
        asset_filter: Optional[AssetFilter] = None,
        session_manager: Optional[HTTPSessionManager] = None,
    ):
        self.settings = settings or config
        self.gateway = gateway or HorizonGateway(self.settings)
        self.asset_filter = asset_filter or get_asset_filter(self.settings)
        self.session_manager = session_manager or HTTPSessionManager(self.settings)

        self.submitter = PaymentSubmitter(self.gateway, self.asset_filter, self.settings)
        self.history = TransactionHistoryFetcher(self.gateway, self.asset_filter, self.settings)
        self.lookup = TransactionLookup(self.gateway, self.asset_filter, self.settings)
        self.cib = CibService(self.session_manager, self.settings)
        self.streams = StreamRegistry()

    async def __aenter__(self) -> "SofizPaySDK":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        """Stop every stream and release the HTTP session."""
        for session in self.streams.clear():
            await session.manager.wait_closed()
        await self.session_manager.close()

    def get_version(self) -> str:
        return SDK_VERSION

    # === Payments ===

    async def submit(
        self,
        secret_key: str,
        destination_public_key: str,
        amount: Union[Decimal, str, int, float],
        memo: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Send a payment of the tracked asset.

        Raises:
            ValidationError: Missing secret key, destination or a non-positive amount
        """
        require(secret_key, "Secret key is required.")
        require(destination_public_key, "Destination public key is required.")
        value = _positive_amount(amount)

        result = await self.submitter.submit(secret_key, destination_public_key, value, memo)
        if result.success:
            return _envelope(
                True,
                transaction_hash=result.hash,
                amount=str(value),
                memo=result.memo,
                memo_truncated=result.memo_truncated,
                destination_public_key=destination_public_key,
                duration=result.duration,
            )
        return _envelope(
            False,
            error=result.error.message if result.error else "Transaction failed",
            error_details=result.error.to_dict() if result.error else None,
            duration=result.duration,
        )

    async def make_cib_transaction(
        self,
        account: str,
        amount: Union[Decimal, str, int, float],
        full_name: str,
        phone: str,
        email: str,
        memo: Optional[str] = None,
        return_url: Optional[str] = None,
        redirect: Optional[bool] = None,
    ) -> dict[str, Any]:
        """
        Create a CIB (bank card) payment through SofizPay.

        Raises:
            ValidationError: Any of account, amount, full_name, phone, email missing
        """
        require(account, "Account is required.")
        value = _positive_amount(amount)
        require(full_name, "Full name is required.")
        require(phone, "Phone number is required.")
        require(email, "Email is required.")

        request = CibTransactionRequest(
            account=account, amount=value, full_name=full_name, phone=phone, email=email,
            memo=memo, return_url=return_url, redirect=redirect,
        )
        try:
            data = await self.cib.make_transaction(request)
        except CibServiceError as ex:
            return _envelope(False, error=str(ex), account=account, amount=str(value))
        return _envelope(True, data=data)

    # === Queries ===

    async def get_transactions(
        self,
        public_key: str,
        limit: int = DEFAULT_RESULT_LIMIT,
        cursor: Optional[str] = None,
    ) -> dict[str, Any]:
        require(public_key, "Public key is required.")

        try:
            records = await self.history.list_records(public_key, limit=limit, cursor=cursor)
        except Exception as ex:
            logger.error(f"Error fetching transactions for {public_key}: {ex}")
            return _envelope(False, error=str(ex), transactions=[])

        transactions = [record.to_dict() for record in records]
        return _envelope(
            True,
            transactions=transactions,
            total=len(transactions),
            public_key=public_key,
            message=f"Fetched all transactions ({len(transactions)} transactions)",
        )

    async def search_transactions_by_memo(
        self,
        public_key: str,
        memo: str,
        limit: int = DEFAULT_RESULT_LIMIT,
    ) -> dict[str, Any]:
        require(public_key, "Public key is required.")
        require(memo, "Memo is required for search.")

        try:
            found = await self.history.search_by_memo(public_key, memo)
        except Exception as ex:
            logger.error(f"Error searching transactions by memo for {public_key}: {ex}")
            return _envelope(False, error=str(ex), transactions=[], search_memo=memo)

        transactions = [record.to_dict() for record in found[:limit]]
        return _envelope(
            True,
            transactions=transactions,
            total=len(transactions),
            total_found=len(found),
            search_memo=memo,
            public_key=public_key,
            message=f'Found {len(found)} transactions containing "{memo}"',
        )

    async def get_transaction_by_hash(self, transaction_hash: str) -> dict[str, Any]:
        """A hash that doesn't exist is success=True, found=False."""
        require(transaction_hash, "Transaction hash is required.")

        result = await self.lookup.by_hash(transaction_hash)
        if result.found:
            return _envelope(
                True,
                found=True,
                transaction=result.transaction,
                hash=transaction_hash,
                has_matching_operations=result.has_matching_operations,
                matching_operations_count=len(result.matching_operations),
                matching_operations=result.matching_operations,
                payment_operations_count=len(result.payment_operations),
                message=result.message,
            )
        if result.error:
            return _envelope(
                False, found=False, transaction=None, hash=transaction_hash,
                message=result.message, error=result.error,
            )
        return _envelope(True, found=False, transaction=None, hash=transaction_hash, message=result.message)

    async def get_balance(self, public_key: str) -> dict[str, Any]:
        require(public_key, "Public key is required.")

        try:
            balance = await get_asset_balance(self.gateway, public_key, self.asset_filter)
        except BalanceError as ex:
            logger.error(f"Error fetching {self.asset_filter.code} balance for {public_key}: {ex}")
            return _envelope(False, error=str(ex), balance=Decimal(0), public_key=public_key)

        return _envelope(
            True,
            balance=balance,
            public_key=public_key,
            asset_code=self.asset_filter.code,
            asset_issuer=self.asset_filter.issuer,
        )

    async def get_public_key(self, secret_key: str) -> dict[str, Any]:
        require(secret_key, "Secret key is required.")

        try:
            public_key = public_key_from_secret(secret_key)
        except ValueError as ex:
            logger.error(f"Error extracting public key: {ex}")
            return _envelope(False, error=str(ex), public_key=None)
        return _envelope(True, public_key=public_key)

    def verify_signature(self, message: str, signature_url_safe: str) -> bool:
        """Boolean only, never raises."""
        return verify_signature(message, signature_url_safe, self.settings.signature_public_key)

    # === Streams ===

    async def start_transaction_stream(
        self,
        public_key: str,
        on_transaction: TransactionCallback,
        from_now: bool = True,
        cursor: str = "now",
        check_interval: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Start delivering new payments of public_key to on_transaction.

        With from_now=False the latest payments are replayed first (historical
        records, then a HistoryComplete marker).

        Raises:
            ValidationError: Missing key, non-callable callback or check_interval outside 5-300 s
        """
        require(public_key, "Public key is required.")
        if not callable(on_transaction):
            raise ValidationError("Callback function is required.")
        if check_interval is None:
            check_interval = self.settings.stream_check_interval
        if (
            isinstance(check_interval, bool)
            or not isinstance(check_interval, (int, float))
            or not MIN_CHECK_INTERVAL <= check_interval <= MAX_CHECK_INTERVAL
        ):
            raise ValidationError(
                f"Check interval must be between {MIN_CHECK_INTERVAL} and {MAX_CHECK_INTERVAL} seconds."
            )

        if public_key in self.streams:
            return _envelope(False, error="Transaction stream already active for this account", public_key=public_key)

        manager = TransactionStreamManager(
            account_id=public_key,
            on_transaction=on_transaction,
            gateway=self.gateway,
            asset_filter=self.asset_filter,
            settings=self.settings,
            cursor=cursor,
            check_interval=check_interval,
            include_history=not from_now,
            history_fetcher=self.history,
            session_manager=self.session_manager,
        )
        session = StreamSession(
            account_id=public_key, manager=manager, check_interval=check_interval, from_now=from_now,
        )
        try:
            self.streams.add(session)
            manager.start()
        except Exception as ex:
            self.streams.remove(public_key)
            logger.error(f"Error starting transaction stream for {public_key}: {ex}")
            return _envelope(False, error=str(ex), public_key=public_key)

        mode = "from now" if from_now else "with history"
        return _envelope(
            True,
            message=f"Transaction stream started successfully ({mode}, checking every {check_interval}s)",
            public_key=public_key,
            from_now=from_now,
            check_interval=check_interval,
        )

    async def stop_transaction_stream(self, public_key: str) -> dict[str, Any]:
        require(public_key, "Public key is required.")

        session = self.streams.remove(public_key)
        if session is None:
            return _envelope(False, error="No active transaction stream found for this account", public_key=public_key)

        return _envelope(
            True,
            message="Transaction stream stopped successfully",
            public_key=public_key,
            stream_info=session.to_dict(),
        )

    async def get_stream_status(self, public_key: str) -> dict[str, Any]:
        require(public_key, "Public key is required.")

        session = self.streams.get(public_key)
        return _envelope(
            True,
            is_active=session is not None and session.is_active,
            public_key=public_key,
            stream_info=session.to_dict() if session else None,
        )
