# sofizpay/stellar/history.py
"""Transaction history and single transaction lookup for the tracked asset.

Functions for listing an account's past payments of the asset, searching
them by memo, and resolving one transaction by its hash.
"""

from typing import Optional

from loguru import logger
from stellar_sdk.exceptions import NotFoundError

from sofizpay.config_reader import config, Settings
from sofizpay.domain import AssetFilter, LookupResult, TransactionRecord
from sofizpay.services.interfaces import IHorizonGateway
from .sdk_utils import get_asset_filter

PAYMENT_OPERATION = "payment"
TRANSACTION_FIELDS = (
    "id", "hash", "ledger", "created_at", "source_account", "source_account_sequence",
    "fee_charged", "operation_count", "envelope_xdr", "result_xdr", "result_meta_xdr",
    "fee_meta_xdr", "memo_type", "successful", "paging_token",
)
OPERATION_FIELDS = (
    "id", "type", "type_i", "created_at", "transaction_hash", "source_account",
    "from", "to", "amount", "asset_type", "asset_code", "asset_issuer",
)


class TransactionHistoryFetcher:
    """Lists past payments of the tracked asset for an account."""

    def __init__(
        self,
        gateway: IHorizonGateway,
        asset_filter: Optional[AssetFilter] = None,
        settings: Optional[Settings] = None,
    ):
        self.gateway = gateway
        self.settings = settings or config
        self.asset_filter = asset_filter or get_asset_filter(self.settings)

    async def list_records(
        self,
        account_id: str,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> list[TransactionRecord]:
        """
        Fetch the latest transactions of an account and keep the tracked-asset payments.

        Records come newest first, as Horizon returns them. A transaction whose
        operations can't be fetched is logged and skipped.

        Args:
            account_id: Stellar public key
            limit: Number of transactions to scan (config.history_limit by default)
            cursor: Optional paging token to resume after

        Returns:
            List of TransactionRecord, zero or more per transaction
        """
        if limit is None:
            limit = self.settings.history_limit

        transactions = await self.gateway.list_transactions(account_id, limit=limit, cursor=cursor, desc=True)

        records = []
        for transaction in transactions:
            try:
                operations = await self.gateway.list_operations(transaction["id"])
            except Exception as ex:
                logger.error(f"Error fetching operations for transaction {transaction.get('id')}: {ex}")
                continue

            for operation in operations:
                if operation.get("type") == PAYMENT_OPERATION and self.asset_filter.matches(operation):
                    records.append(TransactionRecord.from_operation(
                        transaction, operation, account_id, processed_at=transaction.get("created_at")
                    ))

        return records

    async def search_by_memo(self, account_id: str, memo: str, limit: Optional[int] = None) -> list[TransactionRecord]:
        """
        Case-insensitive substring search on memos of the account's recent payments.

        Args:
            account_id: Stellar public key
            memo: Text to look for
            limit: Number of transactions to scan

        Returns:
            All matching records, newest first
        """
        needle = memo.lower()
        return [record for record in await self.list_records(account_id, limit=limit)
                if record.memo and needle in record.memo.lower()]


class TransactionLookup:
    """Resolves a single transaction by hash."""

    def __init__(
        self,
        gateway: IHorizonGateway,
        asset_filter: Optional[AssetFilter] = None,
        settings: Optional[Settings] = None,
    ):
        self.gateway = gateway
        self.asset_filter = asset_filter or get_asset_filter(settings)

    async def by_hash(self, tx_hash: str) -> LookupResult:
        """
        Fetch a transaction and classify its payment operations.

        A missing transaction gives found=False with no error, any other failure
        is put into the result's error field. Nothing is raised.
        """
        try:
            transaction_data = await self.gateway.get_transaction(tx_hash)
            operations = await self.gateway.list_operations(tx_hash)
        except NotFoundError:
            return LookupResult(found=False, message="Transaction not found on Stellar network")
        except Exception as ex:
            logger.error(f"Error fetching transaction by hash {tx_hash}: {ex}")
            return LookupResult(
                found=False,
                message="Error while searching for transaction",
                error=str(ex) or type(ex).__name__,
            )

        if not transaction_data:
            return LookupResult(found=False, message="Transaction not found")

        transaction = {key: transaction_data.get(key) for key in TRANSACTION_FIELDS}
        transaction["memo"] = transaction_data.get("memo") or ""

        payment_operations = [
            {key: operation.get(key) for key in OPERATION_FIELDS}
            for operation in operations
            if operation.get("type") == PAYMENT_OPERATION
        ]
        matching_operations = [op for op in payment_operations if self.asset_filter.matches(op)]

        transaction["operations"] = payment_operations
        if payment_operations:
            primary = payment_operations[0]
            transaction.update({
                "amount": primary["amount"],
                "from": primary["from"],
                "to": primary["to"],
                "asset_code": primary["asset_code"],
                "asset_issuer": primary["asset_issuer"],
                "operation_type": primary["type"],
            })

        return LookupResult(
            found=True,
            transaction=transaction,
            payment_operations=payment_operations,
            matching_operations=matching_operations,
            message=(
                f"Transaction found with {len(payment_operations)} payment operations "
                f"({len(matching_operations)} {self.asset_filter.code} payments)"
            ),
        )
