# sofizpay/domain/payment.py
"""Payment domain models: asset filter, transaction records and lookup results."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from stellar_sdk import Asset


class Direction(Enum):
    """Direction of a payment relative to the queried account."""
    SENT = "sent"
    RECEIVED = "received"


@dataclass(frozen=True)
class AssetFilter:
    """The (code, issuer) pair every transaction listing is scoped to."""
    code: str
    issuer: str

    def matches(self, operation: dict) -> bool:
        """Check a Horizon operation record against the tracked asset."""
        return (
            operation.get("asset_code") == self.code
            and operation.get("asset_issuer") == self.issuer
        )

    def to_asset(self) -> Asset:
        return Asset(self.code, self.issuer)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class TransactionRecord:
    """
    One payment of the tracked asset, as seen from account_id.

    A Horizon transaction with several matching operations yields one record
    per operation, all sharing the same hash.
    """
    hash: str
    amount: str
    source_account: str
    destination: str
    asset_code: str
    asset_issuer: str
    account_id: str
    memo: str = ""
    created_at: Optional[str] = None
    processed_at: Optional[str] = None
    paging_token: Optional[str] = None
    historical: bool = False
    status: str = "completed"

    @property
    def direction(self) -> Direction:
        if self.source_account == self.account_id:
            return Direction.SENT
        return Direction.RECEIVED

    @classmethod
    def from_operation(
        cls,
        transaction: dict,
        operation: dict,
        account_id: str,
        historical: bool = False,
        processed_at: Optional[str] = None,
    ) -> "TransactionRecord":
        """Build a record from a Horizon transaction and one of its payment operations."""
        return cls(
            hash=transaction.get("hash") or transaction.get("id", ""),
            amount=str(operation.get("amount") or ""),
            source_account=operation.get("from") or operation.get("source_account") or "",
            destination=operation.get("to") or operation.get("destination") or "",
            asset_code=operation.get("asset_code") or "",
            asset_issuer=operation.get("asset_issuer") or "",
            account_id=account_id,
            memo=transaction.get("memo") or "",
            created_at=transaction.get("created_at"),
            processed_at=processed_at or utc_now_iso(),
            paging_token=transaction.get("paging_token"),
            historical=historical,
        )

    def with_historical(self, historical: bool = True) -> "TransactionRecord":
        """Return a copy flagged as replayed history."""
        return TransactionRecord(
            hash=self.hash,
            amount=self.amount,
            source_account=self.source_account,
            destination=self.destination,
            asset_code=self.asset_code,
            asset_issuer=self.asset_issuer,
            account_id=self.account_id,
            memo=self.memo,
            created_at=self.created_at,
            processed_at=self.created_at if historical else self.processed_at,
            paging_token=self.paging_token,
            historical=historical,
            status=self.status,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.hash,
            "hash": self.hash,
            "amount": self.amount,
            "memo": self.memo,
            "type": self.direction.value,
            "from": self.source_account,
            "to": self.destination,
            "asset_code": self.asset_code,
            "asset_issuer": self.asset_issuer,
            "status": self.status,
            "created_at": self.created_at,
            "processed_at": self.processed_at,
            "paging_token": self.paging_token,
            "is_historical": self.historical,
        }


@dataclass(frozen=True)
class HistoryComplete:
    """Marker delivered once a stream backfill has been replayed."""
    historical_count: int
    message: str = ""
    id: str = field(default="HISTORY_COMPLETE", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "is_history_complete": True,
            "historical_count": self.historical_count,
            "message": self.message,
        }


@dataclass(frozen=True)
class LookupResult:
    """Outcome of resolving a single transaction by hash."""
    found: bool
    message: str
    transaction: Optional[dict] = None
    payment_operations: list[dict] = field(default_factory=list)
    matching_operations: list[dict] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def has_matching_operations(self) -> bool:
        return len(self.matching_operations) > 0
