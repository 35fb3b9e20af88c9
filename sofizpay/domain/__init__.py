# sofizpay/domain/__init__.py
"""Domain models - plain data, no I/O."""

from .errors import ValidationError
from .payment import (
    AssetFilter,
    Direction,
    HistoryComplete,
    LookupResult,
    TransactionRecord,
)
from .submission import SubmissionError, SubmissionResult

__all__ = [
    "ValidationError",
    "AssetFilter",
    "Direction",
    "HistoryComplete",
    "LookupResult",
    "TransactionRecord",
    "SubmissionError",
    "SubmissionResult",
]
