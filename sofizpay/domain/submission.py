# sofizpay/domain/submission.py
"""Payment submission outcome."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class SubmissionError:
    """
    Structured failure detail for a payment submission.

    Result codes and XDR blobs are only present when Horizon rejected the
    transaction; network and signing failures carry just a message.
    """
    message: str
    status: Optional[int] = None
    transaction_code: Optional[str] = None
    operation_codes: list[str] = field(default_factory=list)
    result_xdr: Optional[str] = None
    envelope_xdr: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "status": self.status,
            "transaction_code": self.transaction_code,
            "operation_codes": list(self.operation_codes),
            "result_xdr": self.result_xdr,
            "envelope_xdr": self.envelope_xdr,
        }


@dataclass(frozen=True)
class SubmissionResult:
    success: bool
    duration: float
    hash: Optional[str] = None
    error: Optional[SubmissionError] = None
    memo: Optional[str] = None
    memo_truncated: bool = False
