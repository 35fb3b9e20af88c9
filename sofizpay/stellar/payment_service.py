# sofizpay/stellar/payment_service.py
"""Payment operations: build, sign and submit a payment, normalize the outcome."""

import time
from decimal import Decimal
from typing import Optional, Union

from loguru import logger
from stellar_sdk import (
    Account,
    Asset,
    Keypair,
    TransactionBuilder,
    TransactionEnvelope,
)
from stellar_sdk.exceptions import BaseHorizonError
from stellar_sdk.xdr import TransactionResult

from sofizpay.config_reader import config, Settings
from sofizpay.domain import AssetFilter, SubmissionError, SubmissionResult
from sofizpay.domain.errors import require
from sofizpay.services.interfaces import IHorizonGateway
from .sdk_utils import get_asset_filter, get_network_passphrase

MEMO_MAX_BYTES = 28


def truncate_memo(memo: str, max_bytes: int = MEMO_MAX_BYTES) -> tuple[str, bool]:
    """
    Cut a text memo to the Stellar limit.

    The cut is made on bytes (UTF-8) and never splits a character.

    Returns:
        (memo, was_truncated)
    """
    encoded = memo.encode("utf-8")
    if len(encoded) <= max_bytes:
        return memo, False
    return encoded[:max_bytes].decode("utf-8", errors="ignore"), True


def build_payment_transaction(
    source_account: Account,
    destination: str,
    asset: Asset,
    amount: Union[str, Decimal],
    memo_text: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> TransactionEnvelope:
    """
    Build an unsigned single-payment transaction.

    Args:
        source_account: Loaded source account (sequence number)
        destination: Destination public key
        asset: Asset to send
        amount: Amount to send
        memo_text: Optional text memo, must already fit 28 bytes
        settings: Optional settings override

    Returns:
        Unsigned TransactionEnvelope
    """
    settings = settings or config
    builder = TransactionBuilder(
        source_account=source_account,
        network_passphrase=get_network_passphrase(settings),
        base_fee=settings.base_fee,
    )
    builder.append_payment_op(
        destination=destination,
        asset=asset,
        amount=str(amount),
    )
    if memo_text:
        builder.add_text_memo(memo_text)
    builder.set_timeout(settings.transaction_timeout)
    return builder.build()


def decode_result_code(result_xdr: Optional[str]) -> Optional[str]:
    """Decode the transaction result code from a result XDR, None if it can't be read."""
    if not result_xdr:
        return None
    try:
        return TransactionResult.from_xdr(result_xdr).result.code.name
    except Exception as ex:
        logger.debug(f"Could not decode result XDR: {ex}")
        return None


def describe_horizon_error(ex: BaseHorizonError) -> SubmissionError:
    """
    Turn a Horizon rejection into a SubmissionError.

    Horizon puts result codes and XDR blobs under 'extras'.
    """
    extras = getattr(ex, "extras", None) or {}
    result_codes = extras.get("result_codes") or {}
    result_xdr = extras.get("result_xdr")
    envelope_xdr = extras.get("envelope_xdr")

    transaction_code = result_codes.get("transaction") or decode_result_code(result_xdr)
    operation_codes = [str(code) for code in result_codes.get("operations") or []]

    message = getattr(ex, "title", None) or getattr(ex, "detail", None) or str(ex)
    if transaction_code:
        message = f"Transaction error: {transaction_code}"
    if operation_codes:
        message += f" | Operation errors: {', '.join(operation_codes)}"

    if result_codes:
        logger.error(f"Result codes: {result_codes}")
    if envelope_xdr:
        logger.error(f"Transaction XDR: {envelope_xdr}")
    if result_xdr:
        logger.error(f"Result XDR: {result_xdr}")

    return SubmissionError(
        message=message,
        status=getattr(ex, "status", None),
        transaction_code=transaction_code,
        operation_codes=operation_codes,
        result_xdr=result_xdr,
        envelope_xdr=envelope_xdr,
    )


class PaymentSubmitter:
    """Sends payments of the tracked asset."""

    def __init__(
        self,
        gateway: IHorizonGateway,
        asset_filter: Optional[AssetFilter] = None,
        settings: Optional[Settings] = None,
    ):
        self.gateway = gateway
        self.settings = settings or config
        self.asset_filter = asset_filter or get_asset_filter(self.settings)

    async def submit(
        self,
        secret_key: str,
        destination: str,
        amount: Union[str, Decimal],
        memo: Optional[str] = None,
    ) -> SubmissionResult:
        """
        Build, sign and submit a payment.

        Never raises for network, signing or ledger failures: those come back as
        SubmissionResult(success=False). Missing required fields raise
        ValidationError before anything is sent.
        """
        require(secret_key, "Secret key is required.")
        require(destination, "Destination public key is required.")
        require(amount, "Amount is required.")

        start_time = time.monotonic()
        memo_truncated = False
        if memo:
            original_length = len(memo.encode("utf-8"))
            memo, memo_truncated = truncate_memo(memo)
            if memo_truncated:
                logger.warning(f"Memo too long ({original_length} bytes), truncated to: {memo}")

        try:
            keypair = Keypair.from_secret(secret_key)
            source_account = await self.gateway.load_account(keypair.public_key)
            envelope = build_payment_transaction(
                source_account=source_account,
                destination=destination,
                asset=self.asset_filter.to_asset(),
                amount=amount,
                memo_text=memo,
                settings=self.settings,
            )
            envelope.sign(keypair)
            response = await self.gateway.submit_transaction(envelope)
        except BaseHorizonError as ex:
            logger.error(f"Transaction rejected by Horizon: {ex}")
            return SubmissionResult(
                success=False,
                duration=time.monotonic() - start_time,
                error=describe_horizon_error(ex),
                memo=memo,
                memo_truncated=memo_truncated,
            )
        except Exception as ex:
            logger.error(f"Transaction failed: {ex}")
            return SubmissionResult(
                success=False,
                duration=time.monotonic() - start_time,
                error=SubmissionError(message=str(ex) or type(ex).__name__),
                memo=memo,
                memo_truncated=memo_truncated,
            )

        duration = time.monotonic() - start_time
        tx_hash = response.get("hash")
        logger.info(f"Payment of {amount} {self.asset_filter.code} to {destination} submitted: {tx_hash} ({duration:.2f}s)")
        return SubmissionResult(
            success=True,
            duration=duration,
            hash=tx_hash,
            memo=memo,
            memo_truncated=memo_truncated,
        )
