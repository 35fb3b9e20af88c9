# sofizpay/services/cib_service.py
"""CIB (bank card) payment link creation through the SofizPay web API."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Union

from loguru import logger

from sofizpay.config_reader import config, Settings
from sofizpay.web_tools import HTTPSessionManager, WebRequestError, http_session_manager


@dataclass(frozen=True)
class CibTransactionRequest:
    account: str
    amount: Union[Decimal, str]
    full_name: str
    phone: str
    email: str
    memo: Optional[str] = None
    return_url: Optional[str] = None
    redirect: Optional[bool] = None

    def to_params(self) -> dict[str, str]:
        params = {
            "account": self.account,
            "amount": str(self.amount),
            "full_name": self.full_name,
            "phone": self.phone,
            "email": self.email,
        }
        if self.return_url:
            params["return_url"] = self.return_url
        if self.memo:
            params["memo"] = self.memo
        if self.redirect is not None:
            params["redirect"] = "true" if self.redirect else "false"
        return params


class CibServiceError(Exception):
    pass


class CibService:
    """Requests CIB payment transactions from the SofizPay backend."""

    def __init__(self, session_manager: Optional[HTTPSessionManager] = None, settings: Optional[Settings] = None):
        self.session_manager = session_manager or http_session_manager
        self.settings = settings or config

    async def make_transaction(self, request: CibTransactionRequest) -> Any:
        """
        Create a CIB transaction.

        Returns:
            JSON body of the SofizPay response

        Raises:
            CibServiceError: HTTP error status or no response
        """
        try:
            response = await self.session_manager.get_web_request(
                'GET',
                self.settings.cib_url,
                headers={'Accept': 'application/json'},
                params=request.to_params(),
                return_type='json',
            )
        except WebRequestError as ex:
            logger.error(f"Error making CIB transaction: {ex}")
            raise CibServiceError("Network error: No response received from server") from ex

        if response.status >= 400:
            message = f"HTTP Error: {response.status}"
            if isinstance(response.data, dict) and response.data.get("error"):
                message += f" - {response.data['error']}"
            logger.error(f"Error making CIB transaction: {message}")
            raise CibServiceError(message)

        return response.data
