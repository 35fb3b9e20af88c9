# sofizpay/web_tools.py
"""HTTP session handling and the rate-limit aware GET used for raw Horizon fetches."""

import aiohttp
import asyncio
import json as json_module
import time
from dataclasses import dataclass
from typing import Optional, Dict, Any, Union

from loguru import logger

from sofizpay.config_reader import config, Settings

RATE_LIMIT_STATUS = 429


@dataclass
class WebResponse:
    status: int  # HTTP status code
    data: Union[Dict[str, Any], str]  # JSON or text body
    headers: Optional[Dict[str, str]] = None
    elapsed_time: Optional[float] = None  # seconds


class WebRequestError(Exception):
    """Transport-level failure: no HTTP response was received."""
    pass


class HttpRequestError(Exception):
    """The server answered with an error status."""

    def __init__(self, status: int, data: Any = None, url: Optional[str] = None):
        self.status = status
        self.data = data
        self.url = url
        super().__init__(f"HTTP {status} for {url}")


class HTTPSessionManager:
    """
    One aiohttp session shared by raw Horizon fetches and CIB calls.

    The session is recycled once it is older than settings.http_session_max_age.
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or config
        self.max_age = settings.http_session_max_age
        self.timeout = aiohttp.ClientTimeout(total=settings.http_timeout)
        self.session: Optional[aiohttp.ClientSession] = None
        self.created_at: float = 0.0
        self._lock = asyncio.Lock()

    def _session_expired(self, now: float) -> bool:
        return self.session is None or self.session.closed or now - self.created_at > self.max_age

    async def get_session(self) -> aiohttp.ClientSession:
        async with self._lock:
            now = time.monotonic()
            if self._session_expired(now):
                if self.session is not None and not self.session.closed:
                    logger.debug(f"Recycling HTTP session after {now - self.created_at:.0f}s")
                    await self.session.close()
                self.session = aiohttp.ClientSession(timeout=self.timeout)
                self.created_at = now
            return self.session

    async def close(self):
        """Close the shared session. The next request opens a new one."""
        async with self._lock:
            session, self.session = self.session, None
            if session is not None and not session.closed:
                await session.close()
                logger.debug("HTTP session closed")

    async def get_web_request(
            self,
            method: str,
            url: str,
            json: Optional[Dict[str, Any]] = None,
            headers: Optional[Dict[str, str]] = None,
            params: Optional[Dict[str, str]] = None,
            return_type: Optional[str] = None,
    ) -> WebResponse:
        """
        Perform an HTTP request on the shared session.

        :param method: HTTP method (GET, POST ...).
        :param url: Request URL.
        :param json: JSON body for POST/PUT.
        :param headers: Request headers.
        :param params: Query string parameters.
        :param return_type: 'json' to force JSON decoding regardless of Content-Type.
        :return: WebResponse instance.
        """
        session = await self.get_session()
        start_time = time.monotonic()

        try:
            async with session.request(
                    method.upper(), url, json=json, headers=headers, params=params
            ) as response:
                content_type = response.headers.get("Content-Type", "")
                elapsed_time = time.monotonic() - start_time

                if "json" in content_type:
                    data = await response.json(content_type=None)
                elif return_type == "json":
                    # horizon error pages are not always served as JSON
                    text = await response.text()
                    try:
                        data = json_module.loads(text)
                    except ValueError:
                        data = text
                else:
                    data = await response.text()

                return WebResponse(
                    status=response.status,
                    data=data,
                    headers=dict(response.headers),
                    elapsed_time=elapsed_time,
                )
        except aiohttp.ClientError as e:
            raise WebRequestError(f"Request to {url} failed: {e}") from e


async def fetch_with_retry(
        url: str,
        retries: Optional[int] = None,
        delay: Optional[float] = None,
        session_manager: Optional[HTTPSessionManager] = None,
) -> Any:
    """
    GET a JSON document, retrying only on HTTP 429.

    The delay between attempts is fixed. The last 429, or any other error status,
    is raised as HttpRequestError.

    :param url: Request URL.
    :param retries: Total number of attempts (config.fetch_retries by default).
    :param delay: Seconds to wait after a 429 (config.fetch_retry_delay by default).
    :param session_manager: Optional HTTPSessionManager, the module one by default.
    :return: Decoded JSON body.
    """
    if retries is None:
        retries = config.fetch_retries
    if delay is None:
        delay = config.fetch_retry_delay
    if session_manager is None:
        session_manager = http_session_manager

    for attempt in range(retries):
        response = await session_manager.get_web_request('GET', url, return_type='json')
        if response.status == RATE_LIMIT_STATUS and attempt < retries - 1:
            logger.warning(f"Rate limited on {url}, retrying in {delay}s ({attempt + 1}/{retries})")
            await asyncio.sleep(delay)
            continue
        if response.status >= 400:
            raise HttpRequestError(response.status, response.data, url)
        return response.data

    raise ValueError(f"retries must be positive, got {retries}")


http_session_manager = HTTPSessionManager()
