"""Request pipeline stage that keeps the access token of a client fresh.

`SessionAuth` stamps the cached access token on every request. When a request
comes back 401 it exchanges the cached refresh token for a new access token
and sends the original request again, once. Concurrent requests that fail
while a refresh is already running wait for that refresh instead of starting
their own, so a burst of 401s produces a single refresh call.
"""

import asyncio
import threading

from enum import Enum

import httpx

from typing import AsyncGenerator, Generator, Optional

from security.exceptions import SessionExpiredError
from utils.logger import get_logger

from .token_cache import TokenCache, ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY

logger = get_logger("client.interceptor")

USER_ID_HEADER = "_id"
DEFAULT_REFRESH_TIMEOUT = 10.0


class RefreshState(str, Enum):
    """States of the refresh coordination."""

    IDLE = "idle"
    REFRESH_IN_FLIGHT = "refresh-in-flight"


class SessionAuth(httpx.Auth):
    """httpx authentication flow backed by a `TokenCache`.

    Works with both `httpx.Client` and `httpx.AsyncClient`. Single-flight is
    guaranteed per instance (and per event loop for async clients), share one
    instance between the requests that should share a refresh.

    The refresh call is sent by the flow itself on a short-lived client, so a
    transport error or timeout on it is reported as `SessionExpiredError`
    like any other failed refresh.
    """

    def __init__(
        self,
        cache: TokenCache,
        refresh_url: httpx.URL | str,
        refresh_timeout: float = DEFAULT_REFRESH_TIMEOUT,
        wait_timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport | httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            cache: Where the user id and tokens are read from and written to.
            refresh_url: Absolute URL of the endpoint that issues new access tokens.
            refresh_timeout: Timeout in seconds applied to the refresh call.
            wait_timeout: How long a request waits for a refresh started by
                another request (default: twice `refresh_timeout`).
            transport: Transport the refresh call is sent through. It is
                shared, not owned, and never closed here. Defaults to a new
                httpx transport per refresh.
        """
        self.cache = cache
        self.refresh_url = httpx.URL(refresh_url)
        self.refresh_timeout = refresh_timeout
        self.wait_timeout = wait_timeout if wait_timeout is not None else 2 * refresh_timeout
        self.transport = transport

        self.state = RefreshState.IDLE
        self.refresh_count = 0
        self._generation = 0  # bumped every time a refresh finishes
        self._last_refresh_ok = False
        self._sync_lock = threading.Lock()
        self._async_lock: Optional[asyncio.Lock] = None
        self._async_lock_loop: Optional[asyncio.AbstractEventLoop] = None

    def _is_refresh_request(self, request: httpx.Request) -> bool:
        url = request.url
        return (url.scheme, url.host, url.port, url.path) == (
            self.refresh_url.scheme,
            self.refresh_url.host,
            self.refresh_url.port,
            self.refresh_url.path,
        )

    def _stamp(self, request: httpx.Request) -> int:
        """Put the cached access token on `request` and return the refresh generation it belongs to."""
        generation = self._generation
        token = self.cache.get_access_token()

        if token:
            request.headers[ACCESS_TOKEN_KEY] = token
        else:
            request.headers.pop(ACCESS_TOKEN_KEY, None)
        return generation

    def _begin_refresh(self) -> Optional[httpx.Request]:
        """Enter the in-flight state and build the refresh request, if a session is cached."""
        self.state = RefreshState.REFRESH_IN_FLIGHT

        refresh_token = self.cache.get_refresh_token()
        user_id = self.cache.get_user_id()

        if not refresh_token or not user_id:
            logger.warning("Cannot refresh the access token without a cached session")
            return None

        self.refresh_count += 1
        return httpx.Request(
            "GET",
            self.refresh_url,
            headers={REFRESH_TOKEN_KEY: refresh_token, USER_ID_HEADER: user_id},
            extensions={"timeout": httpx.Timeout(self.refresh_timeout).as_dict()},
        )

    def _complete_refresh(self, response: httpx.Response) -> bool:
        """Store the access token carried by a refresh response.

        Returns:
            bool: True if a new access token was stored.
        """
        if response.status_code != 200:
            logger.warning(f"Access token refresh rejected with status {response.status_code}")
            return False

        access_token = response.headers.get(ACCESS_TOKEN_KEY)
        if not access_token:
            try:
                access_token = response.json().get("accessToken")
            except ValueError:
                access_token = None

        if not access_token:
            logger.error("Refresh response did not carry an access token")
            return False

        self.cache.set_access_token(access_token)
        logger.info("Access token refreshed")
        return True

    def _end_refresh(self, refreshed: bool) -> None:
        """Leave the in-flight state, the session is dropped when the refresh failed."""
        self._last_refresh_ok = refreshed
        self._generation += 1
        self.state = RefreshState.IDLE

        if not refreshed:
            self.cache.remove_session()

    def _refresh(self) -> bool:
        refreshed = False
        try:
            refresh_request = self._begin_refresh()
            if refresh_request is None:
                return False

            client = httpx.Client(transport=self.transport)
            try:
                refreshed = self._complete_refresh(client.send(refresh_request))
            except httpx.TransportError as e:
                logger.warning(f"Access token refresh failed: {e!r}")
            finally:
                if self.transport is None:
                    client.close()
            return refreshed
        finally:
            self._end_refresh(refreshed)

    async def _arefresh(self) -> bool:
        refreshed = False
        try:
            refresh_request = self._begin_refresh()
            if refresh_request is None:
                return False

            client = httpx.AsyncClient(transport=self.transport)
            try:
                refreshed = self._complete_refresh(await client.send(refresh_request))
            except httpx.TransportError as e:
                logger.warning(f"Access token refresh failed: {e!r}")
            finally:
                if self.transport is None:
                    await client.aclose()
            return refreshed
        finally:
            self._end_refresh(refreshed)

    def _get_async_lock(self) -> asyncio.Lock:
        """Get the refresh lock of the running event loop."""
        loop = asyncio.get_running_loop()
        if self._async_lock is None or self._async_lock_loop is not loop:
            self._async_lock = asyncio.Lock()
            self._async_lock_loop = loop
        return self._async_lock

    def sync_auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        if self._is_refresh_request(request):
            yield request
            return

        generation = self._stamp(request)
        response = yield request

        if response.status_code != httpx.codes.UNAUTHORIZED:
            return

        if not self._sync_lock.acquire(timeout=self.wait_timeout):
            raise SessionExpiredError("Timed out waiting for the access token refresh")

        try:
            if self._generation == generation:
                self._refresh()
            refreshed = self._last_refresh_ok
        finally:
            self._sync_lock.release()

        if not refreshed:
            raise SessionExpiredError()

        self._stamp(request)
        yield request

    async def async_auth_flow(self, request: httpx.Request) -> AsyncGenerator[httpx.Request, httpx.Response]:
        if self._is_refresh_request(request):
            yield request
            return

        generation = self._stamp(request)
        response = yield request

        if response.status_code != httpx.codes.UNAUTHORIZED:
            return

        lock = self._get_async_lock()
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self.wait_timeout)
        except asyncio.TimeoutError:
            raise SessionExpiredError("Timed out waiting for the access token refresh")

        try:
            if self._generation == generation:
                await self._arefresh()
            refreshed = self._last_refresh_ok
        finally:
            lock.release()

        if not refreshed:
            raise SessionExpiredError()

        self._stamp(request)
        yield request
