"""Client for the diagram editor API.

Wraps an `httpx.AsyncClient` whose requests go through `SessionAuth`, so an
expired access token is refreshed and the request retried without the caller
noticing. Any other HTTP error is raised as `httpx.HTTPStatusError`.
"""

import httpx

from typing import Any, Dict, List, Optional

from utils.logger import get_logger

from .interceptor import SessionAuth, DEFAULT_REFRESH_TIMEOUT
from .token_cache import TokenCache, ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY

logger = get_logger("client.api")

DEFAULT_BASE_URL = "http://localhost:3001"
REFRESH_PATH = "/users/me/access-token"


class DiagramClient:
    """Calls the user, document and shape endpoints on behalf of one cached session."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        cache: Optional[TokenCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        refresh_timeout: float = DEFAULT_REFRESH_TIMEOUT,
    ):
        self.base_url = httpx.URL(base_url)
        self.cache = cache or TokenCache()
        self.auth = SessionAuth(
            self.cache,
            self.base_url.join(REFRESH_PATH),
            refresh_timeout=refresh_timeout,
            transport=transport,
        )
        self.http = httpx.AsyncClient(base_url=self.base_url, auth=self.auth, transport=transport)

    async def __aenter__(self) -> "DiagramClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        response = await self.http.request(method, url, **kwargs)
        response.raise_for_status()

        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return None
        return response.json()

    def _store_session(self, response: httpx.Response) -> Dict[str, Any]:
        response.raise_for_status()
        user = response.json()

        self.cache.set_session(
            user["_id"],
            response.headers.get(ACCESS_TOKEN_KEY),
            response.headers.get(REFRESH_TOKEN_KEY),
        )
        return user

    async def signup(self, email: str, password: str) -> Dict[str, Any]:
        """Create an account and store its session in the cache."""
        response = await self.http.post("/users", json={"email": email, "password": password}, auth=None)
        return self._store_session(response)

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """Log in and store the new session in the cache."""
        response = await self.http.post("/users/login", json={"email": email, "password": password}, auth=None)
        return self._store_session(response)

    async def logout(self, revoke: bool = False) -> None:
        """Forget the cached session.

        Args:
            revoke: Also ask the server to revoke the refresh token first.
        """
        refresh_token = self.cache.get_refresh_token()
        user_id = self.cache.get_user_id()

        if revoke and refresh_token and user_id:
            try:
                await self.http.delete(
                    "/users/me/session",
                    headers={REFRESH_TOKEN_KEY: refresh_token, "_id": user_id},
                    auth=None,
                )
            except httpx.HTTPError as e:
                logger.warning(f"Could not revoke the session on logout: {e}")

        self.cache.remove_session()

    async def get_me(self) -> Dict[str, Any]:
        return await self._request("GET", "/users/me")

    async def delete_account(self) -> Dict[str, Any]:
        """Delete the account with its documents and shapes, then forget the session."""
        deleted = await self._request("DELETE", "/users/me")
        self.cache.remove_session()
        return deleted

    async def get_documents(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "/docs")

    async def create_document(self, title: str) -> Dict[str, Any]:
        return await self._request("POST", "/docs", json={"title": title})

    async def update_document(self, doc_id: str, title: str) -> Dict[str, Any]:
        return await self._request("PATCH", f"/docs/{doc_id}", json={"title": title})

    async def delete_document(self, doc_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/docs/{doc_id}")

    async def get_shapes(self, doc_id: str) -> List[Dict[str, Any]]:
        return await self._request("GET", f"/docs/{doc_id}/shapes")

    async def create_shape(self, doc_id: str, shape: Dict[str, Any]) -> Dict[str, Any]:
        """Create a shape, `shape` uses the camelCase fields of the API (`translateX`, ...)."""
        return await self._request("POST", f"/docs/{doc_id}/shapes", json=shape)

    async def update_shape(self, doc_id: str, shape_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PATCH", f"/docs/{doc_id}/shapes/{shape_id}", json=changes)

    async def delete_shape(self, doc_id: str, shape_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/docs/{doc_id}/shapes/{shape_id}")
