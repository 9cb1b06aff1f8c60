"""HTTP client for the CLI.

The CLI is a thin client: every command goes through the REST API.
"""

import os
from collections.abc import AsyncIterator
from typing import Any

import httpx

from bucketwise.chat.frames import DoneFrame, ErrorFrame, FrameDecoder, TokenFrame
from bucketwise.config import settings


def _get_default_api_url() -> str:
    env_url = os.environ.get("BUCKETWISE_API_URL", "").strip()
    if env_url:
        return env_url.rstrip("/")
    return f"http://localhost:{settings.server_port}/api"


class BucketwiseClientError(Exception):
    """Error from the Bucketwise API."""

    def __init__(self, message: str, status_code: int | None = None, detail: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class BucketwiseClient:
    """Async client for the Bucketwise REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 30.0,
        auth_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: API base URL. Defaults to BUCKETWISE_API_URL, then localhost.
            timeout: Request timeout in seconds (not applied while streaming).
            auth_token: Bearer token. Defaults to BUCKETWISE_AUTH_TOKEN.
            transport: Custom httpx transport (tests use ASGITransport).
        """
        self.base_url = base_url or _get_default_api_url()
        self.timeout = timeout
        self.auth_token = auth_token or os.environ.get("BUCKETWISE_AUTH_TOKEN", "").strip() or None
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _default_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self._default_headers(),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BucketwiseClient":
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.close()

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        try:
            detail = response.json().get("detail", response.text)
        except ValueError:
            detail = response.text
        message = detail.get("message", str(detail)) if isinstance(detail, dict) else str(detail)
        raise BucketwiseClientError(
            f"API error: {message}",
            status_code=response.status_code,
            detail=detail,
        )

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> Any:
        client = self._get_client()
        try:
            response = await client.request(method, path, json=json)
        except httpx.ConnectError as e:
            raise BucketwiseClientError(
                f"Cannot connect to Bucketwise API at {self.base_url}. Is the server running?",
                detail=str(e),
            ) from e
        except httpx.TimeoutException as e:
            raise BucketwiseClientError(
                f"Request timed out after {self.timeout}s", detail=str(e)
            ) from e
        self._raise_for_status(response)
        return response.json()

    # =========================================================================
    # Chat
    # =========================================================================

    async def stream_chat(
        self, parent_type: str, parent_id: str, content: str
    ) -> AsyncIterator[TokenFrame | DoneFrame | ErrorFrame]:
        """POST a message and yield reply frames as they arrive."""
        client = self._get_client()
        decoder = FrameDecoder()
        body = {"parentId": parent_id, "parentType": parent_type, "content": content}
        try:
            async with client.stream("POST", "/chat", json=body, timeout=None) as response:
                if response.status_code >= 400:
                    await response.aread()
                    self._raise_for_status(response)
                async for chunk in response.aiter_bytes():
                    for frame in decoder.feed(chunk):
                        yield frame
                for frame in decoder.close():
                    yield frame
        except httpx.ConnectError as e:
            raise BucketwiseClientError(
                f"Cannot connect to Bucketwise API at {self.base_url}. Is the server running?",
                detail=str(e),
            ) from e

    async def list_messages(self, parent_type: str, parent_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/messages/{parent_type}/{parent_id}")

    async def extract_message(self, turn_id: str) -> dict[str, Any]:
        return await self._request("POST", f"/messages/{turn_id}/extract")

    # =========================================================================
    # Core queries
    # =========================================================================

    async def list_core_queries(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/core-queries")

    async def set_core_query(self, location_key: str, text: str) -> dict[str, Any]:
        return await self._request(
            "PUT", f"/admin/core-queries/{location_key}", json={"context_query": text}
        )

    async def health(self) -> dict[str, Any]:
        return await self._request("GET", "/health")
