"""HTTP client primitive shared by the storage and registry clients."""

import json
import time
from dataclasses import dataclass
from typing import Any, AsyncIterable, Dict, Optional, Union

import httpx


@dataclass
class HttpResult:
    """Result of HTTP request execution."""
    success: bool
    status_code: int
    body: Any
    headers: Dict[str, str]
    duration_ms: int
    error: Optional[str] = None


class HttpClientPrimitive:
    """Primitive for making HTTP requests.

    Expected failures (connection errors, non-2xx/3xx responses) come back as
    an unsuccessful HttpResult. Callers decide which of them are fatal.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        json_body: Any = None,
        content: Union[bytes, AsyncIterable[bytes], None] = None,
    ) -> HttpResult:
        """Send a single request and wrap the outcome in an HttpResult."""
        start_time = time.time()
        method = method.upper()

        if not url:
            raise ValueError("url is required")

        request_headers = dict(headers or {})
        if json_body is not None:
            content = json.dumps(json_body).encode("utf-8")
            request_headers.setdefault("Content-Type", "application/json")

        client = await self._get_client()

        try:
            response = await client.request(
                method=method,
                url=url,
                headers=request_headers,
                content=content,
            )
        except httpx.HTTPError as e:
            duration_ms = int((time.time() - start_time) * 1000)
            return HttpResult(
                success=False,
                status_code=0,
                body=None,
                headers={},
                duration_ms=duration_ms,
                error=f"Request failed: {e}",
            )

        try:
            response_body = response.json()
        except (json.JSONDecodeError, ValueError):
            response_body = response.text

        duration_ms = int((time.time() - start_time) * 1000)
        success = 200 <= response.status_code < 400
        error_msg = None if success else f"HTTP {response.status_code}: {response.reason_phrase}"

        return HttpResult(
            success=success,
            status_code=response.status_code,
            body=response_body,
            headers=dict(response.headers),
            duration_ms=duration_ms,
            error=error_msg,
        )

    async def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResult:
        return await self.request("GET", url, headers=headers)

    async def post(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        json_body: Any = None,
        content: Union[bytes, AsyncIterable[bytes], None] = None,
    ) -> HttpResult:
        return await self.request("POST", url, headers=headers, json_body=json_body, content=content)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client with connection pooling."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
