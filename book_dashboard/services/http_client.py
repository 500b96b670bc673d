import asyncio
import httpx
import logging
from typing import Optional, Dict, Any, Union

from book_dashboard.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

TIMEOUT_MESSAGE = "Request timeout - please check if the server is running"


class RequestError(Exception):
    """Base class for failures talking to the book service"""
    pass


class RequestTimeout(RequestError):
    """Raised when a request exceeds the configured timeout"""

    def __init__(self, message: str = TIMEOUT_MESSAGE):
        super().__init__(message)


class RequestFailed(RequestError):
    """Raised when the service answers with a non-success status"""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


class NetworkError(RequestError):
    """Raised when the service cannot be reached at all"""
    pass


class HttpClient:
    """Async HTTP client bound to the book service base URL.

    `timeout` bounds each whole request, body included, not only the
    individual connect and read steps.
    """

    def __init__(self, config: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        config = config or default_settings
        self.base_url = config.api_base_url.rstrip("/")
        self.timeout = config.request_timeout

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            transport=transport,
        )

    async def request(
        self,
        endpoint: str = "",
        method: str = "GET",
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Union[Any, str]:
        """Send a request to base_url + endpoint.

        Returns the decoded JSON body when the response is JSON, otherwise the raw text.
        Raises RequestTimeout, NetworkError or RequestFailed.
        """
        url = f"{self.base_url}{endpoint}"
        merged_headers = {**DEFAULT_HEADERS, **(headers or {})}

        try:
            response = await asyncio.wait_for(
                self._client.request(method, url, json=json, headers=merged_headers),
                self.timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            logger.warning(f"{method} {url} timed out after {self.timeout}s")
            raise RequestTimeout() from e
        except httpx.TransportError as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise NetworkError(f"Network error: {e}") from e

        if not response.is_success:
            raise RequestFailed(response.status_code, self._error_message(response))

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type or not response.content.strip():
            return response.text
        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"{method} {url} returned malformed JSON: {e}")
            raise RequestFailed(response.status_code, "Invalid JSON response") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            data = {}
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        return f"HTTP {response.status_code}: {response.reason_phrase}"

    async def get(self, endpoint: str = "", **kwargs) -> Any:
        return await self.request(endpoint, "GET", **kwargs)

    async def post(self, endpoint: str = "", data: Any = None, **kwargs) -> Any:
        return await self.request(endpoint, "POST", json=data, **kwargs)

    async def put(self, endpoint: str = "", data: Any = None, **kwargs) -> Any:
        return await self.request(endpoint, "PUT", json=data, **kwargs)

    async def delete(self, endpoint: str = "", **kwargs) -> Any:
        return await self.request(endpoint, "DELETE", **kwargs)

    async def close(self):
        """Close the underlying HTTP client"""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
