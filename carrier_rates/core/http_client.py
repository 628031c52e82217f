"""
Resilient HTTP Client for Carrier API Calls

- Every failure is classified into a CarrierIntegrationError with a
  retryability flag before it leaves this module (raw httpx errors never do)
- Retryable failures are retried with exponential backoff plus jitter
- One shared httpx.AsyncClient (connection pool) per client instance

Callers must only send idempotent requests through request(): every retry
re-issues the same request.
"""
import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from carrier_rates.core.config import Settings
from carrier_rates.core.exceptions import CarrierIntegrationError, ErrorCode

logger = logging.getLogger(__name__)

# Max characters of a non-JSON error body kept in error details
ERROR_BODY_PREVIEW = 500


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 3
    base_delay: float = 1.0           # Base delay in seconds
    max_delay: float = 10.0           # Cap on the exponential part
    exponential_base: float = 2.0     # Exponential backoff multiplier
    jitter_max: float = 1.0           # Uniform random jitter added on top (seconds)


def _response_data(response: httpx.Response) -> Any:
    """Decoded JSON body, or a truncated text body."""
    try:
        return response.json()
    except ValueError:
        return response.text[:ERROR_BODY_PREVIEW]


def classify_exception(exc: BaseException) -> CarrierIntegrationError:
    """Classify a fault where no HTTP response was received."""
    if isinstance(exc, CarrierIntegrationError):
        return exc

    if isinstance(exc, httpx.TimeoutException):
        return CarrierIntegrationError.create(
            ErrorCode.TIMEOUT,
            "Request timed out",
            details={"original_error": str(exc) or exc.__class__.__name__},
            retryable=True,
            cause=exc,
        )

    if isinstance(exc, httpx.RequestError):
        return CarrierIntegrationError.create(
            ErrorCode.NETWORK_ERROR,
            "Network error occurred",
            details={"original_error": str(exc) or exc.__class__.__name__},
            retryable=True,
            cause=exc,
        )

    return CarrierIntegrationError.create(
        ErrorCode.UNKNOWN_ERROR,
        "An unexpected error occurred",
        details={"original_error": repr(exc)},
        retryable=False,
        cause=exc,
    )


def classify_response(response: httpx.Response) -> CarrierIntegrationError:
    """Classify a non-2xx HTTP response."""
    status = response.status_code

    if status == 429:
        return CarrierIntegrationError.create(
            ErrorCode.RATE_LIMIT_EXCEEDED,
            "API rate limit exceeded",
            details={"status": status, "retry_after": response.headers.get("Retry-After")},
            retryable=True,
        )

    if status == 401:
        return CarrierIntegrationError.create(
            ErrorCode.AUTH_FAILED,
            "Authentication failed",
            details={"status": status},
            retryable=False,
        )

    if status == 403:
        return CarrierIntegrationError.create(
            ErrorCode.AUTH_INVALID_CREDENTIALS,
            "Invalid credentials or insufficient permissions",
            details={"status": status},
            retryable=False,
        )

    if status >= 500:
        return CarrierIntegrationError.create(
            ErrorCode.SERVICE_UNAVAILABLE,
            "Carrier service temporarily unavailable",
            details={"status": status, "data": _response_data(response)},
            retryable=True,
        )

    if 400 <= status < 500:
        return CarrierIntegrationError.create(
            ErrorCode.API_ERROR,
            "Invalid request to carrier API",
            details={"status": status, "data": _response_data(response)},
            retryable=False,
        )

    return CarrierIntegrationError.create(
        ErrorCode.UNKNOWN_ERROR,
        "An unexpected error occurred",
        details={"status": status, "data": _response_data(response)},
        retryable=False,
    )


class ResilientHTTPClient:
    """
    Async HTTP client with classified errors and retry.

    Usage:
        async with ResilientHTTPClient() as client:
            response = await client.post("https://api.example.com/rate", json=payload)
    """

    def __init__(
        self,
        retry_config: Optional[RetryConfig] = None,
        timeout: float = 30.0,
        default_headers: Optional[Dict[str, str]] = None,
    ):
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self.default_headers = default_headers or {"Content-Type": "application/json"}

        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResilientHTTPClient":
        return cls(
            retry_config=RetryConfig(max_retries=settings.HTTP_MAX_RETRIES),
            timeout=settings.http_timeout_seconds,
        )

    async def __aenter__(self):
        return await self.init()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def init(self):
        """Initialize client without context manager. Must call close() when done."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.default_headers,
            )
        return self

    async def close(self):
        """Close the client. Use this when not using context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _calculate_backoff(self, attempt: int) -> float:
        """
        Delay before retry number ``attempt`` (0-indexed).

        Formula: min(base * exp_base ^ attempt, max_delay) + uniform(0, jitter_max)
        """
        cfg = self.retry_config
        delay = min(cfg.base_delay * (cfg.exponential_base ** attempt), cfg.max_delay)
        return delay + random.uniform(0, cfg.jitter_max)

    async def _sleep(self, delay: float) -> None:
        await asyncio.sleep(delay)

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Single attempt. Returns a 2xx response or raises a classified error."""
        try:
            response = await self._client.request(method, url, **kwargs)
        except Exception as e:
            raise classify_exception(e) from e

        if response.is_success:
            return response
        raise classify_response(response)

    async def request(
        self,
        method: str,
        url: str,
        **kwargs,
    ) -> httpx.Response:
        """
        Make an HTTP request, retrying retryable failures.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Target URL
            **kwargs: Additional arguments passed to httpx (json, data, headers, params)

        Returns:
            httpx.Response with a 2xx status

        Raises:
            CarrierIntegrationError: non-retryable failure or retries exhausted
        """
        # Auto-initialize if not using context manager
        if not self._client:
            await self.init()

        cfg = self.retry_config
        total_attempts = cfg.max_retries + 1

        for attempt in range(total_attempts):
            logger.debug(f"[HTTP] {method} {url} (attempt {attempt + 1}/{total_attempts})")
            try:
                return await self._send(method, url, **kwargs)
            except CarrierIntegrationError as e:
                if not e.retryable:
                    logger.error(f"[HTTP] {method} {url}: {e.code.value}, not retrying")
                    raise

                if attempt >= cfg.max_retries:
                    logger.error(
                        f"[HTTP] {method} {url}: all {total_attempts} attempts failed "
                        f"(last error {e.code.value})"
                    )
                    raise

                delay = self._calculate_backoff(attempt)
                logger.warning(
                    f"[HTTP] {method} {url}: {e.code.value}, "
                    f"retrying in {delay:.1f}s (attempt {attempt + 1})"
                )
                await self._sleep(delay)

        # Unreachable: the final attempt either returns or raises
        raise CarrierIntegrationError.create(ErrorCode.UNKNOWN_ERROR, f"Request to {url} failed")

    async def get(self, url: str, **kwargs) -> httpx.Response:
        """GET request with retry."""
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> httpx.Response:
        """POST request with retry."""
        return await self.request("POST", url, **kwargs)
