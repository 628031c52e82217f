"""
OAuth 2.0 Client-Credentials Token Manager

Acquires and caches one bearer token per credential set.
- A token is served only while now < expires_at - 5 minutes, so callers
  never hand a nearly expired token to a downstream request
- clear() drops the cached token regardless of remaining validity
- Concurrent refreshes share a single acquisition (lock + re-check)
"""
import asyncio
import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, Field, StrictStr, ValidationError

from carrier_rates.core.exceptions import CarrierIntegrationError, ErrorCode
from carrier_rates.core.http_client import ResilientHTTPClient
from carrier_rates.core.utils import utcnow

logger = logging.getLogger(__name__)

# Refresh 5 minutes before expiry
TOKEN_EXPIRY_BUFFER_SECONDS = 300


class TokenResponse(BaseModel):
    """Token endpoint payload."""
    access_token: StrictStr
    token_type: StrictStr
    expires_in: int = Field(..., ge=0)  # UPS sends this as a numeric string
    issued_at: Optional[int] = None


@dataclass(frozen=True)
class CachedToken:
    access_token: str
    expires_at: datetime


class OAuthTokenManager:
    """
    Client-credentials token cache for one carrier instance.

    Usage:
        tokens = OAuthTokenManager(http_client, token_url, client_id, client_secret)
        token = await tokens.get_token()
    """

    def __init__(
        self,
        http_client: ResilientHTTPClient,
        token_url: str,
        client_id: str,
        client_secret: str,
        buffer_seconds: int = TOKEN_EXPIRY_BUFFER_SECONDS,
    ):
        self._http_client = http_client
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._buffer = timedelta(seconds=buffer_seconds)

        self._cached_token: Optional[CachedToken] = None
        self._refresh_lock = asyncio.Lock()

    def _is_valid(self, token: Optional[CachedToken]) -> bool:
        return token is not None and utcnow() < token.expires_at - self._buffer

    def has_valid_token(self) -> bool:
        return self._is_valid(self._cached_token)

    def clear(self) -> None:
        """Drop the cached token; the next get_token() fetches a new one."""
        self._cached_token = None

    async def get_token(self) -> str:
        """
        Return a valid access token, acquiring one if needed.

        Raises:
            CarrierIntegrationError: transport errors unchanged, API_ERROR for a
                malformed token response, AUTH_FAILED for anything else
        """
        token = self._cached_token
        if self._is_valid(token):
            return token.access_token

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited
            token = self._cached_token
            if self._is_valid(token):
                return token.access_token

            self._cached_token = await self._acquire_token()
            return self._cached_token.access_token

    def _basic_auth_header(self) -> str:
        raw = f"{self._client_id}:{self._client_secret}"
        return f"Basic {base64.b64encode(raw.encode()).decode()}"

    async def _acquire_token(self) -> CachedToken:
        try:
            response = await self._http_client.post(
                self._token_url,
                headers={
                    "Authorization": self._basic_auth_header(),
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                data={"grant_type": "client_credentials"},
            )
            token_data = TokenResponse.model_validate(response.json())

        except CarrierIntegrationError:
            logger.error("[OAUTH] Token request failed")
            raise

        except (ValidationError, ValueError) as e:
            # ValidationError is a ValueError; ValueError alone means a non-JSON body
            if isinstance(e, ValidationError):
                details = {"errors": e.errors(include_url=False, include_context=False, include_input=False)}
            else:
                details = {"error": str(e)}
            logger.error(f"[OAUTH] Invalid token response from {self._token_url}")
            raise CarrierIntegrationError.create(
                ErrorCode.API_ERROR,
                "Invalid token response from carrier",
                details=details,
                retryable=False,
                cause=e,
            ) from e

        except Exception as e:
            logger.error(f"[OAUTH] Token acquisition failed: {e}")
            raise CarrierIntegrationError.create(
                ErrorCode.AUTH_FAILED,
                "Failed to acquire OAuth token",
                retryable=False,
                cause=e,
            ) from e

        expires_at = utcnow() + timedelta(seconds=token_data.expires_in)
        logger.info(f"[OAUTH] Token obtained, expires in {token_data.expires_in}s")
        return CachedToken(access_token=token_data.access_token, expires_at=expires_at)
