"""
Base Carrier Interface

Every carrier adapter implements this interface:
- get_rates() runs the shared rating pipeline (validate, authenticate,
  translate, call, parse, check business status, map back)
- health_check() reports whether the carrier's credentials work
- Carrier-specific work lives in the abstract translation hooks
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Union

import httpx
from pydantic import ValidationError

from carrier_rates.core.config import CarrierCredentials
from carrier_rates.core.exceptions import CarrierIntegrationError, ErrorCode
from carrier_rates.core.http_client import ResilientHTTPClient
from carrier_rates.models.rates import RateRequest, RateResponse
from carrier_rates.modules.shipping.oauth import OAuthTokenManager

logger = logging.getLogger(__name__)


def validate_rate_request(request: Union[RateRequest, Mapping[str, Any]]) -> RateRequest:
    """
    Validate a normalized request, model or plain mapping.

    Raises:
        CarrierIntegrationError(VALIDATION_ERROR)
    """
    try:
        return RateRequest.model_validate(request)
    except ValidationError as e:
        raise CarrierIntegrationError.validation_failed(
            e.errors(include_url=False, include_context=False, include_input=False), cause=e
        ) from e


class BaseCarrier(ABC):
    """
    Abstract base class for all shipping carriers.

    Subclasses provide the carrier name and the wire translation hooks;
    the pipeline in get_rates() is shared.
    """

    #: Registry key, lower-case
    name: str = ""

    def __init__(self, credentials: CarrierCredentials, http_client: ResilientHTTPClient):
        """
        Initialize the carrier.

        Args:
            credentials: Resolved credentials and endpoints for this carrier
            http_client: Shared transport
        """
        self._credentials = credentials
        self._http_client = http_client
        self._token_manager = OAuthTokenManager(
            http_client,
            token_url=credentials.oauth_url,
            client_id=credentials.client_id,
            client_secret=credentials.client_secret,
        )

    @property
    def token_manager(self) -> OAuthTokenManager:
        return self._token_manager

    # ---- translation hooks -------------------------------------------------

    @abstractmethod
    def rate_endpoint(self, request: RateRequest) -> str:
        """URL of the carrier's rating endpoint for this request."""
        pass

    def rate_params(self, request: RateRequest) -> Dict[str, str]:
        """Query parameters for the rating call."""
        return {}

    def rate_headers(self, request: RateRequest) -> Dict[str, str]:
        """Extra headers for the rating call (Authorization is added for you)."""
        return {}

    @abstractmethod
    def build_rate_payload(self, request: RateRequest) -> Dict[str, Any]:
        """Translate a normalized request into the carrier wire format."""
        pass

    @abstractmethod
    def parse_rate_response(self, data: Any) -> Any:
        """
        Validate the raw response shape.

        Raises:
            CarrierIntegrationError(API_ERROR) on shape mismatch
        """
        pass

    @abstractmethod
    def check_business_status(self, parsed: Any) -> None:
        """
        Inspect the carrier's embedded status.

        Raises:
            CarrierIntegrationError(CARRIER_ERROR) if the carrier rejected the request
        """
        pass

    @abstractmethod
    def map_rate_response(self, parsed: Any) -> RateResponse:
        """Translate a validated carrier response into a RateResponse."""
        pass

    def translate_error(self, error: CarrierIntegrationError) -> CarrierIntegrationError:
        """Refine a transport error using the carrier's error body, if it has one."""
        return error

    # ---- shared pipeline ---------------------------------------------------

    async def _post_rate_request(self, request: RateRequest, token: str) -> httpx.Response:
        headers = dict(self.rate_headers(request))
        headers["Authorization"] = f"Bearer {token}"
        return await self._http_client.post(
            self.rate_endpoint(request),
            json=self.build_rate_payload(request),
            params=self.rate_params(request),
            headers=headers,
        )

    async def get_rates(self, request: Union[RateRequest, Mapping[str, Any]]) -> RateResponse:
        """
        Get shipping rates from the carrier.

        Args:
            request: Normalized rate request (model or mapping)

        Returns:
            RateResponse with quotes in carrier order

        Raises:
            CarrierIntegrationError for every failure
        """
        # Validation happens before any network call
        rate_request = validate_rate_request(request)

        try:
            token = await self._token_manager.get_token()
            try:
                response = await self._post_rate_request(rate_request, token)
            except CarrierIntegrationError as e:
                translated = self.translate_error(e)
                if translated is e:
                    raise
                raise translated from e

            try:
                data = response.json()
            except ValueError as e:
                raise CarrierIntegrationError.create(
                    ErrorCode.API_ERROR,
                    f"Non-JSON response from {self.name}",
                    details={"body": response.text[:500]},
                    retryable=False,
                    cause=e,
                ) from e

            parsed = self.parse_rate_response(data)
            self.check_business_status(parsed)
            rate_response = self.map_rate_response(parsed)

        except CarrierIntegrationError as e:
            logger.error(f"{self.name} get rates error: {e.code.value} - {e.message}")
            raise

        except Exception as e:
            logger.exception(f"{self.name} get rates unexpected error")
            raise CarrierIntegrationError.create(
                ErrorCode.UNKNOWN_ERROR,
                "Unexpected error during rate request",
                details={"carrier": self.name, "original_error": repr(e)},
                retryable=False,
                cause=e,
            ) from e

        logger.info(f"Got {len(rate_response.quotes)} rates from {self.name}")
        return rate_response

    async def health_check(self) -> bool:
        """True iff a token can be acquired. Never raises."""
        try:
            await self._token_manager.get_token()
            return True
        except Exception as e:
            logger.warning(f"{self.name} health check failed: {e}")
            return False
