"""
Carrier Integration Service

Single entry point for callers:
- get_rates() for one carrier
- shop_rates() for several carriers at once
- check_carrier_health() / list_supported_carriers()

Usage:
    async with create_service() as service:
        response = await service.get_rates("ups", request)
"""
import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Set, Union

from carrier_rates.core.config import Settings, load_settings
from carrier_rates.core.http_client import ResilientHTTPClient
from carrier_rates.models.rates import RateRequest, RateResponse
from carrier_rates.modules.shipping.carriers import CarrierRegistry
from carrier_rates.services.rate_shopping import RateShoppingAggregator, ShopResult

logger = logging.getLogger(__name__)


class CarrierIntegrationService:
    """
    Facade over the carrier registry and rate shopping.

    The service closes the HTTP client on close() only if it created it.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[ResilientHTTPClient] = None,
        registry: Optional[CarrierRegistry] = None,
    ):
        self.settings = settings
        self._owns_http_client = http_client is None
        self.http_client = http_client or ResilientHTTPClient.from_settings(settings)
        self.registry = registry or CarrierRegistry(settings, self.http_client)
        self._aggregator = RateShoppingAggregator(self.registry)

    async def __aenter__(self):
        await self.http_client.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        if self._owns_http_client:
            await self.http_client.close()

    async def get_rates(
        self,
        carrier_name: str,
        request: Union[RateRequest, Mapping[str, Any]],
    ) -> RateResponse:
        """
        Get rates from a single carrier.

        Raises:
            CarrierNotFoundError if the carrier is not registered
            CarrierIntegrationError for any rating failure
        """
        carrier = self.registry.create(carrier_name)
        return await carrier.get_rates(request)

    async def shop_rates(
        self,
        carrier_names: Sequence[str],
        request: Union[RateRequest, Mapping[str, Any]],
        timeout: Optional[float] = None,
    ) -> Dict[str, ShopResult]:
        """Get rates from several carriers concurrently. Never raises per carrier."""
        return await self._aggregator.shop(carrier_names, request, timeout=timeout)

    async def check_carrier_health(self, carrier_name: str) -> bool:
        """
        True if the carrier can authenticate.

        Raises:
            CarrierNotFoundError if the carrier is not registered
        """
        carrier = self.registry.create(carrier_name)
        healthy = await carrier.health_check()
        logger.info(f"Carrier {carrier_name} health: {'ok' if healthy else 'failing'}")
        return healthy

    def list_supported_carriers(self) -> Set[str]:
        return self.registry.list_supported()


def create_service(settings: Optional[Settings] = None) -> CarrierIntegrationService:
    """Build a service, loading settings from the environment if none are given."""
    return CarrierIntegrationService(settings or load_settings())
