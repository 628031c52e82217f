"""
Carrier Registry and Factory

- register_carrier() records carrier implementations by lower-case name
- CarrierRegistry builds adapters from explicit settings and a shared transport
- Lookup is case-insensitive; unknown names raise CarrierNotFoundError
- One adapter instance per carrier name, so its token cache survives across
  requests; different carriers never share token state
"""
import logging
from typing import Callable, Dict, Optional, Set, Type

from carrier_rates.core.config import Settings
from carrier_rates.core.exceptions import CarrierNotFoundError
from carrier_rates.core.http_client import ResilientHTTPClient
from carrier_rates.modules.shipping.carriers.base import BaseCarrier

logger = logging.getLogger(__name__)

CarrierFactoryFn = Callable[[Settings, ResilientHTTPClient], BaseCarrier]

# Registry of carrier implementations
_CARRIER_REGISTRY: Dict[str, Type[BaseCarrier]] = {}


def _normalize(carrier_name: str) -> str:
    return carrier_name.strip().lower()


def register_carrier(carrier_name: str):
    """
    Decorator to register a carrier implementation.

    Usage:
        @register_carrier("ups")
        class UPSCarrier(BaseCarrier):
            ...
    """
    def decorator(cls: Type[BaseCarrier]):
        _CARRIER_REGISTRY[_normalize(carrier_name)] = cls
        logger.debug(f"Registered carrier: {carrier_name} -> {cls.__name__}")
        return cls
    return decorator


def _class_factory(carrier_name: str, cls: Type[BaseCarrier]) -> CarrierFactoryFn:
    def build(settings: Settings, http_client: ResilientHTTPClient) -> BaseCarrier:
        return cls(settings.carrier_credentials(carrier_name), http_client)
    return build


class CarrierRegistry:
    """
    Maps carrier names to adapter instances.

    Seeded from every @register_carrier implementation; extra carriers can be
    added per registry with register().
    """

    def __init__(
        self,
        settings: Settings,
        http_client: ResilientHTTPClient,
        carriers: Optional[Dict[str, CarrierFactoryFn]] = None,
    ):
        self._settings = settings
        self._http_client = http_client
        self._factories: Dict[str, CarrierFactoryFn] = {}
        self._instances: Dict[str, BaseCarrier] = {}

        if carriers is None:
            carriers = {name: _class_factory(name, cls) for name, cls in _CARRIER_REGISTRY.items()}
        for name, factory in carriers.items():
            self.register(name, factory)

    def register(self, carrier_name: str, factory: CarrierFactoryFn) -> None:
        """Add or replace a carrier. Drops any adapter already built for that name."""
        key = _normalize(carrier_name)
        self._factories[key] = factory
        self._instances.pop(key, None)

    def create(self, carrier_name: str) -> BaseCarrier:
        """
        Get the adapter for a carrier.

        Raises:
            CarrierNotFoundError if the name is not registered
        """
        key = _normalize(carrier_name)
        factory = self._factories.get(key)
        if factory is None:
            raise CarrierNotFoundError(carrier_name, self._factories)

        carrier = self._instances.get(key)
        if carrier is None:
            carrier = factory(self._settings, self._http_client)
            self._instances[key] = carrier
            logger.info(f"Created carrier adapter: {key} -> {carrier.__class__.__name__}")
        return carrier

    def list_supported(self) -> Set[str]:
        """Names of all registered carriers."""
        return set(self._factories)


# Import carriers to trigger registration
# These imports must be at the bottom to avoid circular imports
from carrier_rates.modules.shipping.carriers.ups import UPSCarrier  # noqa: E402, F401
