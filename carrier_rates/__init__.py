"""
Multi-carrier shipping rate integration.

    from carrier_rates import create_service

    async with create_service() as service:
        response = await service.get_rates("ups", request)
"""
from carrier_rates.core.config import Settings, load_settings
from carrier_rates.core.exceptions import (
    CarrierError,
    CarrierIntegrationError,
    CarrierNotFoundError,
    ConfigurationError,
    ErrorCode,
)
from carrier_rates.core.logging_config import configure_logging
from carrier_rates.models import (
    Address,
    ChargeBreakdown,
    DeclaredValue,
    Dimensions,
    Money,
    Package,
    RateQuote,
    RateRequest,
    RateResponse,
    RequestedServices,
    Weight,
)
from carrier_rates.services.carrier_service import CarrierIntegrationService, create_service
from carrier_rates.services.rate_shopping import RateShoppingAggregator, cheapest_quotes

__version__ = "1.0.0"

__all__ = [
    "Settings",
    "load_settings",
    "configure_logging",
    "CarrierError",
    "CarrierIntegrationError",
    "CarrierNotFoundError",
    "ConfigurationError",
    "ErrorCode",
    "Address",
    "ChargeBreakdown",
    "DeclaredValue",
    "Dimensions",
    "Money",
    "Package",
    "RateQuote",
    "RateRequest",
    "RateResponse",
    "RequestedServices",
    "Weight",
    "CarrierIntegrationService",
    "create_service",
    "RateShoppingAggregator",
    "cheapest_quotes",
]
