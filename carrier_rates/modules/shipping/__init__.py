"""
Shipping Module

- BaseCarrier interface for all carrier implementations
- CarrierRegistry for name-based adapter lookup
- OAuthTokenManager shared by OAuth-authenticated carriers
"""
from carrier_rates.modules.shipping.carriers import CarrierRegistry, register_carrier
from carrier_rates.modules.shipping.carriers.base import BaseCarrier
from carrier_rates.modules.shipping.oauth import OAuthTokenManager

__all__ = [
    "CarrierRegistry",
    "register_carrier",
    "BaseCarrier",
    "OAuthTokenManager",
]
