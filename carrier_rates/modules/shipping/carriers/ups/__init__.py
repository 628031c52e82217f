"""UPS carrier adapter."""
from carrier_rates.modules.shipping.carriers.ups.carrier import UPSCarrier

__all__ = ["UPSCarrier"]
