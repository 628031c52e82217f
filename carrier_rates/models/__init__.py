from carrier_rates.models.rates import (
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

__all__ = [
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
]
