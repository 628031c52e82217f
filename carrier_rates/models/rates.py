"""
Normalized Rate Models

Carrier-agnostic request/response types. Every carrier adapter translates
from RateRequest into its own wire format and back into RateResponse.
All models are immutable once constructed.
"""
from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from carrier_rates.core.utils import utc_isoformat


def _freeze(value: Any) -> Any:
    """Read-only copy: dicts -> mappingproxy, lists -> tuples, recursively."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


# ==================== Request Models ====================


class Address(_FrozenModel):
    """Postal address."""
    street1: str = Field(..., min_length=1)
    street2: Optional[str] = None
    city: str = Field(..., min_length=1)
    state: Optional[str] = Field(None, min_length=2, max_length=2)
    postal_code: str = Field(..., min_length=1)
    country_code: str = Field(..., min_length=2, max_length=2, pattern=r"^[A-Za-z]{2}$")
    is_residential: bool = False

    @field_validator("street1", "city", "postal_code")
    @classmethod
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("country_code", "state")
    @classmethod
    def uppercase_code(cls, v):
        return v.upper() if v else v


class Weight(_FrozenModel):
    value: float = Field(..., gt=0)
    unit: Literal["LBS", "KGS"] = "LBS"


class Dimensions(_FrozenModel):
    length: float = Field(..., gt=0)
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    unit: Literal["IN", "CM"] = "IN"


class DeclaredValue(_FrozenModel):
    amount: Decimal = Field(..., gt=0)
    currency: str = Field("USD", min_length=3, max_length=3, pattern=r"^[A-Za-z]{3}$")


class Package(_FrozenModel):
    """Package weight, dimensions and optional declared value."""
    weight: Weight
    dimensions: Optional[Dimensions] = None
    packaging_type: Optional[str] = None  # carrier-specific code
    declared_value: Optional[DeclaredValue] = None


class RequestedServices(_FrozenModel):
    saturday_delivery: Optional[bool] = None
    signature_required: Optional[bool] = None
    insurance: Optional[bool] = None


class RateRequest(_FrozenModel):
    """
    Normalized rate request.

    Revalidated whenever passed through model_validate, so a request built
    with model_construct() cannot slip past carrier-side validation.
    """
    model_config = ConfigDict(frozen=True, revalidate_instances="always")

    origin: Address
    destination: Address
    packages: Tuple[Package, ...] = Field(..., min_length=1)
    service_level: Optional[str] = None
    shipment_date: Optional[date] = None
    requested_services: Optional[RequestedServices] = None


# ==================== Response Models ====================


class Money(_FrozenModel):
    amount: Decimal
    currency: str = Field("USD", min_length=3, max_length=3, pattern=r"^[A-Za-z]{3}$")


class ChargeBreakdown(_FrozenModel):
    base_charge: Money
    fuel_surcharge: Optional[Money] = None
    accessorial_charges: Optional[Tuple[Money, ...]] = None
    taxes: Optional[Tuple[Money, ...]] = None


class RateQuote(_FrozenModel):
    """A single service quote from one carrier."""
    carrier: str
    service_code: str
    service_name: str
    total_charge: Money
    charge_breakdown: Optional[ChargeBreakdown] = None
    transit_days: Optional[int] = Field(None, ge=0)
    guaranteed_delivery: bool = False
    delivery_date: Optional[date] = None
    metadata: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("metadata")
    @classmethod
    def read_only_metadata(cls, v):
        return _freeze(v)

    @field_serializer("metadata")
    def serialize_metadata(self, v) -> Dict[str, Any]:
        return _thaw(v)


class RateResponse(_FrozenModel):
    """Quotes returned by one carrier for one request."""
    quotes: Tuple[RateQuote, ...] = ()
    request_id: Optional[str] = None
    timestamp: str = Field(default_factory=utc_isoformat)
