"""
UPS <-> normalized model translation.

Outbound: RateRequest -> UPS RateRequest JSON.
Inbound: validated UPSRateResponse -> RateResponse.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from carrier_rates.core.exceptions import CarrierIntegrationError, ErrorCode
from carrier_rates.core.utils import utc_isoformat
from carrier_rates.models.rates import (
    Address,
    ChargeBreakdown,
    Money,
    Package,
    RateQuote,
    RateRequest,
    RateResponse,
    RequestedServices,
)
from carrier_rates.modules.shipping.carriers.ups.schemas import (
    UPSErrorResponse,
    UPSMonetaryValue,
    UPSRatedShipment,
    UPSRateResponse,
)

logger = logging.getLogger(__name__)

CARRIER_NAME = "UPS"

# Symbolic service level -> UPS service code
UPS_SERVICE_CODES = {
    "GROUND": "03",
    "NEXT_DAY_AIR": "01",
    "SECOND_DAY_AIR": "02",
    "THREE_DAY_SELECT": "12",
    "NEXT_DAY_AIR_SAVER": "13",
    "NEXT_DAY_AIR_EARLY": "14",
    "WORLDWIDE_EXPRESS": "07",
    "WORLDWIDE_EXPEDITED": "08",
    "STANDARD": "11",
    "WORLDWIDE_EXPRESS_PLUS": "54",
    "WORLDWIDE_SAVER": "65",
}

# UPS service code -> display name
UPS_SERVICE_NAMES = {
    "01": "Next Day Air",
    "02": "Second Day Air",
    "03": "Ground",
    "07": "Worldwide Express",
    "08": "Worldwide Expedited",
    "11": "Standard",
    "12": "Three-Day Select",
    "13": "Next Day Air Saver",
    "14": "Next Day Air Early",
    "54": "Worldwide Express Plus",
    "65": "Worldwide Saver",
}

DEFAULT_PACKAGING_TYPE = "02"  # Customer Supplied Package
FUEL_SURCHARGE_CODES = {"375", "376"}
SIGNATURE_REQUIRED_DCIS_TYPE = "2"
NON_DOCUMENT_BILL_TYPE = "03"


def _format_number(value: float) -> str:
    """UPS wants plain decimal strings: 5.0 -> "5", 1e6 -> "1000000"."""
    return format(Decimal(str(value)).normalize(), "f")


# ==================== Outbound ====================


def map_address_to_ups(address: Address) -> Dict[str, Any]:
    """Convert a normalized Address to UPS API format."""
    address_lines = [address.street1]
    if address.street2:
        address_lines.append(address.street2)

    ups_address: Dict[str, Any] = {
        "AddressLine": address_lines,
        "City": address.city,
        "PostalCode": address.postal_code,
        "CountryCode": address.country_code,
    }
    if address.state:
        ups_address["StateProvinceCode"] = address.state
    # UPS treats the presence of an empty string as "residential"
    if address.is_residential:
        ups_address["ResidentialAddressIndicator"] = ""

    return ups_address


def map_package_to_ups(
    package: Package,
    requested_services: Optional[RequestedServices] = None,
) -> Dict[str, Any]:
    """Convert a normalized Package to UPS API format."""
    ups_package: Dict[str, Any] = {
        "PackagingType": {
            "Code": package.packaging_type or DEFAULT_PACKAGING_TYPE,
        },
        "PackageWeight": {
            "UnitOfMeasurement": {"Code": package.weight.unit},
            "Weight": _format_number(package.weight.value),
        },
    }

    if package.dimensions:
        ups_package["Dimensions"] = {
            "UnitOfMeasurement": {"Code": package.dimensions.unit},
            "Length": _format_number(package.dimensions.length),
            "Width": _format_number(package.dimensions.width),
            "Height": _format_number(package.dimensions.height),
        }

    service_options: Dict[str, Any] = {}
    insurance_declined = requested_services is not None and requested_services.insurance is False
    if package.declared_value and not insurance_declined:
        service_options["DeclaredValue"] = {
            "CurrencyCode": package.declared_value.currency,
            "MonetaryValue": str(package.declared_value.amount.quantize(Decimal("0.01"))),
        }
    if requested_services and requested_services.signature_required:
        service_options["DeliveryConfirmation"] = {"DCISType": SIGNATURE_REQUIRED_DCIS_TYPE}
    if service_options:
        ups_package["PackageServiceOptions"] = service_options

    return ups_package


def request_option(request: RateRequest) -> str:
    """Rate prices one service; Shop prices every available service."""
    return "Rate" if request.service_level else "Shop"


def resolve_service_code(service_level: str) -> str:
    """Symbolic level (GROUND) -> UPS code (03); raw codes pass through."""
    return UPS_SERVICE_CODES.get(service_level.upper(), service_level)


def map_rate_request_to_ups(
    request: RateRequest,
    account_number: str,
    customer_context: str = "Rating Request",
) -> Dict[str, Any]:
    """Build the full UPS rating request body."""
    packages = [map_package_to_ups(p, request.requested_services) for p in request.packages]

    shipment: Dict[str, Any] = {
        "Shipper": {
            "ShipperNumber": account_number,
            "Address": map_address_to_ups(request.origin),
        },
        "ShipTo": {
            "Address": map_address_to_ups(request.destination),
        },
        "ShipFrom": {
            "Address": map_address_to_ups(request.origin),
        },
        "Package": packages[0] if len(packages) == 1 else packages,
        "ShipmentRatingOptions": {
            "NegotiatedRatesIndicator": "",
        },
    }

    if request.service_level:
        shipment["Service"] = {"Code": resolve_service_code(request.service_level)}

    if request.requested_services and request.requested_services.saturday_delivery:
        shipment["ShipmentServiceOptions"] = {"SaturdayDeliveryIndicator": ""}

    if request.shipment_date:
        shipment["DeliveryTimeInformation"] = {
            "PackageBillType": NON_DOCUMENT_BILL_TYPE,
            "Pickup": {"Date": request.shipment_date.strftime("%Y%m%d")},
        }

    return {
        "RateRequest": {
            "Request": {
                "RequestOption": request_option(request),
                "TransactionReference": {
                    "CustomerContext": customer_context,
                },
            },
            "Shipment": shipment,
        }
    }


# ==================== Inbound ====================


def _money(value: UPSMonetaryValue) -> Money:
    return Money(amount=value.monetary_value, currency=value.currency_code)


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed >= 0 else None


def _parse_transit_days(shipment: UPSRatedShipment) -> Optional[int]:
    """
    Business days in transit, first usable value of:
    TimeInTransit -> GuaranteedDelivery -> ServiceSummary.EstimatedArrival
    """
    candidates = []
    tit = shipment.time_in_transit
    if tit:
        candidates.append(tit.business_days_in_transit)
    if shipment.guaranteed_delivery:
        candidates.append(shipment.guaranteed_delivery.business_days_in_transit)
    if tit and tit.service_summary and tit.service_summary.estimated_arrival:
        candidates.append(tit.service_summary.estimated_arrival.business_days_in_transit)

    for candidate in candidates:
        days = _parse_int(candidate)
        if days is not None:
            return days
    return None


def _parse_delivery_date(shipment: UPSRatedShipment) -> Optional[date]:
    tit = shipment.time_in_transit
    if not (tit and tit.service_summary and tit.service_summary.estimated_arrival):
        return None
    arrival = tit.service_summary.estimated_arrival.arrival
    if not arrival:
        return None
    try:
        return datetime.strptime(arrival.date, "%Y%m%d").date()
    except ValueError:
        logger.warning(f"[UPS] Unparseable arrival date: {arrival.date!r}")
        return None


def _build_breakdown(shipment: UPSRatedShipment) -> Optional[ChargeBreakdown]:
    base = shipment.base_service_charge or shipment.transportation_charges
    if base is None:
        return None

    fuel_total: Optional[Money] = None
    accessorials: List[Money] = []
    for charge in shipment.itemized_charges or []:
        if charge.code in FUEL_SURCHARGE_CODES:
            amount = charge.monetary_value + (fuel_total.amount if fuel_total else Decimal("0"))
            fuel_total = Money(amount=amount, currency=charge.currency_code)
        else:
            accessorials.append(_money(charge))

    taxes = [
        Money(amount=tax.monetary_value, currency=base.currency_code)
        for tax in shipment.tax_charges or []
    ]

    return ChargeBreakdown(
        base_charge=_money(base),
        fuel_surcharge=fuel_total,
        accessorial_charges=accessorials or None,
        taxes=taxes or None,
    )


def _build_metadata(shipment: UPSRatedShipment) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {}
    if shipment.billing_weight:
        metadata["billing_weight"] = {
            "unit": shipment.billing_weight.unit_of_measurement.code,
            "weight": shipment.billing_weight.weight,
        }
    if shipment.rated_shipment_alert:
        metadata["alerts"] = [
            {"code": alert.code, "description": alert.description}
            for alert in shipment.rated_shipment_alert
        ]
    if shipment.service_options_charges:
        metadata["service_options_charges"] = str(shipment.service_options_charges.monetary_value)
    return metadata


def map_rated_shipment(shipment: UPSRatedShipment) -> RateQuote:
    charges = (
        shipment.negotiated_rate_charges.total_charge
        if shipment.negotiated_rate_charges
        else shipment.total_charges
    )
    service_code = shipment.service.code
    service_name = (
        shipment.service.description
        or UPS_SERVICE_NAMES.get(service_code)
        or f"UPS Service {service_code}"
    )

    return RateQuote(
        carrier=CARRIER_NAME,
        service_code=service_code,
        service_name=service_name,
        total_charge=_money(charges),
        charge_breakdown=_build_breakdown(shipment),
        transit_days=_parse_transit_days(shipment),
        guaranteed_delivery=shipment.guaranteed_delivery is not None,
        delivery_date=_parse_delivery_date(shipment),
        metadata=_build_metadata(shipment),
    )


def map_ups_response_to_rates(ups_response: UPSRateResponse) -> RateResponse:
    """Translate a validated UPS response; quotes keep UPS order."""
    reference = ups_response.response.transaction_reference
    return RateResponse(
        quotes=[map_rated_shipment(s) for s in ups_response.rated_shipment],
        request_id=reference.customer_context if reference else None,
        timestamp=utc_isoformat(),
    )


def parse_ups_error(error_data: Any) -> Optional[CarrierIntegrationError]:
    """
    Recognize the UPS error envelope.

    Returns:
        CARRIER_ERROR carrying the first UPS error, or None if the payload
        is not an error envelope
    """
    if not isinstance(error_data, dict) or "response" not in error_data:
        return None
    try:
        envelope = UPSErrorResponse.model_validate(error_data)
    except ValidationError:
        return None

    first = envelope.response.errors[0]
    return CarrierIntegrationError.create(
        ErrorCode.CARRIER_ERROR,
        first.message or "UPS API error",
        details={"errors": [e.model_dump() for e in envelope.response.errors]},
        retryable=False,
        carrier_code=first.code,
    )
