"""
UPS Rating API wire schemas (response side).

UPS returns several fields as either a single object or an array of them
(RatedShipment, alerts, itemized charges). They are normalized to lists
here, in the validators, and nowhere else.
"""
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_list(v: Any) -> Any:
    """Single object -> one-element list; list and None pass through."""
    if isinstance(v, dict):
        return [v]
    return v


class UPSModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class UPSCode(UPSModel):
    code: str = Field(alias="Code")
    description: Optional[str] = Field(None, alias="Description")


class UPSMonetaryValue(UPSModel):
    currency_code: str = Field(alias="CurrencyCode")
    monetary_value: Decimal = Field(alias="MonetaryValue")


class UPSItemizedCharge(UPSMonetaryValue):
    code: Optional[str] = Field(None, alias="Code")


class UPSTaxCharge(UPSModel):
    type: Optional[str] = Field(None, alias="Type")
    monetary_value: Decimal = Field(alias="MonetaryValue")


class UPSBillingWeight(UPSModel):
    unit_of_measurement: UPSCode = Field(alias="UnitOfMeasurement")
    weight: str = Field(alias="Weight")


class UPSGuaranteedDelivery(UPSModel):
    business_days_in_transit: Optional[str] = Field(None, alias="BusinessDaysInTransit")
    delivery_by_time: Optional[str] = Field(None, alias="DeliveryByTime")


class UPSArrival(UPSModel):
    date: str = Field(alias="Date")
    time: Optional[str] = Field(None, alias="Time")


class UPSEstimatedArrival(UPSModel):
    arrival: Optional[UPSArrival] = Field(None, alias="Arrival")
    business_days_in_transit: Optional[str] = Field(None, alias="BusinessDaysInTransit")


class UPSServiceSummary(UPSModel):
    estimated_arrival: Optional[UPSEstimatedArrival] = Field(None, alias="EstimatedArrival")


class UPSTimeInTransit(UPSModel):
    business_days_in_transit: Optional[str] = Field(None, alias="BusinessDaysInTransit")
    service_summary: Optional[UPSServiceSummary] = Field(None, alias="ServiceSummary")


class UPSNegotiatedRateCharges(UPSModel):
    total_charge: UPSMonetaryValue = Field(alias="TotalCharge")


class UPSRatedShipment(UPSModel):
    service: UPSCode = Field(alias="Service")
    rated_shipment_alert: Optional[List[UPSCode]] = Field(None, alias="RatedShipmentAlert")
    billing_weight: Optional[UPSBillingWeight] = Field(None, alias="BillingWeight")
    transportation_charges: Optional[UPSMonetaryValue] = Field(None, alias="TransportationCharges")
    base_service_charge: Optional[UPSMonetaryValue] = Field(None, alias="BaseServiceCharge")
    service_options_charges: Optional[UPSMonetaryValue] = Field(None, alias="ServiceOptionsCharges")
    itemized_charges: Optional[List[UPSItemizedCharge]] = Field(None, alias="ItemizedCharges")
    tax_charges: Optional[List[UPSTaxCharge]] = Field(None, alias="TaxCharges")
    total_charges: UPSMonetaryValue = Field(alias="TotalCharges")
    negotiated_rate_charges: Optional[UPSNegotiatedRateCharges] = Field(None, alias="NegotiatedRateCharges")
    guaranteed_delivery: Optional[UPSGuaranteedDelivery] = Field(None, alias="GuaranteedDelivery")
    time_in_transit: Optional[UPSTimeInTransit] = Field(None, alias="TimeInTransit")

    normalize_lists = field_validator(
        "rated_shipment_alert", "itemized_charges", "tax_charges", mode="before"
    )(_as_list)


class UPSTransactionReference(UPSModel):
    customer_context: Optional[str] = Field(None, alias="CustomerContext")


class UPSResponseStatus(UPSModel):
    code: str = Field(alias="Code")
    description: Optional[str] = Field(None, alias="Description")


class UPSResponseHeader(UPSModel):
    response_status: UPSResponseStatus = Field(alias="ResponseStatus")
    alert: Optional[List[UPSCode]] = Field(None, alias="Alert")
    transaction_reference: Optional[UPSTransactionReference] = Field(None, alias="TransactionReference")

    normalize_alerts = field_validator("alert", mode="before")(_as_list)


class UPSRateResponse(UPSModel):
    """Body of the ``RateResponse`` key."""
    response: UPSResponseHeader = Field(alias="Response")
    rated_shipment: List[UPSRatedShipment] = Field(alias="RatedShipment")

    normalize_rated_shipment = field_validator("rated_shipment", mode="before")(_as_list)


class UPSErrorDetail(UPSModel):
    code: str
    message: str


class UPSErrorBody(UPSModel):
    errors: List[UPSErrorDetail] = Field(..., min_length=1)


class UPSErrorResponse(UPSModel):
    """UPS error envelope: {"response": {"errors": [{"code", "message"}]}}"""
    response: UPSErrorBody
