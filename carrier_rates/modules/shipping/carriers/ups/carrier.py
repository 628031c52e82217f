"""
UPS Carrier Implementation

- Implements BaseCarrier against the UPS Rating API (v2403)
- OAuth client credentials via the inherited token manager
- Registered via @register_carrier decorator
"""
import logging
import uuid
from typing import Any, Dict

from pydantic import ValidationError

from carrier_rates.core.exceptions import CarrierIntegrationError, ErrorCode
from carrier_rates.models.rates import RateRequest, RateResponse
from carrier_rates.modules.shipping.carriers import register_carrier
from carrier_rates.modules.shipping.carriers.base import BaseCarrier
from carrier_rates.modules.shipping.carriers.ups.mapper import (
    map_rate_request_to_ups,
    map_ups_response_to_rates,
    parse_ups_error,
    request_option,
)
from carrier_rates.modules.shipping.carriers.ups.schemas import UPSRateResponse

logger = logging.getLogger(__name__)

UPS_API_VERSION = "v2403"
TRANSACTION_SOURCE = "carrier-rates"
SUCCESS_STATUS_CODE = "1"


@register_carrier("ups")
class UPSCarrier(BaseCarrier):
    """
    UPS shipping carrier implementation.

    "Rate" requests price one service; "Shop" requests price every service
    available between origin and destination.
    """

    name = "ups"
    RATING_PATH = f"/api/rating/{UPS_API_VERSION}/{{option}}"

    def rate_endpoint(self, request: RateRequest) -> str:
        return f"{self._credentials.base_url}{self.RATING_PATH.format(option=request_option(request))}"

    def rate_params(self, request: RateRequest) -> Dict[str, str]:
        # Adds TimeInTransit to each RatedShipment
        return {"additionalinfo": "timeintransit"}

    def rate_headers(self, request: RateRequest) -> Dict[str, str]:
        return {
            "transId": uuid.uuid4().hex,
            "transactionSrc": TRANSACTION_SOURCE,
        }

    def build_rate_payload(self, request: RateRequest) -> Dict[str, Any]:
        return map_rate_request_to_ups(request, self._credentials.account_number)

    def parse_rate_response(self, data: Any) -> UPSRateResponse:
        if not isinstance(data, dict):
            raise CarrierIntegrationError.create(
                ErrorCode.API_ERROR,
                "Invalid response format from UPS",
                details={"received_type": type(data).__name__},
                retryable=False,
            )

        # 200 with an error envelope instead of a RateResponse
        if "RateResponse" not in data:
            ups_error = parse_ups_error(data)
            if ups_error is not None:
                logger.error(f"[UPS] API error {ups_error.carrier_code}: {ups_error.message}")
                raise ups_error

        try:
            return UPSRateResponse.model_validate(data.get("RateResponse"))
        except ValidationError as e:
            logger.error(f"[UPS] Unexpected response shape: {e.error_count()} errors")
            raise CarrierIntegrationError.create(
                ErrorCode.API_ERROR,
                "Invalid response format from UPS",
                details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
                retryable=False,
                cause=e,
            ) from e

    def check_business_status(self, parsed: UPSRateResponse) -> None:
        status = parsed.response.response_status
        if status.code != SUCCESS_STATUS_CODE:
            raise CarrierIntegrationError.create(
                ErrorCode.CARRIER_ERROR,
                status.description or "UPS returned an error",
                details={"status_code": status.code},
                retryable=False,
                carrier_code=status.code,
            )

        for alert in parsed.response.alert or []:
            logger.info(f"[UPS] Alert {alert.code}: {alert.description}")

    def map_rate_response(self, parsed: UPSRateResponse) -> RateResponse:
        return map_ups_response_to_rates(parsed)

    def translate_error(self, error: CarrierIntegrationError) -> CarrierIntegrationError:
        # Only a 4xx body can hold a UPS error envelope; retryable errors stay as-is
        if error.code != ErrorCode.API_ERROR or not error.details:
            return error
        ups_error = parse_ups_error(error.details.get("data"))
        if ups_error is None:
            return error
        logger.error(f"[UPS] API error {ups_error.carrier_code}: {ups_error.message}")
        return ups_error
