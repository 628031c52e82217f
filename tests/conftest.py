"""
Pytest configuration and fixtures for carrier rate tests.

HTTP is stubbed with httpx.MockTransport attached to the transport's
private AsyncClient, so no request ever leaves the process.
"""
import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from carrier_rates.core.config import Settings
from carrier_rates.core.http_client import ResilientHTTPClient, RetryConfig
from carrier_rates.modules.shipping.carriers.ups import UPSCarrier

UPS_TEST_BASE_URL = "https://ups.test"
UPS_TEST_TOKEN_URL = f"{UPS_TEST_BASE_URL}/security/v1/oauth/token"


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the real environment and any .env file."""
    return Settings(
        _env_file=None,
        UPS_CLIENT_ID="test-client-id",
        UPS_CLIENT_SECRET="test-client-secret",
        UPS_ACCOUNT_NUMBER="A1B2C3",
        UPS_BASE_URL=UPS_TEST_BASE_URL,
        HTTP_MAX_RETRIES=0,
    )


@pytest.fixture
def make_http_client() -> Callable[..., ResilientHTTPClient]:
    """Factory for a transport wired to a MockTransport handler, with no backoff delay."""

    def _make(handler: Callable[[httpx.Request], httpx.Response], max_retries: int = 0) -> ResilientHTTPClient:
        client = ResilientHTTPClient(
            retry_config=RetryConfig(
                max_retries=max_retries,
                base_delay=0,
                max_delay=0,
                jitter_max=0,
            ),
            timeout=5.0,
        )
        client._client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            timeout=client.timeout,
            headers=client.default_headers,
        )
        return client

    return _make


# ==================== UPS payloads ====================


def token_payload(access_token: str = "tok-1", expires_in: Any = "14399") -> Dict[str, Any]:
    """UPS sends expires_in and issued_at as strings."""
    return {
        "token_type": "Bearer",
        "issued_at": "1760000000000",
        "client_id": "test-client-id",
        "access_token": access_token,
        "expires_in": expires_in,
        "status": "approved",
    }


GROUND_SHIPMENT = {
    "Service": {"Code": "03", "Description": ""},
    "RatedShipmentAlert": {
        "Code": "110971",
        "Description": "Your invoice may vary from the displayed reference rates",
    },
    "BillingWeight": {"UnitOfMeasurement": {"Code": "LBS"}, "Weight": "6.0"},
    "TransportationCharges": {"CurrencyCode": "USD", "MonetaryValue": "14.10"},
    "BaseServiceCharge": {"CurrencyCode": "USD", "MonetaryValue": "12.50"},
    "ItemizedCharges": [
        {"Code": "375", "CurrencyCode": "USD", "MonetaryValue": "1.60"},
        {"Code": "270", "CurrencyCode": "USD", "MonetaryValue": "0.00"},
    ],
    "TotalCharges": {"CurrencyCode": "USD", "MonetaryValue": "14.10"},
    "NegotiatedRateCharges": {
        "TotalCharge": {"CurrencyCode": "USD", "MonetaryValue": "12.95"},
    },
    "TimeInTransit": {
        "ServiceSummary": {
            "EstimatedArrival": {
                "Arrival": {"Date": "20261023", "Time": "230000"},
                "BusinessDaysInTransit": "3",
            },
        },
    },
}

NEXT_DAY_AIR_SHIPMENT = {
    "Service": {"Code": "01", "Description": "UPS Next Day Air"},
    "TotalCharges": {"CurrencyCode": "USD", "MonetaryValue": "48.75"},
    "GuaranteedDelivery": {"BusinessDaysInTransit": "1", "DeliveryByTime": "10:30 A.M."},
}


def ups_rate_payload(
    rated_shipment: Any,
    status_code: str = "1",
    status_description: str = "Success",
) -> Dict[str, Any]:
    return {
        "RateResponse": {
            "Response": {
                "ResponseStatus": {"Code": status_code, "Description": status_description},
                "TransactionReference": {"CustomerContext": "Rating Request"},
            },
            "RatedShipment": rated_shipment,
        }
    }


class FakeUPSAPI:
    """
    In-process UPS: a token endpoint and the rating endpoint.

    Tests tweak the status/body attributes, then inspect the recorded requests.
    """

    def __init__(self):
        self.token_status = 200
        self.token_json: Any = token_payload()
        self.rate_status = 200
        self.rate_json: Any = ups_rate_payload([GROUND_SHIPMENT, NEXT_DAY_AIR_SHIPMENT])
        self.token_requests: List[httpx.Request] = []
        self.rate_requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/security/v1/oauth/token":
            self.token_requests.append(request)
            return httpx.Response(self.token_status, json=self.token_json)
        if request.url.path.startswith("/api/rating/"):
            self.rate_requests.append(request)
            return httpx.Response(self.rate_status, json=self.rate_json)
        return httpx.Response(404, json={"error": "not found"})

    @property
    def token_calls(self) -> int:
        return len(self.token_requests)

    def last_rate_body(self) -> Optional[Dict[str, Any]]:
        if not self.rate_requests:
            return None
        return json.loads(self.rate_requests[-1].content)


@pytest.fixture
def ups_api() -> FakeUPSAPI:
    return FakeUPSAPI()


@pytest.fixture
def ups_carrier(settings, ups_api, make_http_client) -> UPSCarrier:
    return UPSCarrier(settings.carrier_credentials("ups"), make_http_client(ups_api.handler))


@pytest.fixture
def sample_rate_request() -> Dict[str, Any]:
    return {
        "origin": {
            "street1": "100 Peachtree St NW",
            "city": "Atlanta",
            "state": "ga",
            "postal_code": "30303",
            "country_code": "us",
        },
        "destination": {
            "street1": "1 Market St",
            "street2": "Suite 300",
            "city": "San Francisco",
            "state": "CA",
            "postal_code": "94105",
            "country_code": "US",
            "is_residential": True,
        },
        "packages": [
            {
                "weight": {"value": 5, "unit": "LBS"},
                "dimensions": {"length": 10, "width": 8, "height": 4, "unit": "IN"},
            },
        ],
    }
