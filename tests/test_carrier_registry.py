import pytest

from carrier_rates.core.exceptions import (
    CarrierIntegrationError,
    CarrierNotFoundError,
    ConfigurationError,
)
from carrier_rates.core.http_client import ResilientHTTPClient
from carrier_rates.modules.shipping.carriers import CarrierRegistry
from carrier_rates.modules.shipping.carriers.ups import UPSCarrier


@pytest.fixture
def registry(settings) -> CarrierRegistry:
    return CarrierRegistry(settings, ResilientHTTPClient.from_settings(settings))


def test_lookup_is_case_insensitive(registry):
    carrier = registry.create("UPS")

    assert isinstance(carrier, UPSCarrier)
    assert registry.create("ups") is carrier
    assert registry.create(" Ups ") is carrier


def test_unknown_carrier_lists_supported(registry):
    with pytest.raises(CarrierNotFoundError) as exc_info:
        registry.create("fedex")

    error = exc_info.value
    assert str(error) == "Unsupported carrier: fedex. Supported carriers: ups"
    assert error.carrier_name == "fedex"
    assert error.supported == ["ups"]
    assert isinstance(error, ConfigurationError)
    assert not isinstance(error, CarrierIntegrationError)


def test_list_supported(registry):
    assert registry.list_supported() == {"ups"}


def test_ups_adapter_uses_settings_credentials(registry, settings):
    carrier = registry.create("ups")

    assert carrier._credentials.account_number == settings.UPS_ACCOUNT_NUMBER
    assert carrier._credentials.oauth_url == "https://ups.test/security/v1/oauth/token"


def test_register_adds_carrier_and_replaces_cached_instance(registry):
    built = []

    def factory(settings, http_client):
        carrier = object()
        built.append(carrier)
        return carrier

    registry.register("Local", factory)
    assert registry.list_supported() == {"ups", "local"}

    first = registry.create("local")
    assert registry.create("LOCAL") is first

    registry.register("local", factory)
    assert registry.create("local") is not first
    assert len(built) == 2


def test_adapters_for_different_carriers_do_not_share_token_state(registry, settings):
    registry.register(
        "ups-sandbox",
        lambda s, client: UPSCarrier(s.carrier_credentials("ups"), client),
    )

    assert registry.create("ups").token_manager is not registry.create("ups-sandbox").token_manager


def test_explicit_carrier_table_replaces_defaults(settings):
    registry = CarrierRegistry(settings, ResilientHTTPClient(), carriers={})

    assert registry.list_supported() == set()
    with pytest.raises(CarrierNotFoundError, match=r"Supported carriers: \(none\)"):
        registry.create("ups")
