import httpx
import pytest

from carrier_rates.core.exceptions import CarrierIntegrationError, ErrorCode
from carrier_rates.core.http_client import (
    ResilientHTTPClient,
    RetryConfig,
    classify_exception,
    classify_response,
)


@pytest.mark.asyncio
async def test_request_retries_after_rate_limit_then_succeeds(make_http_client):
    call_count = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal call_count
        call_count += 1
        if call_count == 1:
            return httpx.Response(429, headers={"Retry-After": "0"})
        return httpx.Response(200, json={"ok": True})

    client = make_http_client(handler, max_retries=1)
    resp = await client.get("https://example.com/test")
    await client.close()

    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert call_count == 2


@pytest.mark.asyncio
async def test_retryable_failure_stops_after_max_retries(make_http_client):
    call_count = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal call_count
        call_count += 1
        return httpx.Response(503, text="maintenance")

    client = make_http_client(handler, max_retries=2)
    with pytest.raises(CarrierIntegrationError) as exc_info:
        await client.post("https://example.com/rate", json={})
    await client.close()

    assert call_count == 3
    assert exc_info.value.code == ErrorCode.SERVICE_UNAVAILABLE
    assert exc_info.value.retryable is True
    assert exc_info.value.details["status"] == 503
    assert exc_info.value.details["data"] == "maintenance"


@pytest.mark.asyncio
async def test_non_retryable_failure_makes_one_attempt(make_http_client):
    call_count = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal call_count
        call_count += 1
        return httpx.Response(400, json={"message": "bad field"})

    client = make_http_client(handler, max_retries=3)
    with pytest.raises(CarrierIntegrationError) as exc_info:
        await client.post("https://example.com/rate", json={})
    await client.close()

    assert call_count == 1
    assert exc_info.value.code == ErrorCode.API_ERROR
    assert exc_info.value.retryable is False
    assert exc_info.value.details == {"status": 400, "data": {"message": "bad field"}}


@pytest.mark.asyncio
async def test_network_error_is_classified_and_retried(make_http_client):
    call_count = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal call_count
        call_count += 1
        raise httpx.ConnectError("connection refused", request=request)

    client = make_http_client(handler, max_retries=1)
    with pytest.raises(CarrierIntegrationError) as exc_info:
        await client.get("https://example.com/test")
    await client.close()

    assert call_count == 2
    assert exc_info.value.code == ErrorCode.NETWORK_ERROR
    assert exc_info.value.retryable is True
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_timeout_is_classified(make_http_client):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    client = make_http_client(handler, max_retries=0)
    with pytest.raises(CarrierIntegrationError) as exc_info:
        await client.get("https://example.com/test")
    await client.close()

    assert exc_info.value.code == ErrorCode.TIMEOUT
    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_backoff_delays_passed_to_sleep(monkeypatch):
    monkeypatch.setattr("carrier_rates.core.http_client.random.uniform", lambda a, b: 0.0)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502)

    client = ResilientHTTPClient(retry_config=RetryConfig(max_retries=3))
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    client._sleep = fake_sleep

    with pytest.raises(CarrierIntegrationError):
        await client.get("https://example.com/test")
    await client.close()

    # One sleep between each pair of attempts
    assert delays == [1.0, 2.0, 4.0]


def test_backoff_is_capped_and_jitter_bounded(monkeypatch):
    client = ResilientHTTPClient(retry_config=RetryConfig(max_retries=6))

    monkeypatch.setattr("carrier_rates.core.http_client.random.uniform", lambda a, b: 0.0)
    base = [client._calculate_backoff(n) for n in range(6)]
    assert base == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]

    monkeypatch.setattr("carrier_rates.core.http_client.random.uniform", lambda a, b: b)
    with_jitter = [client._calculate_backoff(n) for n in range(6)]
    assert with_jitter == [2.0, 3.0, 5.0, 9.0, 11.0, 11.0]


def test_backoff_never_exceeds_cap_plus_jitter():
    client = ResilientHTTPClient()
    cfg = client.retry_config
    delays = [client._calculate_backoff(n) for n in range(10)]

    for n, delay in enumerate(delays):
        exponential = min(cfg.base_delay * cfg.exponential_base ** n, cfg.max_delay)
        assert exponential <= delay <= exponential + cfg.jitter_max


def _response(status: int, **kwargs) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("GET", "https://example.com"), **kwargs)


@pytest.mark.parametrize(
    "status,code,retryable",
    [
        (429, ErrorCode.RATE_LIMIT_EXCEEDED, True),
        (401, ErrorCode.AUTH_FAILED, False),
        (403, ErrorCode.AUTH_INVALID_CREDENTIALS, False),
        (500, ErrorCode.SERVICE_UNAVAILABLE, True),
        (503, ErrorCode.SERVICE_UNAVAILABLE, True),
        (404, ErrorCode.API_ERROR, False),
        (422, ErrorCode.API_ERROR, False),
    ],
)
def test_classify_response(status, code, retryable):
    error = classify_response(_response(status, json={}))
    assert error.code == code
    assert error.retryable is retryable


def test_classify_response_keeps_retry_after():
    error = classify_response(_response(429, headers={"Retry-After": "30"}))
    assert error.details == {"status": 429, "retry_after": "30"}


def test_classify_unexpected_exception():
    error = classify_exception(RuntimeError("boom"))
    assert error.code == ErrorCode.UNKNOWN_ERROR
    assert error.retryable is False
    assert "boom" in error.details["original_error"]


def test_classify_exception_passes_through_classified_errors():
    original = CarrierIntegrationError.create(ErrorCode.AUTH_FAILED, "nope")
    assert classify_exception(original) is original


@pytest.mark.asyncio
async def test_context_manager_opens_and_closes_pool():
    async with ResilientHTTPClient() as client:
        assert client._client is not None
    assert client._client is None


def test_from_settings(settings):
    client = ResilientHTTPClient.from_settings(settings)
    assert client.timeout == 30.0
    assert client.retry_config.max_retries == 0
