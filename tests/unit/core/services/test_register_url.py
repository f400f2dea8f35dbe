import httpx
import pytest

from mpesapy.core.services.register_url import RegisterUrl
from mpesapy.domain.errors import MpesaError, NetworkError, RegisterUrlError, ValidationError
from mpesapy.domain.models.common import RegisterUrlResponse


@pytest.fixture
def register_url(gateway, make_executor):
    return RegisterUrl("api-key", gateway.client(), make_executor())


async def _register(register_url, **overrides):
    kwargs = dict(
        short_code="101010",
        confirmation_url="https://example.com/confirm",
        validation_url="https://example.com/validate",
    )
    kwargs.update(overrides)
    return await register_url.register(**kwargs)


async def test_successful_registration(register_url, gateway):
    gateway.queue(gateway.REGISTER_URL, (200, {"header": {
        "responseCode": 200,
        "responseMessage": "Request processed successfully",
        "customerMessage": "Request processed successfully",
        "timestamp": "2024-09-18T05:58:23.000",
    }}))

    response = await _register(register_url)

    assert response == RegisterUrlResponse(
        200, "Request processed successfully", "Request processed successfully", "2024-09-18T05:58:23.000"
    )
    request = gateway.requests[0]
    assert request.url.params["apikey"] == "api-key"
    assert gateway.body(request) == {
        "ShortCode": "101010",
        "ResponseType": "Completed",
        "CommandID": "RegisterURL",
        "ConfirmationURL": "https://example.com/confirm",
        "ValidationURL": "https://example.com/validate",
    }


async def test_error_header_on_4xx(register_url, gateway):
    gateway.queue(gateway.REGISTER_URL, (400, {"header": {
        "responseCode": "400.003.1001",
        "responseMessage": "Short Code already Registered",
    }}))

    with pytest.raises(RegisterUrlError) as exc_info:
        await _register(register_url)

    assert exc_info.value.message == "Short Code already Registered"
    assert exc_info.value.response_code == "400.003.1001"
    assert exc_info.value.short_code == "101010"


async def test_body_without_header_attaches_short_code(register_url, gateway):
    gateway.queue(gateway.REGISTER_URL, (200, {"errorCode": "500.003.02", "errorMessage": "System busy"}))

    with pytest.raises(RegisterUrlError) as exc_info:
        await _register(register_url)

    assert exc_info.value.message == "System busy"
    assert exc_info.value.short_code == "101010"


async def test_no_response_is_network_error(register_url, gateway):
    gateway.queue(gateway.REGISTER_URL, httpx.ConnectError)
    with pytest.raises(NetworkError, match="No response received from the API"):
        await _register(register_url)


async def test_undecodable_body_is_generic_error(register_url, gateway, mocker):
    mocker.patch.object(
        register_url.client, "post",
        return_value=httpx.Response(200, text="not json", request=httpx.Request("POST", gateway.REGISTER_URL)),
    )
    with pytest.raises(MpesaError, match="^Failed to register URLs: ") as exc_info:
        await _register(register_url)
    assert type(exc_info.value) is MpesaError


@pytest.mark.parametrize("overrides, field", [
    ({"confirmation_url": "http://example.com/confirm"}, "confirmation_url"),
    ({"validation_url": "example.com/validate"}, "validation_url"),
    ({"response_type": "Pending"}, "response_type"),
])
async def test_validation(register_url, gateway, overrides, field):
    with pytest.raises(ValidationError) as exc_info:
        await _register(register_url, **overrides)
    assert exc_info.value.field == field
    assert gateway.requests == []


async def test_cancelled_response_type_is_accepted(register_url, gateway):
    gateway.queue(gateway.REGISTER_URL, (200, {"header": {"responseCode": "200", "responseMessage": "ok"}}))

    await _register(register_url, response_type="Cancelled")

    assert gateway.body(gateway.requests[0])["ResponseType"] == "Cancelled"
