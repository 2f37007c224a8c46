"""Tests du client Lengo Pay."""

import base64
import json
from datetime import datetime

import httpx
import pytest

from dashboard_partenaire.core.exceptions import (
    InvalidRequestError,
    ProviderConfigurationError,
    ProviderUnauthorized,
    ProviderUnavailable,
)
from dashboard_partenaire.services.lengo_client import LengoPayClient, parse_provider_date


async def test_check_status_sends_site_and_pay_id(fake_lengo):
    fake_lengo.respond("PAY-1", "SUCCESS", date="2024-05-01T10:00:00Z", amount=150000)

    snapshot = await fake_lengo.client().check_status("PAY-1")

    assert snapshot.status == "SUCCESS"
    assert snapshot.pay_id == "PAY-1"
    assert snapshot.amount == 150000
    request = fake_lengo.requests[0]
    assert request.method == "POST"
    assert json.loads(request.content) == {"site_id": "site-test", "pay_id": "PAY-1"}
    assert request.headers["Authorization"] == "Basic dGVzdC1sZW5nby1rZXk="
    assert request.headers["Accept"] == "application/json"


async def test_public_dict_hides_receiving_number(fake_lengo):
    fake_lengo.respond("PAY-1", "SUCCESS", phone="+224620000002")

    snapshot = await fake_lengo.client().check_status("PAY-1")

    assert snapshot.phone == "+224620000002"
    assert set(snapshot.public_dict()) == {"status", "pay_id", "date", "amount"}


async def test_unauthorized_keeps_raw_body(fake_lengo):
    fake_lengo.respond_raw("PAY-1", 401, '{"error": "Unauthorized !"}')

    with pytest.raises(ProviderUnauthorized) as exc_info:
        await fake_lengo.client().check_status("PAY-1")

    assert exc_info.value.status_code == 401
    assert "Unauthorized" in exc_info.value.raw_body


async def test_server_error_is_unavailable(fake_lengo):
    fake_lengo.respond_raw("PAY-1", 502, "Bad gateway")

    with pytest.raises(ProviderUnavailable) as exc_info:
        await fake_lengo.client().check_status("PAY-1")

    assert exc_info.value.status_code == 502
    assert exc_info.value.raw_body == "Bad gateway"


async def test_timeout_is_unavailable(fake_lengo, lengo_timeout):
    fake_lengo.raise_for("PAY-1", lengo_timeout)

    with pytest.raises(ProviderUnavailable):
        await fake_lengo.client().check_status("PAY-1")


async def test_connection_error_is_unavailable(fake_lengo):
    fake_lengo.raise_for("PAY-1", lambda request: httpx.ConnectError("refusé", request=request))

    with pytest.raises(ProviderUnavailable):
        await fake_lengo.client().check_status("PAY-1")


async def test_unparseable_body_is_unavailable(fake_lengo):
    fake_lengo.respond_raw("PAY-1", 200, "<html>maintenance</html>")

    with pytest.raises(ProviderUnavailable) as exc_info:
        await fake_lengo.client().check_status("PAY-1")

    assert exc_info.value.raw_body == "<html>maintenance</html>"


async def test_empty_pay_id_is_rejected(fake_lengo):
    with pytest.raises(InvalidRequestError):
        await fake_lengo.client().check_status("  ")
    assert fake_lengo.requests == []


async def test_missing_api_key_fails_before_any_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"status": "SUCCESS"})

    client = LengoPayClient(api_key="", transport=httpx.MockTransport(handler))

    with pytest.raises(ProviderConfigurationError):
        await client.check_status("PAY-1")
    assert calls == []


def test_default_key_is_not_a_placeholder():
    # La clé vient de l'environnement de test, jamais d'une valeur codée en dur
    client = LengoPayClient()
    assert base64.b64decode(client.api_key) == b"test-lengo-key"


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2024-05-01T10:00:00Z", datetime(2024, 5, 1, 10, 0, 0)),
        ("2024-05-01T12:00:00+02:00", datetime(2024, 5, 1, 10, 0, 0)),
        ("2024-05-01 10:00:00", datetime(2024, 5, 1, 10, 0, 0)),
        (None, None),
        ("", None),
        ("pas une date", None),
    ],
)
def test_parse_provider_date(value, expected):
    assert parse_provider_date(value) == expected
