import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from api.credentials import CredentialBroker
from config.settings import CredentialsConfig
from errors import CredentialError
from models import Credential

from tests.helpers import API_KEY_URL, TOKEN_URL


@pytest.fixture
def cfg():
    return CredentialsConfig(
        token_url=TOKEN_URL,
        api_key_url=API_KEY_URL,
        session_token="sess-token",
        timeout_seconds=1.0,
    )


@pytest.fixture
def broker(cfg):
    return CredentialBroker(cfg)


async def test_oauth_token_success(httpx_mock, broker):
    httpx_mock.add_response(method="POST", url=TOKEN_URL, json={"access_token": "abc"})

    token = await broker.fetch_oauth_token("client", "secret")

    assert token == "abc"
    form = parse_qs(httpx_mock.get_request().content.decode())
    assert form == {"grant_type": ["client_credentials"], "client_id": ["client"], "client_secret": ["secret"]}


async def test_oauth_token_missing_field(httpx_mock, broker):
    httpx_mock.add_response(method="POST", url=TOKEN_URL, json={"token_type": "Bearer"})

    with pytest.raises(CredentialError, match="no access_token"):
        await broker.fetch_oauth_token("client", "secret")


async def test_oauth_token_unauthorized_carries_status(httpx_mock, broker):
    httpx_mock.add_response(method="POST", url=TOKEN_URL, status_code=401, text="invalid_client")

    with pytest.raises(CredentialError) as exc:
        await broker.fetch_oauth_token("client", "wrong")

    assert exc.value.status_code == 401
    assert "401" in exc.value.message
    assert "invalid_client" in exc.value.message


async def test_fetch_credential_success(httpx_mock, broker):
    httpx_mock.add_response(method="POST", url=API_KEY_URL, json={"apiKey": "k", "accessToken": "t"})

    credential = await broker.fetch_credential("HRIS", "/api/integration/Outbound/X")

    assert credential == Credential(api_key="k", access_token="t")
    request = httpx_mock.get_request()
    assert request.headers["session-Token"] == "sess-token"


async def test_fetch_credential_missing_api_key(httpx_mock, broker):
    httpx_mock.add_response(method="POST", url=API_KEY_URL, json={"accessToken": "t"})

    with pytest.raises(CredentialError, match="apiKey"):
        await broker.fetch_credential("HRIS", "/route")


async def test_timeout_is_a_credential_error(cfg):
    async def never_answers(request):
        await asyncio.sleep(30)
        return httpx.Response(200, json={})

    broker = CredentialBroker(cfg, client=httpx.AsyncClient(transport=httpx.MockTransport(never_answers)))

    with pytest.raises(CredentialError, match="timed out") as exc:
        await broker.fetch_credential("HRIS", "/route", timeout=0.1)

    assert exc.value.status_code is None
