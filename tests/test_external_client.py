import asyncio
import json
import time

import httpx
import pytest

from api.external_client import ExternalClient
from models import Credential

URL = "https://hr.example.test/api/integration/Outbound/PeopleStrongHRServices_HRIS_testAgent"
CREDENTIAL = Credential(api_key="key-123", access_token="tok-456")


def _employees(n):
    return {"root": {"EmployeeMaster": {"EmployeeMasterData": [{"EmployeeCode": f"E{i}"} for i in range(n)]}}}


@pytest.fixture
def client():
    return ExternalClient(timeout_seconds=1.0, page_size=5)


async def test_post_truncates_list_to_page_size(httpx_mock, client):
    httpx_mock.add_response(method="POST", url=URL, status_code=200, json=_employees(12))

    outcome = await client.post(URL, {"integrationMasterName": "testAgent", "dynamicFilter": []}, CREDENTIAL)

    assert outcome.ok
    assert [e["EmployeeCode"] for e in outcome.value] == ["E0", "E1", "E2", "E3", "E4"]


async def test_post_sends_auth_headers_and_body(httpx_mock, client):
    httpx_mock.add_response(method="POST", url=URL, status_code=200, json=_employees(1))
    body = {"integrationMasterName": "testAgent", "dynamicFilter": [{"fieldCode": "x", "operator": "=", "value": "1"}]}

    await client.post(URL, body, CREDENTIAL)

    request = httpx_mock.get_request()
    assert request.headers["apikey"] == "key-123"
    assert request.headers["Authorization"] == "Bearer tok-456"
    assert json.loads(request.content) == body


async def test_post_non_2xx_becomes_failure(httpx_mock, client):
    httpx_mock.add_response(method="POST", url=URL, status_code=500, text="boom")

    outcome = await client.post(URL, {}, CREDENTIAL)

    assert not outcome.ok
    assert "500" in outcome.error
    assert "boom" in outcome.error


async def test_post_malformed_json_becomes_failure(httpx_mock, client):
    httpx_mock.add_response(method="POST", url=URL, status_code=200, text="<html>not json</html>")

    outcome = await client.post(URL, {}, CREDENTIAL)

    assert not outcome.ok
    assert "malformed JSON" in outcome.error


async def test_post_missing_nested_list_becomes_failure(httpx_mock, client):
    httpx_mock.add_response(method="POST", url=URL, status_code=200, json={"root": {"Other": {}}})

    outcome = await client.post(URL, {}, CREDENTIAL)

    assert not outcome.ok
    assert "root.EmployeeMaster.EmployeeMasterData" in outcome.error


async def test_post_network_error_becomes_failure(httpx_mock, client):
    httpx_mock.add_exception(httpx.ConnectError("connection refused"), method="POST", url=URL)

    outcome = await client.post(URL, {}, CREDENTIAL)

    assert not outcome.ok
    assert "connection refused" in outcome.error


async def test_post_without_list_path_returns_body(httpx_mock, client):
    httpx_mock.add_response(method="POST", url=URL, status_code=200, json={"status": "ok"})

    outcome = await client.post(URL, {}, CREDENTIAL, list_path=None)

    assert outcome.ok
    assert outcome.value == {"status": "ok"}


async def test_unresponsive_endpoint_fails_at_deadline():
    async def never_answers(request):
        await asyncio.sleep(30)
        return httpx.Response(200, json={})

    client = ExternalClient(client=httpx.AsyncClient(transport=httpx.MockTransport(never_answers)))

    start = time.monotonic()
    outcome = await client.post(URL, {}, CREDENTIAL, timeout=0.2)
    elapsed = time.monotonic() - start

    assert not outcome.ok
    assert "timed out" in outcome.error
    assert elapsed < 0.2 + 0.5


async def test_get_json_success(httpx_mock, client):
    httpx_mock.add_response(method="GET", url="https://wttr.in/Delhi?format=j1", json={"current_condition": []})

    outcome = await client.get_json("https://wttr.in/Delhi?format=j1")

    assert outcome.ok
    assert outcome.value == {"current_condition": []}
