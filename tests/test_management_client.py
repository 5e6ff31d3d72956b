import json

import httpx
import pytest

from kontent_restore.client.exceptions import (
    AuthenticationError,
    ConflictError,
    NetworkError,
    ServerError,
)
from kontent_restore.client.management_client import ManagementClient
from kontent_restore.config import ManagementApiConfig, RetryConfig

BASE = "https://manage.test/v2/projects/project-1"


def _client(handler, max_attempts=1):
    return ManagementClient(
        ManagementApiConfig(project_id="project-1", api_key="secret", base_url="https://manage.test/v2"),
        retry_config=RetryConfig(max_attempts=max_attempts, min_wait=0, max_wait=0),
        rate_limit=0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_list_languages_follows_continuation_token():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("x-continuation"))
        if request.headers.get("x-continuation") is None:
            return httpx.Response(
                200,
                json={
                    "languages": [{"codename": "en-US"}],
                    "pagination": {"continuation_token": "page-2"},
                },
            )
        return httpx.Response(
            200, json={"languages": [{"codename": "cs-CZ"}], "pagination": {"continuation_token": None}}
        )

    async with _client(handler) as client:
        languages = await client.list_languages()

    assert [lang["codename"] for lang in languages] == ["en-US", "cs-CZ"]
    assert seen == [None, "page-2"]


@pytest.mark.asyncio
async def test_requests_carry_bearer_token_and_project_url():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(201, json={"id": "new-item"})

    async with _client(handler) as client:
        response = await client.add_content_item({"name": "Hello"})

    assert response == {"id": "new-item"}
    assert str(requests[0].url) == f"{BASE}/items"
    assert requests[0].headers["Authorization"] == "Bearer secret"
    assert json.loads(requests[0].content) == {"name": "Hello"}


@pytest.mark.asyncio
async def test_binary_upload_sends_raw_content():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"id": "file-1", "type": "internal"})

    async with _client(handler) as client:
        reference = await client.upload_binary_file("my cat.png", b"\x89PNG", "image/png")

    assert reference == {"id": "file-1", "type": "internal"}
    assert requests[0].url.raw_path == b"/v2/projects/project-1/files/my%20cat.png"
    assert requests[0].headers["Content-Type"] == "image/png"
    assert requests[0].content == b"\x89PNG"


@pytest.mark.asyncio
async def test_variant_endpoints_are_addressed_by_codename():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(204)

    async with _client(handler) as client:
        assert await client.publish_language_variant("hello", "en-US") == {}
        await client.change_workflow_step("hello", "en-US", "step-1")

    assert requests[0].method == "PUT"
    assert requests[0].url.path.endswith("/items/codename/hello/variants/codename/en-US/publish")
    assert requests[1].url.path.endswith("/variants/codename/en-US/workflow/step-1")


@pytest.mark.asyncio
async def test_conflict_maps_to_conflict_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"message": "Codename already exists"})

    async with _client(handler) as client:
        with pytest.raises(ConflictError) as exc_info:
            await client.add_taxonomy({"codename": "topics"})

    assert exc_info.value.status_code == 409
    assert "Codename already exists" in str(exc_info.value)


@pytest.mark.asyncio
async def test_unauthorized_maps_to_authentication_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Invalid key"})

    async with _client(handler) as client:
        with pytest.raises(AuthenticationError):
            await client.list_languages()


@pytest.mark.asyncio
async def test_server_errors_are_retried_then_surfaced():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(503, json={"message": "Unavailable"})

    async with _client(handler, max_attempts=3) as client:
        with pytest.raises(ServerError):
            await client.add_asset({"title": "Cat"})

    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_transient_failure_recovers_on_retry():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ConnectError("connection reset", request=request)
        return httpx.Response(200, json={"id": "asset-1"})

    async with _client(handler, max_attempts=2) as client:
        response = await client.add_asset({"title": "Cat"})

    assert response == {"id": "asset-1"}
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_network_error_after_last_attempt():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    async with _client(handler) as client:
        with pytest.raises(NetworkError):
            await client.add_asset({"title": "Cat"})
