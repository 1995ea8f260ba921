from __future__ import annotations

import json

import httpx
import pytest

from vacation_planner.services.account import (
    AccountPayload,
    AccountSyncError,
    HttpAccountClient,
    RedisAccountStore,
    account_key,
)
from vacation_planner.state import ProcessState


@pytest.mark.asyncio
async def test_redis_store_saves_to_redis_and_memory(mock_redis):
    state = ProcessState()
    store = RedisAccountStore(state, lambda: mock_redis, timeout=0.5)

    await store.save("u1", AccountPayload(planned_days=["2025-06-20"], week_notes={"2025-25": "Beach"}))

    stored = json.loads(mock_redis.store["vacation-days:u1"])
    assert stored["plannedDays"] == ["2025-06-20"]
    assert stored["updatedAt"]
    assert state.account_fallback[account_key("u1")]["weekNotes"] == {"2025-25": "Beach"}

    fetched = await store.fetch("u1")
    assert fetched.planned_days == ["2025-06-20"]
    assert fetched.week_notes == {"2025-25": "Beach"}


@pytest.mark.asyncio
async def test_redis_store_falls_back_to_memory_copy(mock_redis):
    state = ProcessState()
    store = RedisAccountStore(state, lambda: mock_redis, timeout=0.5)
    await store.save("u1", AccountPayload(planned_days=["2025-06-20"]))

    mock_redis.fail = True
    await store.save("u1", AccountPayload(planned_days=["2025-06-21"]))

    assert (await store.fetch("u1")).planned_days == ["2025-06-21"]
    assert await store.ping() is False


@pytest.mark.asyncio
async def test_redis_store_without_client_uses_memory():
    state = ProcessState()
    store = RedisAccountStore(state, lambda: None)

    assert (await store.fetch("u1")).planned_days == []
    await store.save("u1", AccountPayload(planned_days=["2025-06-20"]))
    assert (await store.fetch("u1")).planned_days == ["2025-06-20"]
    assert await store.ping() is True


@pytest.mark.asyncio
async def test_redis_store_discards_malformed_payload(mock_redis):
    store = RedisAccountStore(ProcessState(), lambda: mock_redis)
    mock_redis.store["vacation-days:u1"] = "{oops"

    assert await store.fetch("u1") == AccountPayload()


def test_payload_ignores_wrong_shapes():
    payload = AccountPayload.from_dict({"plannedDays": "2025-06-20", "weekNotes": []})

    assert payload.planned_days == []
    assert payload.week_notes == {}


def _client(handler):
    return HttpAccountClient(
        "http://accounts.test/",
        headers={"X-User-ID": "u1"},
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_http_client_fetch():
    def handler(request):
        assert request.url.path == "/v1/vacation-days"
        assert request.headers["X-User-ID"] == "u1"
        return httpx.Response(
            200, json={"plannedDays": ["2025-06-20"], "weekNotes": {}, "success": True}
        )

    payload = await _client(handler).fetch("u1")

    assert payload.planned_days == ["2025-06-20"]


@pytest.mark.asyncio
async def test_http_client_save_posts_payload():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True})

    await _client(handler).save("u1", AccountPayload(planned_days=["2025-06-20"]))

    assert seen["method"] == "POST"
    assert seen["body"] == {"plannedDays": ["2025-06-20"], "weekNotes": {}}


@pytest.mark.asyncio
async def test_http_client_error_status():
    def handler(request):
        return httpx.Response(500, text="boom")

    with pytest.raises(AccountSyncError, match="Server responded with 500"):
        await _client(handler).fetch("u1")


@pytest.mark.asyncio
async def test_http_client_unsuccessful_body():
    def handler(request):
        return httpx.Response(200, json={"success": False, "message": "quota exceeded"})

    with pytest.raises(AccountSyncError, match="quota exceeded"):
        await _client(handler).save("u1", AccountPayload())


@pytest.mark.asyncio
async def test_http_client_transport_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    with pytest.raises(AccountSyncError):
        await client.fetch("u1")
    assert await client.ping() is False
