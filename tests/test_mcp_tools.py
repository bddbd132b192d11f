import json

import httpx
import mcp.types as types
import pytest

from flupp.mcp.client import FluppApiError, FluppClient
from flupp.mcp.server import create_server
from flupp.mcp.tools import TOOLS, ToolError, call_tool

BOOKING_ARGS = {
    "petName": "Biscuit",
    "species": "dog",
    "serviceType": "boarding",
    "startAt": "2030-03-08T09:00:00+00:00",
    "endAt": "2030-03-09T09:00:00+00:00",
    "priceCents": 4500,
    "customerEmail": "owner@flupp.co.uk",
}


def fake_api(requests: list):
    """MockTransport answering like a healthy Flupp API."""

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/health":
            return httpx.Response(200, json={"ok": True, "status": "healthy"})
        if request.method == "POST" and request.url.path == "/api/bookings":
            body = json.loads(request.content)
            return httpx.Response(201, json={"id": "b1", "status": "pending_payment", **body})
        if request.url.path == "/api/payments/create-intent":
            return httpx.Response(
                200, json={"clientSecret": "pi_1_secret", "paymentIntentId": "pi_1", "reused": False}
            )
        if request.url.path == "/api/bookings/b1":
            return httpx.Response(200, json={"id": "b1", "status": "pending_payment"})
        return httpx.Response(404, json={"detail": "Not found", "code": "NOT_FOUND"})

    return httpx.MockTransport(handler)


@pytest.fixture
def requests_seen():
    return []


@pytest.fixture
async def client(requests_seen):
    async with FluppClient("http://flupp.test", transport=fake_api(requests_seen)) as c:
        yield c


def test_registry_has_all_tools():
    assert set(TOOLS) == {
        "ping",
        "flupp_health",
        "booking_create",
        "payments_createIntent",
        "webhook_validate",
        "orchestrate_bookingFlow",
    }
    schema = TOOLS["booking_create"].describe()["inputSchema"]
    assert "petName" in schema["properties"]
    assert "petName" in schema["required"]


async def test_ping_and_health(client):
    assert (await call_tool("ping", {}, client))["pong"] is True
    assert (await call_tool("flupp_health", None, client))["ok"] is True


async def test_booking_create_proxies_camel_case_body(client, requests_seen):
    result = await call_tool("booking_create", BOOKING_ARGS, client)

    assert result["id"] == "b1"
    sent = json.loads(requests_seen[-1].content)
    assert sent == BOOKING_ARGS


async def test_arguments_are_validated(client, requests_seen):
    with pytest.raises(ToolError, match="Invalid arguments for booking_create"):
        await call_tool("booking_create", {"petName": "Biscuit"}, client)
    with pytest.raises(ToolError, match="Unknown tool"):
        await call_tool("booking_delete", {}, client)
    assert requests_seen == []


async def test_payments_create_intent(client, requests_seen):
    result = await call_tool("payments_createIntent", {"bookingId": "b1"}, client)

    assert result["paymentIntentId"] == "pi_1"
    assert json.loads(requests_seen[-1].content) == {"bookingId": "b1"}


async def test_webhook_validate_is_dry_run_only(client):
    result = await call_tool(
        "webhook_validate",
        {"webhookType": "stripe", "payload": {"type": "payment_intent.succeeded"}, "signature": "t=1,v1=x"},
        client,
    )
    assert result["validation"]["status"] == "validated_dry_run"
    assert result["validation"]["hasSignature"] is True

    with pytest.raises(ToolError, match="not supported"):
        await call_tool(
            "webhook_validate",
            {"webhookType": "stripe", "payload": {}, "dryRun": False},
            client,
        )


async def test_orchestrate_dry_run_makes_no_calls(client, requests_seen):
    result = await call_tool("orchestrate_bookingFlow", BOOKING_ARGS, client)

    assert result["success"] is True
    assert result["dryRun"] is True
    assert [s["status"] for s in result["steps"]] == ["completed"] * 3
    assert result["paymentIntent"]["bookingId"] == result["booking"]["id"]
    assert requests_seen == []


async def test_orchestrate_real_run(client, requests_seen):
    result = await call_tool(
        "orchestrate_bookingFlow", {**BOOKING_ARGS, "dryRun": False, "reportStatus": True}, client
    )

    assert result["success"] is True
    assert result["booking"]["id"] == "b1"
    assert result["paymentIntent"]["paymentIntentId"] == "pi_1"
    assert [s["action"] for s in result["steps"]] == [
        "create_booking",
        "create_payment_intent",
        "report_status",
    ]
    assert [r.url.path for r in requests_seen] == [
        "/api/bookings",
        "/api/payments/create-intent",
        "/api/bookings/b1",
    ]


async def test_orchestrate_reports_failed_step():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"detail": "overlap", "code": "BOOKING_CONFLICT"})

    async with FluppClient("http://flupp.test", transport=httpx.MockTransport(handler)) as c:
        result = await call_tool("orchestrate_bookingFlow", {**BOOKING_ARGS, "dryRun": False}, c)

    assert result["success"] is False
    assert "overlap" in result["error"]
    assert result["steps"] == [{"step": 1, "action": "create_booking", "status": "failed"}]


async def test_client_maps_timeouts():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    async with FluppClient("http://flupp.test", transport=httpx.MockTransport(handler)) as c:
        with pytest.raises(FluppApiError) as exc_info:
            await c.health()
    assert exc_info.value.status_code == 504



async def test_server_lists_registry_tools(client):
    server = create_server(client)

    listed = await server.request_handlers[types.ListToolsRequest](
        types.ListToolsRequest(method="tools/list")
    )

    tools = {t.name: t for t in listed.root.tools}
    assert set(tools) == set(TOOLS)
    assert "petName" in tools["booking_create"].inputSchema["properties"]


async def test_server_calls_tool(client):
    server = create_server(client)

    called = await server.request_handlers[types.CallToolRequest](
        types.CallToolRequest(
            method="tools/call",
            params=types.CallToolRequestParams(name="ping", arguments={}),
        )
    )

    assert not called.root.isError
    assert json.loads(called.root.content[0].text)["pong"] is True


async def test_server_reports_tool_errors(client, requests_seen):
    server = create_server(client)

    failed = await server.request_handlers[types.CallToolRequest](
        types.CallToolRequest(
            method="tools/call",
            params=types.CallToolRequestParams(name="booking_delete", arguments={}),
        )
    )

    assert failed.root.isError is True
    assert "Unknown tool" in failed.root.content[0].text
    assert requests_seen == []
