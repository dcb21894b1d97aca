"""Tests for push notification delivery."""
import json

import httpx
import pytest

from app.db.mongodb import APP_USERS
from app.services.notification import (
    Notification,
    NotificationDispatcher,
    PushGateway,
    is_plausible_token,
    notification_details,
)

TOKEN = "device-token-0123456789"
GATEWAY_URL = "https://push.test/v1/messages:send"


def gateway(handler) -> PushGateway:
    return PushGateway(url=GATEWAY_URL, api_key="secret", timeout=1.0, transport=httpx.MockTransport(handler))


class TestCatalog:
    def test_known_status(self):
        details = notification_details("PickedUp")
        assert details.type == "notify_request_pickedup"
        assert details.title == "Request PickedUp"

    def test_completed_by_refiller_has_its_own_message(self):
        assert notification_details("Completed").type == "notify_order_completed"
        assert notification_details("Completed", is_refiller=True).type == "notify_request_completed"

    def test_unknown_status(self):
        assert notification_details("Accepted") is None

    @pytest.mark.parametrize("token,expected", [(TOKEN, True), ("short", False), ("", False), (None, False)])
    def test_token_sanity(self, token, expected):
        assert is_plausible_token(token) is expected


class TestPushGateway:
    @pytest.mark.asyncio
    async def test_posts_message_with_bearer_key(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"name": "projects/x/messages/1"})

        result = await gateway(handler).send(TOKEN, notification_details("Pending"), {"requestId": "REQ-0001"})

        assert result.success
        assert result.message_id == "projects/x/messages/1"
        assert seen["auth"] == "Bearer secret"
        message = seen["body"]["message"]
        assert message["token"] == TOKEN
        assert message["notification"]["title"] == "New Request"
        assert message["data"] == {"type": "notify_new_request", "requestId": "REQ-0001"}

    @pytest.mark.asyncio
    async def test_unregistered_token_is_flagged(self):
        def handler(request):
            return httpx.Response(404, json={"error": {"status": "NOT_FOUND",
                                                       "details": [{"errorCode": "UNREGISTERED"}]}})

        result = await gateway(handler).send(TOKEN, notification_details("Pending"), {})

        assert not result.success
        assert result.should_remove_token
        assert "UNREGISTERED" in result.message

    @pytest.mark.asyncio
    async def test_server_error_keeps_token(self):
        result = await gateway(lambda request: httpx.Response(503, text="busy")).send(
            TOKEN, notification_details("Pending"), {}
        )
        assert not result.success
        assert not result.should_remove_token

    @pytest.mark.asyncio
    async def test_unreachable_gateway(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        result = await gateway(handler).send(TOKEN, notification_details("Pending"), {})

        assert not result.success
        assert "unreachable" in result.message

    @pytest.mark.asyncio
    async def test_not_configured(self):
        result = await PushGateway(url="").send(TOKEN, notification_details("Pending"), {})
        assert not result.success


class TestDispatcher:
    @pytest.mark.asyncio
    async def test_delivers_to_each_recipient(self, db):
        await db[APP_USERS].insert_many([
            {"userId": "K1", "fcmToken": TOKEN},
            {"userId": "K2", "fcmToken": TOKEN + "-2"},
        ])
        tokens = []

        def handler(request):
            tokens.append(json.loads(request.content)["message"]["token"])
            return httpx.Response(200, json={})

        results = await NotificationDispatcher(gateway=gateway(handler)).dispatch([
            Notification("K1", "REQ-0001", "Pending"),
            Notification("K2", "REQ-0001", "Pending"),
        ])

        assert [result.success for result in results] == [True, True]
        assert tokens == [TOKEN, TOKEN + "-2"]

    @pytest.mark.asyncio
    async def test_missing_token_is_skipped_without_raising(self, db):
        await db[APP_USERS].insert_one({"userId": "K1", "fcmToken": ""})

        results = await NotificationDispatcher(gateway=gateway(lambda r: httpx.Response(200))).dispatch([
            Notification("K1", "REQ-0001", "Pending"),
            Notification("GHOST", "REQ-0001", "Pending"),
        ])

        assert [result.success for result in results] == [False, False]

    @pytest.mark.asyncio
    async def test_stale_token_is_cleared(self, db):
        await db[APP_USERS].insert_one({"userId": "K1", "fcmToken": TOKEN, "userDevice": "android"})

        def handler(request):
            return httpx.Response(400, json={"error": {"details": [{"errorCode": "INVALID_ARGUMENT"}]}})

        await NotificationDispatcher(gateway=gateway(handler)).dispatch([Notification("K1", "REQ-0001", "Pending")])

        user = await db[APP_USERS].find_one({"userId": "K1"})
        assert user["fcmToken"] == ""

    @pytest.mark.asyncio
    async def test_unexpected_error_is_swallowed(self, db):
        await db[APP_USERS].insert_one({"userId": "K1", "fcmToken": TOKEN})

        def handler(request):
            raise RuntimeError("boom")

        results = await NotificationDispatcher(gateway=gateway(handler)).dispatch([
            Notification("K1", "REQ-0001", "Pending"),
        ])

        assert not results[0].success
        assert "boom" in results[0].message
