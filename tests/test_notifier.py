"""
Tests for the fire-and-forget LINE notifications.
"""

import logging

from services.notifier import LineNotifier, dispatch_notification, get_notifier, wait_for_notifications
from tests.conftest import RecordingNotifier


class TestDispatch:
    """Tests for background dispatch."""

    async def test_failure_is_logged_not_raised(self, caplog):
        notifier = RecordingNotifier(fail=True)

        with caplog.at_level(logging.ERROR):
            dispatch_notification(notifier.new_seller_registered("new@example.com", "New Seller"), name="new-seller:test")
            await wait_for_notifications()

        assert "new-seller:test" in caplog.text

    async def test_message_lists_seller(self):
        notifier = RecordingNotifier()

        await notifier.profile_completed("somchai@example.com", "Somchai", phone="081-234-5678")

        assert "somchai@example.com" in notifier.sent[0]
        assert "081-234-5678" in notifier.sent[0]

    async def test_unconfigured_push_is_skipped(self):
        notifier = LineNotifier()
        notifier.token = None

        assert notifier.is_configured is False
        assert await notifier.push("hello") is False


class TestNotificationApi:
    """Tests for the notification routes."""

    async def test_queued(self, client, notifier):
        resp = await client.post("/notifications/new-seller", json={"email": "new@example.com", "full_name": "New Seller"})
        await wait_for_notifications()

        assert resp.status_code == 202
        assert resp.json() == {"queued": True}
        assert "new@example.com" in notifier.sent[0]

    async def test_failing_channel_still_accepted(self, app, client):
        app.dependency_overrides[get_notifier] = lambda: RecordingNotifier(fail=True)

        resp = await client.post("/notifications/profile-completed", json={"email": "new@example.com"})
        await wait_for_notifications()

        assert resp.status_code == 202
        assert resp.json() == {"queued": True}

    async def test_not_configured(self, app, client):
        unconfigured = RecordingNotifier()
        unconfigured.recipients = []
        app.dependency_overrides[get_notifier] = lambda: unconfigured

        resp = await client.post("/notifications/new-seller", json={"email": "new@example.com"})

        assert resp.json() == {"queued": False}
        assert unconfigured.sent == []
