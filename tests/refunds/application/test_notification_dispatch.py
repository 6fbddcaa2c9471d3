import pytest
from refunds.channel import (
    collaborator_timeout,
    get_notifier,
    get_user_directory,
    reset_channels,
    set_notifier,
)
from refunds.channel.dispatch import generate_document, notify_user
from refunds.channel.fake_notification import FakeNotificationAdapter
from refunds.templates.cancellation import CancellationRejectedTemplate


class TestNotifyUser:
    def test_sends_rendered_template(self, notifier):
        assert notify_user("user-001", CancellationRejectedTemplate, {"order_code": "ORD-1"})
        message = notifier.messages_to("asha@example.com")[0]
        assert message["subject"] == "Cancellation Request Update - Order #ORD-1"
        assert "Hi Asha Rao" in message["body"]

    def test_unknown_user_is_skipped(self, notifier):
        assert notify_user("ghost", CancellationRejectedTemplate, {}) is False
        assert notifier.sent_messages == []

    def test_channel_rejection_returns_false(self, notifier):
        notifier.configure(should_succeed=False, failure_reason="Mailbox full")
        assert notify_user("user-001", CancellationRejectedTemplate, {}) is False

    def test_adapter_error_is_swallowed(self, notifier):
        notifier.configure(raise_error=True)
        assert notify_user("user-001", CancellationRejectedTemplate, {}) is False

    def test_timeout_is_swallowed(self):
        class SlowNotifier(FakeNotificationAdapter):
            def send(self, *args, **kwargs):
                raise TimeoutError("too slow")

        set_notifier(SlowNotifier())
        assert notify_user("user-001", CancellationRejectedTemplate, {}) is False


class TestGenerateDocument:
    def test_returns_path(self, documents):
        path = generate_document("refund", {"order_code": "ORD-1"})
        assert path.startswith("/tmp/refund-documents/refund-")
        assert documents.calls[0]["data"]["order_code"] == "ORD-1"

    def test_failure_returns_none(self, documents):
        documents.configure(should_succeed=False)
        assert generate_document("invoice", {}) is None


class TestRegistry:
    def test_singletons_reset(self):
        notifier = get_notifier()
        assert get_notifier() is notifier
        reset_channels()
        assert get_notifier() is not notifier

    def test_unknown_adapter_rejected(self, monkeypatch):
        reset_channels()
        monkeypatch.setenv("USER_DIRECTORY_ADAPTER", "ldap")
        with pytest.raises(ValueError):
            get_user_directory()

    def test_timeout_from_environment(self, monkeypatch):
        monkeypatch.setenv("REFUNDS_COLLABORATOR_TIMEOUT", "2.5")
        assert collaborator_timeout() == 2.5
