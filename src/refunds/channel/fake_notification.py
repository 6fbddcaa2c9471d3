"""Fake notification adapter: records sent messages for testing."""

from uuid import uuid4

from refunds.channel.notification_port import NotificationPort, SendResult


class FakeNotificationAdapter(NotificationPort):
    """Notification adapter that keeps messages in memory for test assertions."""

    def __init__(self) -> None:
        self.sent_messages: list[dict] = []
        self.should_succeed = True
        self.raise_error = False
        self.failure_reason = "Notification delivery failed"

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Notification delivery failed",
        raise_error: bool = False,
    ) -> None:
        """Make sends fail (``should_succeed=False``) or blow up (``raise_error=True``)."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.raise_error = raise_error

    def send(
        self,
        to: str,
        subject: str,
        body: str,
        attachments: list[str] | None = None,
        timeout: float | None = None,
    ) -> SendResult:
        if self.raise_error:
            raise ConnectionError(self.failure_reason)
        if not self.should_succeed:
            return SendResult(success=False, failure_reason=self.failure_reason)

        message_id = f"msg-{uuid4().hex[:12]}"
        self.sent_messages.append(
            {
                "message_id": message_id,
                "to": to,
                "subject": subject,
                "body": body,
                "attachments": list(attachments or []),
            }
        )
        return SendResult(success=True, message_id=message_id)

    def messages_to(self, address: str) -> list[dict]:
        return [m for m in self.sent_messages if m["to"] == address]

    def reset(self) -> None:
        """Clear sent messages and restore default behaviour."""
        self.sent_messages.clear()
        self.should_succeed = True
        self.raise_error = False
        self.failure_reason = "Notification delivery failed"
