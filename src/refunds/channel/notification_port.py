"""Notification port: abstract interface for outbound customer messages."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class SendResult:
    """Outcome of a single send attempt."""

    success: bool
    message_id: str | None = None
    failure_reason: str | None = None


class NotificationPort(ABC):
    """Abstract interface for notification adapters."""

    @abstractmethod
    def send(
        self,
        to: str,
        subject: str,
        body: str,
        attachments: list[str] | None = None,
        timeout: float | None = None,
    ) -> SendResult:
        """Send a message, optionally with file attachments.

        Implementations raise ``TimeoutError`` when ``timeout`` elapses.
        """
        ...
