"""Collaborator adapter registry: notifications, documents and user lookup.

Each collaborator is a singleton selected by an environment variable
(``NOTIFICATION_ADAPTER``, ``DOCUMENT_ADAPTER``, ``USER_DIRECTORY_ADAPTER``).
Only the ``fake`` adapters ship; tests can swap instances with ``set_*``.
"""

import os

from refunds.channel.document_port import DocumentGeneratorPort
from refunds.channel.notification_port import NotificationPort
from refunds.channel.user_directory_port import UserDirectoryPort

DEFAULT_TIMEOUT_SECONDS = 10.0

_notifier: NotificationPort | None = None
_document_generator: DocumentGeneratorPort | None = None
_user_directory: UserDirectoryPort | None = None


def collaborator_timeout() -> float:
    """Timeout (seconds) passed to every collaborator call."""
    return float(os.environ.get("REFUNDS_COLLABORATOR_TIMEOUT", DEFAULT_TIMEOUT_SECONDS))


def _adapter_name(env_var: str) -> str:
    adapter = os.environ.get(env_var, "fake")
    if adapter != "fake":
        raise ValueError(f"Unknown adapter for {env_var}: {adapter}")
    return adapter


def get_notifier() -> NotificationPort:
    """Return the configured notification adapter (singleton)."""
    global _notifier
    if _notifier is None:
        _adapter_name("NOTIFICATION_ADAPTER")
        from refunds.channel.fake_notification import FakeNotificationAdapter

        _notifier = FakeNotificationAdapter()
    return _notifier


def set_notifier(notifier: NotificationPort) -> None:
    global _notifier
    _notifier = notifier


def get_document_generator() -> DocumentGeneratorPort:
    global _document_generator
    if _document_generator is None:
        _adapter_name("DOCUMENT_ADAPTER")
        from refunds.channel.fake_document import FakeDocumentGenerator

        _document_generator = FakeDocumentGenerator()
    return _document_generator


def set_document_generator(generator: DocumentGeneratorPort) -> None:
    global _document_generator
    _document_generator = generator


def get_user_directory() -> UserDirectoryPort:
    global _user_directory
    if _user_directory is None:
        _adapter_name("USER_DIRECTORY_ADAPTER")
        from refunds.channel.fake_user_directory import FakeUserDirectory

        _user_directory = FakeUserDirectory()
    return _user_directory


def set_user_directory(directory: UserDirectoryPort) -> None:
    global _user_directory
    _user_directory = directory


def reset_channels() -> None:
    """Reset all collaborator singletons (useful for testing)."""
    global _notifier, _document_generator, _user_directory
    _notifier = None
    _document_generator = None
    _user_directory = None
