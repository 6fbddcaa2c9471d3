"""Fire-and-forget delivery of customer notifications.

Workflows call ``notify_user`` after their state change is decided. Any
failure here (unknown user, adapter error, timeout, document rendering) is
logged and swallowed so it never turns a successful operation into an error.
"""

from refunds.channel import (
    collaborator_timeout,
    get_document_generator,
    get_notifier,
    get_user_directory,
)
from refunds.utils.logging import logger


def generate_document(kind: str, data: dict) -> str | None:
    """Render a document for attachment; ``None`` when generation fails."""
    try:
        return get_document_generator().generate(kind, data, timeout=collaborator_timeout())
    except Exception as e:
        logger.error(
            "Document generation failed",
            kind=kind,
            error=str(e),
            error_type=type(e).__name__,
        )
        return None


def notify_user(
    user_id: str,
    template,
    context: dict,
    attachments: list[str] | None = None,
) -> bool:
    """Render ``template`` with the user's name and send it. Returns success."""
    try:
        contact = get_user_directory().find_by_id(str(user_id))
        if contact is None:
            logger.warning(
                "Notification skipped, user not found",
                user_id=str(user_id),
                notification_type=template.notification_type,
            )
            return False

        content = template.render({"customer_name": contact.name, **context})
        result = get_notifier().send(
            to=contact.email,
            subject=content["subject"],
            body=content["body"],
            attachments=attachments,
            timeout=collaborator_timeout(),
        )
    except Exception as e:
        logger.error(
            "Notification dispatch failed",
            user_id=str(user_id),
            notification_type=template.notification_type,
            error=str(e),
            error_type=type(e).__name__,
        )
        return False

    if not result.success:
        logger.error(
            "Notification rejected by channel",
            user_id=str(user_id),
            notification_type=template.notification_type,
            reason=result.failure_reason,
        )
        return False

    logger.info(
        "Notification sent",
        user_id=str(user_id),
        notification_type=template.notification_type,
        message_id=result.message_id,
    )
    return True
