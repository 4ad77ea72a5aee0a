import smtplib
from email.message import EmailMessage
from typing import Optional

import structlog
from fastapi.encoders import jsonable_encoder

from app.core.config import settings

logger = structlog.get_logger()


def _send_email_smtp(msg: EmailMessage) -> None:
    """
    Send an email message over SMTP.
    This is intended to be called from Celery workers, not request handlers.
    """
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
        server.ehlo()
        server.starttls()
        server.ehlo()
        if settings.SMTP_USER and settings.SMTP_PASSWORD:
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.send_message(msg)


def send_email_async(task_name: str, *args) -> Optional[str]:
    """Queue an email task on the Celery broker and return its task id."""
    from app.tasks import email_tasks

    task = getattr(email_tasks, task_name)
    result = task.delay(*args)
    return result.id


def send_order_confirmation_email(recipient: Optional[str], order_payload: dict) -> None:
    """
    Queue the order-confirmation email (non-blocking via Celery).

    The order is already committed when this runs: every failure is logged
    and swallowed here so it never reaches the request handler.
    """
    order_id = order_payload.get("id")

    if not settings.EMAILS_ENABLED:
        logger.info("order_confirmation_skipped", order_id=order_id, reason="emails_disabled")
        return

    if not recipient:
        logger.warning("order_confirmation_no_recipient", order_id=order_id)
        return

    try:
        task_id = send_email_async(
            "send_order_confirmation", recipient, jsonable_encoder(order_payload)
        )
        logger.info(
            "order_confirmation_queued",
            order_id=order_id,
            recipient=recipient,
            task_id=task_id,
        )
    except Exception as exc:
        logger.exception(
            "order_confirmation_queue_failed",
            order_id=order_id,
            recipient=recipient,
            error=str(exc),
        )
