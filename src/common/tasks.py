"""Common tasks."""

from datetime import timedelta

import structlog
from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils import timezone

from common.models import EmailLog

logger = structlog.get_logger(__name__)


@shared_task
def send_email(*, to: str | list[str], subject: str, body: str, html_body: str | None = None) -> None:
    """Send an email and keep a compressed copy in the email log.

    Args:
        to (str | list[str]): The email address(es).
        subject (str): The email subject.
        body (str): The email body.
        html_body (str | None): The HTML email body.

    Returns:
        None
    """
    recipients = [to] if isinstance(to, str) else to
    recipients = [to_safe_email_address(email) for email in recipients]
    email_msg = EmailMultiAlternatives(
        subject=subject,
        body=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=recipients,
    )
    if html_body:
        email_msg.attach_alternative(html_body, "text/html")
    email_msg.send(fail_silently=False)
    EmailLog.objects.bulk_create(build_email_logs(recipients, subject, body, html_body))
    logger.info("email_sent", recipients=len(recipients), subject=subject)


def build_email_logs(
    recipients: list[str],
    subject: str,
    body: str,
    html_body: str | None = None,
    *,
    status: str = EmailLog.Status.SENT,
    error: str = "",
) -> list[EmailLog]:
    """Build (unsaved) email log entries for a batch of recipients."""
    email_logs: list[EmailLog] = []
    for recipient in recipients:
        el = EmailLog(to=recipient, subject=subject, status=status, error=error)
        el.set_body(body=body)
        if html_body:
            el.set_html(html_body=html_body)
        email_logs.append(el)
    return email_logs


def record_failed_email(*, to: str, subject: str, body: str, error: str) -> EmailLog:
    """Persist a failed delivery attempt so it can be followed up manually."""
    (log,) = EmailLog.objects.bulk_create(
        build_email_logs([to], subject, body, status=EmailLog.Status.FAILED, error=error)
    )
    return log


@shared_task
def cleanup_email_logs() -> None:
    """Clean up email logs."""
    older_than_a_month = EmailLog.objects.filter(
        sent_at__lte=timezone.now() - timedelta(days=30), status=EmailLog.Status.SENT
    )
    older_than_a_month.delete()

    # drop the bodies of delivered mails after a week, failed ones are kept for follow-up
    older_than_a_week = EmailLog.objects.filter(
        sent_at__lte=timezone.now() - timedelta(days=7), status=EmailLog.Status.SENT
    )
    older_than_a_week.update(compressed_body=None, compressed_html=None)


def to_safe_email_address(email: str) -> str:
    """Convert an email address to a safe format for sending.

    Outside of live environments every recipient is rewritten to a plus-address
    of the internal catch-all mailbox.

    Args:
        email (str): The email address.

    Returns:
        str: The safe email address.
    """
    if settings.LIVE_EMAILS:
        return email
    safe_email = email.replace("@", "_at_").replace(".", "_dot_")
    user, domain = settings.INTERNAL_CATCHALL_EMAIL.split("@", 1)
    return f"{user}+{safe_email}@{domain}"
