"""Email notifier via SMTP.

Sends availability notifications to one or more recipients using SMTP.
Supports STARTTLS (587) or SSL (465).
"""

from __future__ import annotations

import html
import logging
import smtplib
import ssl
from email.message import EmailMessage

from . import config

logger = logging.getLogger(__name__)


def _build_subject(title: str) -> str:
    return f"{config.EMAIL_SUBJECT_PREFIX} {title}"


def _build_bodies(title: str, body: str) -> tuple[str, str]:
    """Return (plain_text, html) bodies."""
    summary = body.strip() or "Nothing available right now."

    plain = f"{title}\n\n{summary}\n"

    html_body = (
        "<html>"
        "<body>"
        "<h3>{title}</h3>"
        "<p>{summary}</p>"
        "</body>"
        "</html>"
    ).format(title=html.escape(title), summary=html.escape(summary))

    return plain, html_body


def _send(msg: EmailMessage) -> None:
    required = (config.EMAIL_USERNAME, config.EMAIL_PASSWORD, config.EMAIL_FROM)
    if not all(required) or not config.EMAIL_TO:
        logger.error("Email config incomplete; set EMAIL_USERNAME, EMAIL_PASSWORD, EMAIL_FROM, EMAIL_TO")
        return

    host, port = config.EMAIL_SMTP_HOST, int(config.EMAIL_SMTP_PORT)
    if config.EMAIL_USE_TLS and port == 587:
        with smtplib.SMTP(host, port, timeout=20) as s:
            s.ehlo()
            s.starttls(context=ssl.create_default_context())
            s.login(config.EMAIL_USERNAME, config.EMAIL_PASSWORD)
            s.send_message(msg)
    else:
        with smtplib.SMTP_SSL(host, port, context=ssl.create_default_context(), timeout=20) as s:
            s.login(config.EMAIL_USERNAME, config.EMAIL_PASSWORD)
            s.send_message(msg)
    logger.info("Email sent to %s (subject=%s)", ", ".join(config.EMAIL_TO), msg.get("Subject"))


def build_message(title: str, body: str) -> EmailMessage:
    plain, html_body = _build_bodies(title, body)

    msg = EmailMessage()
    msg["Subject"] = _build_subject(title)
    msg["From"] = config.EMAIL_FROM or (config.EMAIL_USERNAME or "")
    msg["To"] = ", ".join(config.EMAIL_TO)
    msg.set_content(plain)
    msg.add_alternative(html_body, subtype="html")
    return msg


def send_notification(title: str, body: str) -> None:
    if not config.EMAIL_ENABLED or not config.EMAIL_TO:
        return
    _send(build_message(title, body))


__all__ = ["build_message", "send_notification"]
