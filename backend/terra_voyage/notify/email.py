"""Transactional email over SMTP.

Sending is gated by the ``email_enabled`` master switch and by SMTP being
configured; when either is off the message is logged and skipped.
"""

from __future__ import annotations

import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage
from html import escape

from backend.terra_voyage.config import Settings, get_settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(RuntimeError):
    """Raised when the SMTP server rejects or cannot deliver a message."""


def build_message(
    to_email: str, subject: str, text: str, html: str | None = None, settings: Settings | None = None
) -> EmailMessage:
    settings = settings or get_settings()
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.email_from
    msg["To"] = to_email
    msg.set_content(text)
    if html:
        msg.add_alternative(html, subtype="html")
    return msg


def send_email(to_email: str, subject: str, text: str, html: str | None = None) -> bool:
    """
    Send one message.

    Returns:
        True if handed to the SMTP server, False if sending is disabled

    Raises:
        EmailDeliveryError: If the SMTP conversation fails
    """
    settings = get_settings()
    if not settings.email_enabled or not settings.smtp_configured:
        logger.info(
            "email_skipped",
            extra={"to": to_email, "subject": subject, "reason": "email disabled"},
        )
        return False

    msg = build_message(to_email, subject, text, html, settings)
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
            if settings.smtp_use_tls:
                server.starttls()
            if settings.smtp_username:
                server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        raise EmailDeliveryError(f"Failed to send email to {to_email}: {e}") from e

    logger.info("email_sent", extra={"to": to_email, "subject": subject})
    return True


def _layout(title: str, body_html: str) -> str:
    return f"""<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; color: #1f2937; max-width: 600px; margin: 0 auto;">
    <div style="background: #2563eb; color: #ffffff; padding: 24px; border-radius: 8px 8px 0 0;">
      <h1 style="margin: 0; font-size: 22px;">Terra Voyage</h1>
    </div>
    <div style="padding: 24px; border: 1px solid #e5e7eb; border-top: none; border-radius: 0 0 8px 8px;">
      <h2 style="font-size: 18px;">{escape(title)}</h2>
      {body_html}
    </div>
    <p style="font-size: 12px; color: #6b7280; text-align: center;">
      You are receiving this email because of activity on your Terra Voyage account.
    </p>
  </body>
</html>"""


def _button(url: str, label: str) -> str:
    return (
        f'<p><a href="{escape(url)}" style="background: #2563eb; color: #ffffff; '
        f'padding: 12px 20px; border-radius: 6px; text-decoration: none;">{escape(label)}</a></p>'
    )


def render_invitation(
    trip_title: str,
    inviter_name: str,
    role: str,
    invitation_url: str,
    expires_at: datetime,
    message: str | None = None,
) -> tuple[str, str, str]:
    """Return (subject, text, html) for a collaboration invitation."""
    subject = f'You\'re invited to collaborate on "{trip_title}"'
    expiry = f"{expires_at:%B} {expires_at.day}, {expires_at.year}"
    role_label = role.title()

    text_lines = [
        f"{inviter_name} has invited you to collaborate on \"{trip_title}\" as {role_label}.",
        "",
    ]
    if message:
        text_lines += [f'Message from {inviter_name}: "{message}"', ""]
    text_lines += [
        "Accept the invitation here:",
        invitation_url,
        "",
        f"This invitation expires on {expiry}.",
    ]

    note = (
        f'<blockquote style="border-left: 3px solid #2563eb; padding-left: 12px;">{escape(message)}</blockquote>'
        if message
        else ""
    )
    html = _layout(
        "You've been invited to plan a trip",
        f"<p><strong>{escape(inviter_name)}</strong> has invited you to collaborate on "
        f"<strong>{escape(trip_title)}</strong> as <strong>{escape(role_label)}</strong>.</p>"
        f"{note}{_button(invitation_url, 'Accept Invitation')}"
        f"<p style=\"font-size: 13px; color: #6b7280;\">This invitation expires on {escape(expiry)}.</p>",
    )
    return subject, "\n".join(text_lines), html


def send_invitation_email(
    to_email: str,
    trip_title: str,
    inviter_name: str,
    role: str,
    invitation_url: str,
    expires_at: datetime,
    message: str | None = None,
) -> bool:
    subject, text, html = render_invitation(
        trip_title, inviter_name, role, invitation_url, expires_at, message
    )
    logger.info("invitation_email", extra={"to": to_email, "url": invitation_url})
    return send_email(to_email, subject, text, html)


def send_notification_email(
    to_email: str, subject: str, content: str, trip_url: str | None = None
) -> bool:
    """Plain notification with an optional link to the trip."""
    text = content if not trip_url else f"{content}\n\nView trip: {trip_url}"
    body = f"<p>{escape(content)}</p>"
    if trip_url:
        body += _button(trip_url, "View Trip")
    return send_email(to_email, subject, text, _layout(subject, body))


def send_price_alert_email(
    to_email: str, product_type: str, current_price: float, target_price: float, details: str
) -> bool:
    label = "Flight" if product_type == "flight" else "Hotel"
    subject = f"Price Alert: {label} deal found at ${current_price:.2f}"
    content = (
        f"Great news! The price has dropped to ${current_price:.2f}, "
        f"which meets your target of ${target_price:.2f}. {details}"
    )
    return send_notification_email(to_email, subject, content)
