"""Outbound email: message bodies and the transport that delivers them."""
import hashlib
import html
import logging
from email.message import EmailMessage
from typing import Optional
from urllib.parse import urlencode

import aiosmtplib
import pytz

from eventhub.config import Settings
from eventhub.models.event import Event, EventType
from eventhub.models.group import Group
from eventhub.models.tokens import EventRef
from eventhub.models.user import User

logger = logging.getLogger(__name__)


class EmailTransportError(Exception):
    """The email provider refused or failed to accept a message."""


def mask_email(email: str) -> str:
    return hashlib.sha256(email.lower().encode("utf-8")).hexdigest()[:12]


class EmailSender:
    """Delivers one message. Implementations raise EmailTransportError on failure."""

    async def send(self, to_email: str, subject: str, body_html: str) -> None:
        raise NotImplementedError


class LoggingEmailSender(EmailSender):
    """Used when SMTP is not configured: the message is only logged."""

    async def send(self, to_email: str, subject: str, body_html: str) -> None:
        logger.warning("SMTP not configured, skipping email '%s' to %s", subject, mask_email(to_email))


class SmtpEmailSender(EmailSender):
    def __init__(
        self,
        *,
        host: str,
        port: int,
        from_email: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        tls: bool = True,
    ):
        self.host = host
        self.port = port
        self.from_email = from_email
        self.username = username or None
        self.password = password or None
        self.tls = tls

    async def send(self, to_email: str, subject: str, body_html: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.from_email
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content(body_html, subtype="html")

        # Port 465 is implicit TLS, anything else upgrades with STARTTLS
        use_tls = self.tls and self.port == 465
        start_tls = self.tls and not use_tls
        try:
            await aiosmtplib.send(
                msg,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                use_tls=use_tls,
                start_tls=start_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            raise EmailTransportError(str(exc)) from exc
        logger.info("Email '%s' sent to %s", subject, mask_email(to_email))


def build_email_sender(settings: Settings) -> EmailSender:
    if not settings.SMTP_HOST:
        return LoggingEmailSender()
    return SmtpEmailSender(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        from_email=settings.SMTP_FROM_EMAIL,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        tls=settings.SMTP_TLS,
    )


def login_link(public_url: str, token: str, join_event: Optional[EventRef] = None) -> str:
    params = {"login-token": token}
    if join_event is not None:
        params["join-event"] = f"{join_event.group_id}:{join_event.event_id}"
    return f"{public_url.rstrip('/')}/?{urlencode(params)}"


def delete_account_link(public_url: str, token: str) -> str:
    return f"{public_url.rstrip('/')}/?{urlencode({'delete-user-token': token})}"


def login_email(public_url: str, token: str, join_event: Optional[EventRef] = None) -> tuple[str, str]:
    link = html.escape(login_link(public_url, token, join_event), quote=True)
    subject = "Your login link"
    body = f"""
    <html>
        <body>
            <p>Hello,</p>
            <p>Click the link below to log in. It can only be used once.</p>
            <p><a href="{link}">Log in</a></p>
            <p>If you did not request this, please ignore this email.</p>
        </body>
    </html>
    """
    return subject, body


def delete_account_email(public_url: str, token: str) -> tuple[str, str]:
    link = html.escape(delete_account_link(public_url, token), quote=True)
    subject = "Confirm account deletion"
    body = f"""
    <html>
        <body>
            <p>Hello,</p>
            <p>You asked to delete your account. This also deletes every group you own.</p>
            <p><a href="{link}">Delete my account</a></p>
            <p>If you did not request this, please ignore this email.</p>
        </body>
    </html>
    """
    return subject, body


def format_local_time(event: Event, user: User) -> str:
    """Event start in the user's own timezone, e.g. ``Tue 03 Mar 2026 19:00 CET``."""
    tz = pytz.timezone(user.timezone)
    return event.start_time.astimezone(tz).strftime("%a %d %b %Y %H:%M %Z")


def event_reminder_email(user: User, group: Group, event: Event) -> tuple[str, str]:
    subject = f"Reminder: {event.name} starts soon"
    if event.event_type == EventType.online and event.link:
        where = f'<p>Join here: <a href="{html.escape(event.link, quote=True)}">{html.escape(event.link)}</a></p>'
    elif event.event_type == EventType.in_person and event.address:
        where = f"<p>Address: {html.escape(event.address)}</p>"
    else:
        where = ""
    body = f"""
    <html>
        <body>
            <p>Hello {html.escape(user.name)},</p>
            <p><strong>{html.escape(event.name)}</strong> from {html.escape(group.name)}
            starts {format_local_time(event, user)}.</p>
            {where}
            <p>You can turn these reminders off in your profile settings.</p>
        </body>
    </html>
    """
    return subject, body
