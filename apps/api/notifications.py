from __future__ import annotations

import logging
import os
import smtplib
import uuid
from email.message import EmailMessage
from typing import Callable, Dict, Optional

import httpx

from packages.core.errors import RecipientNotFoundError
from packages.core.notifications import Notifier
from packages.core.reminders.dates import shift_to_offset
from packages.core.reminders.models import Reminder


logger = logging.getLogger("remind_ops.notifications")

AddressResolver = Callable[[str, str], Optional[str]]


def _smtp_config() -> dict:
    return {
        "host": os.getenv("SMTP_HOST", ""),
        "port": int(os.getenv("SMTP_PORT", "587")),
        "user": os.getenv("SMTP_USER", ""),
        "password": os.getenv("SMTP_PASSWORD", ""),
        "from_email": os.getenv("SMTP_FROM", ""),
        "use_tls": os.getenv("SMTP_USE_TLS", "true").lower() == "true",
    }


def smtp_configured() -> bool:
    config = _smtp_config()
    return bool(config["host"] and config["from_email"])


def send_email(to_email: str, subject: str, body: str) -> str:
    config = _smtp_config()
    if not config["host"] or not config["from_email"]:
        raise RuntimeError("SMTP is not configured. Set SMTP_HOST and SMTP_FROM.")

    message = EmailMessage()
    message_id = f"<{uuid.uuid4()}@remind-ops>"
    message["Subject"] = subject
    message["From"] = config["from_email"]
    message["To"] = to_email
    message["Message-ID"] = message_id
    message.set_content(body)

    with smtplib.SMTP(config["host"], config["port"]) as server:
        if config["use_tls"]:
            server.starttls()
        if config["user"]:
            server.login(config["user"], config["password"])
        server.send_message(message)
    return message_id


def _email_domain() -> str:
    return os.getenv("REMINDERS_EMAIL_DOMAIN", "")


def default_address_resolver(kind: str, recipient_id: str) -> Optional[str]:
    """Map a user or room id to an email address.

    Ids that already look like addresses are used as is; bare ids get
    ``REMINDERS_EMAIL_DOMAIN`` appended when it is set.
    """
    if "@" in recipient_id:
        return recipient_id
    domain = _email_domain()
    if not domain:
        return None
    return f"{recipient_id}@{domain}"


def _reminder_body(reminder: Reminder) -> str:
    local_due = shift_to_offset(reminder.due_date, reminder.time_zone.utc_offset)
    zone = reminder.time_zone.name or f"UTC{reminder.time_zone.utc_offset:+g}"
    return f"{reminder.description}\n\nDue {local_due.strftime('%Y-%m-%d %H:%M')} ({zone})"


class EmailNotifier(Notifier):
    """Delivers reminders and digests by email, operator messages by webhook.

    Without an operator webhook the operator message goes to
    ``operator_email`` instead, and is only logged when neither is set.
    """

    def __init__(
        self,
        operator_webhook_url: Optional[str] = None,
        operator_email: Optional[str] = None,
        resolver: AddressResolver = default_address_resolver,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._operator_webhook_url = operator_webhook_url
        self._operator_email = operator_email
        self._resolver = resolver
        self._client = client

    def _address(self, kind: str, recipient_id: str) -> str:
        address = self._resolver(kind, recipient_id)
        if not address:
            raise RecipientNotFoundError(kind, recipient_id)
        return address

    def send_reminder(
        self, reminder: Reminder, recipient_type: Optional[str], recipient_id: str
    ) -> Optional[str]:
        address = self._address(recipient_type or "user", recipient_id)
        return send_email(address, f"Reminder: {reminder.description}", _reminder_body(reminder))

    def send_digest(self, user_id: str, upcoming_count: int, past_count: int) -> None:
        address = self._address("user", user_id)
        lines = []
        if upcoming_count:
            lines.append(f"You have {upcoming_count} reminder(s) due today.")
        if past_count:
            lines.append(f"You have {past_count} past reminder(s) still open.")
        send_email(address, "Your daily reminder summary", "\n".join(lines))

    def send_operator_message(self, text: str) -> None:
        if self._operator_webhook_url:
            self._post_webhook({"text": text})
            return
        if self._operator_email:
            send_email(self._operator_email, "Reminder service notice", text)
            return
        logger.info("operator_message text=%s", text)

    def _post_webhook(self, payload: Dict[str, str]) -> None:
        if self._client is not None:
            response = self._client.post(self._operator_webhook_url, json=payload)
        else:
            with httpx.Client(timeout=10.0) as client:
                response = client.post(self._operator_webhook_url, json=payload)
        response.raise_for_status()
