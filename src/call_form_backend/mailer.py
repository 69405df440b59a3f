"""
Confirmation email for applicants.

Sending is gated twice: the address must be syntactically valid and its
domain must publish an MX record. Both gates answer "no" instead of raising,
so an unreachable DNS server simply skips the confirmation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from importlib import resources
from typing import Optional

import dns.exception
import dns.resolver
import httpx
from email_validator import EmailNotValidError, validate_email

from .configuration import MailSettings

logger = logging.getLogger(__name__)


class MailError(Exception):
    """Sending the confirmation failed."""


@lru_cache(maxsize=None)
def load_template(name: str) -> str:
    return resources.files(__package__).joinpath("templates").joinpath(name).read_text(encoding="utf-8")


def normalize_address(email: str) -> Optional[str]:
    """Normalized address, or ``None`` if ``email`` is not a syntactically valid address."""
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError:
        return None


def accepts_mail(domain: str) -> bool:
    """
    Check whether ``domain`` publishes an MX record.

    The first answer counts as acceptance when it names an exchange host or
    has a nonzero preference. Lookup failures count as non-acceptance.
    """
    try:
        answer = dns.resolver.resolve(domain, "MX")
    except dns.exception.DNSException as e:
        logger.info(f"MX lookup for {domain} failed: {e}")
        return False

    records = list(answer)
    if not records:
        return False
    first = records[0]
    exchange = str(first.exchange).rstrip(".")
    return bool(exchange) or first.preference != 0


class ConfirmationMailer:
    def __init__(
        self,
        settings: MailSettings,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings
        self.timeout = timeout
        self._transport = transport

    def recipient_for(self, email: str) -> Optional[str]:
        """Address to send to, if it passes both the syntax and the MX gate."""
        address = normalize_address(email)
        if address is None:
            logger.info("Skipping confirmation: address is not valid")
            return None
        domain = address.rsplit("@", 1)[1]
        if not accepts_mail(domain):
            logger.info(f"Skipping confirmation: {domain} does not accept mail")
            return None
        return address

    def build_message(self, recipient: str) -> dict:
        sender = {"email": self.settings.sender}
        if self.settings.sender_name:
            sender["name"] = self.settings.sender_name
        return {
            "personalizations": [{"to": [{"email": recipient}]}],
            "from": sender,
            "subject": self.settings.subject,
            "content": [
                {"type": "text/plain", "value": load_template("confirmation.txt")},
                {"type": "text/html", "value": load_template("confirmation.html")},
            ],
        }

    def send(self, recipient: str) -> None:
        """
        Send the confirmation template to ``recipient``.

        Raises:
            MailError: If the mail API rejects the message or cannot be reached
        """
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(
                    self.settings.api_url,
                    json=self.build_message(recipient),
                    headers={"Authorization": f"Bearer {self.settings.token}"},
                )
        except httpx.HTTPError as e:
            raise MailError(f"Mail API request failed: {e}") from e

        if response.status_code >= 300:
            raise MailError(f"Mail API rejected message ({response.status_code}): {response.text}")

    def send_confirmation(self, email: str) -> bool:
        """
        Send the confirmation if the address passes both gates.

        Returns:
            True if a message was handed to the mail API
        """
        if not self.settings.enabled:
            logger.info("Skipping confirmation: mail API token not configured")
            return False
        recipient = self.recipient_for(email)
        if recipient is None:
            return False
        self.send(recipient)
        logger.info("Confirmation email sent")
        return True
