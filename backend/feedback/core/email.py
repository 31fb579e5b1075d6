"""Outbound email transports.

Production mail goes through the Resend HTTP API. When no API key is
configured (local development), a logging transport records the message
instead of sending it. Both raise TransportError on failure so callers can
report delivery problems instead of silently dropping them.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from feedback.core.config import Settings, settings
from feedback.core.errors import TransportError

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"


@dataclass(frozen=True)
class MailMessage:
    """A fully composed email, ready for dispatch.

    Attributes:
        to: Recipient address.
        subject: Subject line.
        text: Plain-text body.
        html: HTML body.
    """

    to: str
    subject: str
    text: str
    html: str


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of a successful dispatch.

    Attributes:
        transport: Name of the transport that accepted the message.
        message_id: Provider message ID, when the provider returns one.
    """

    transport: str
    message_id: str | None = None


class MailTransport(ABC):
    """Interface for anything that can send a MailMessage."""

    name: str = "abstract"

    @abstractmethod
    async def send(self, message: MailMessage) -> DeliveryResult:
        """Send a message.

        Args:
            message: Composed email.

        Returns:
            DeliveryResult for the accepted message.

        Raises:
            TransportError: If the message could not be handed off.
        """


class ResendMailTransport(MailTransport):
    """Send mail via a single HTTP POST to Resend."""

    name = "resend"

    def __init__(
        self,
        *,
        api_key: str,
        sender: str,
        timeout: float = 10.0,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            api_key: Resend API key.
            sender: From address.
            timeout: Request timeout in seconds.
            http_transport: Optional httpx transport (tests inject a MockTransport).
        """
        self._api_key = api_key
        self._sender = sender
        self._timeout = timeout
        self._http_transport = http_transport

    async def send(self, message: MailMessage) -> DeliveryResult:
        try:
            async with httpx.AsyncClient(
                transport=self._http_transport, timeout=self._timeout
            ) as client:
                resp = await client.post(
                    _RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json={
                        "from": self._sender,
                        "to": [message.to],
                        "subject": message.subject,
                        "text": message.text,
                        "html": message.html,
                    },
                )
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Failed to send email via Resend", exc_info=True)
            raise TransportError(cause=exc) from exc

        try:
            message_id = resp.json().get("id")
        except ValueError:
            message_id = None

        logger.info("Email accepted by Resend (id=%s)", message_id)
        return DeliveryResult(transport=self.name, message_id=message_id)


class LoggingMailTransport(MailTransport):
    """Development transport that keeps messages in memory.

    Only the subject is logged; bodies contain live links.

    Attributes:
        outbox: Every message passed to send(), in order.
    """

    name = "log"

    def __init__(self) -> None:
        self.outbox: list[MailMessage] = []

    async def send(self, message: MailMessage) -> DeliveryResult:
        self.outbox.append(message)
        logger.info(
            "Email not sent (no RESEND_API_KEY); subject=%r",
            message.subject,
        )
        return DeliveryResult(transport=self.name)


def build_mail_transport(config: Settings) -> MailTransport:
    """Build the mail transport for the given settings.

    Args:
        config: Application settings.

    Returns:
        ResendMailTransport when an API key is configured, otherwise
        LoggingMailTransport.
    """
    api_key = config.resend_api_key.get_secret_value()
    if not api_key:
        return LoggingMailTransport()
    return ResendMailTransport(
        api_key=api_key,
        sender=config.email_from,
        timeout=config.mail_timeout_seconds,
    )


_mail_transport: MailTransport | None = None


def get_mail_transport() -> MailTransport:
    """Get or create the mail transport singleton.

    Returns:
        Transport built from the application settings on first call.
    """
    global _mail_transport
    if _mail_transport is None:
        _mail_transport = build_mail_transport(settings)
    return _mail_transport


def reset_mail_transport() -> None:
    """Drop the transport singleton (for testing)."""
    global _mail_transport
    _mail_transport = None
