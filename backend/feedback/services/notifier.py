"""Verification email composition and delivery.

A message looks like:

    Hello First Last,

    <message body>
    <link>

    This message was automatically generated by the Immediate Feedback
    System at <host>. Please do not reply to this message.

The HTML alternative carries the same content with the link and host as
anchors. The whole message is built before the transport is called, so a
failure never results in a partial send.
"""

from html import escape

import structlog

from feedback.core.email import DeliveryResult, MailMessage, MailTransport
from feedback.core.errors import APIError
from feedback.services.identity_directory import IdentityDirectory

logger = structlog.get_logger()

_FOOTER = (
    "This message was automatically generated by the {system} at {host}. "
    "Please do not reply to this message."
)


def compose_message(
    *,
    to: str,
    subject: str,
    name: str,
    message: str,
    link: str,
    host: str,
    system_name: str,
) -> MailMessage:
    """Assemble the plain-text and HTML bodies of a link email.

    Args:
        to: Recipient address.
        subject: Subject line.
        name: Recipient display name for the greeting.
        message: Caller-supplied body text (may contain newlines).
        link: Verification link.
        host: Host named in the footer.
        system_name: System named in the footer.

    Returns:
        MailMessage ready for dispatch.
    """
    plain_intro = f"Hello {name},\n\n{message}\n"
    text = (
        plain_intro
        + f"{link}\n\n"
        + _FOOTER.format(system=system_name, host=host)
        + "\n"
    )

    html_intro = f"Hello {escape(name)},\n\n{escape(message)}\n".replace("\n", "<br/>")
    safe_link = escape(link, quote=True)
    safe_host = escape(host, quote=True)
    host_anchor = f'<a href="http://{safe_host}">{safe_host}</a>'
    html = (
        html_intro
        + f'<a href="{safe_link}">{safe_link}</a><br/><br/>'
        + _FOOTER.format(system=escape(system_name), host=host_anchor)
        + "<br/>"
    )

    return MailMessage(to=to, subject=subject, text=text, html=html)


class Notifier:
    """Sends verification links to users by email."""

    def __init__(
        self,
        identity: IdentityDirectory,
        transport: MailTransport,
        *,
        host: str,
        system_name: str,
    ) -> None:
        """Initialize the notifier.

        Args:
            identity: Resolves recipients to users and display names.
            transport: Mail transport used for dispatch.
            host: Host named in the message footer.
            system_name: System named in the message footer.
        """
        self._identity = identity
        self._transport = transport
        self._host = host
        self._system_name = system_name

    async def notify(
        self, email: str, link: str, subject: str, message: str
    ) -> DeliveryResult:
        """Email a link to a registered user.

        Args:
            email: Recipient address; must belong to a registered user.
            link: Verification link to embed.
            subject: Subject line.
            message: Body text shown above the link.

        Returns:
            DeliveryResult from the transport.

        Raises:
            IdentityResolutionError: Unknown email or no display name.
            StoreError: Identity lookup failed.
            TransportError: Dispatch failed.
        """
        try:
            user_id = await self._identity.lookup_user_id_by_email(email)
            name = await self._identity.lookup_display_name(user_id)
        except APIError as exc:
            logger.warning(
                "verification_email_aborted",
                stage="identity",
                error_code=exc.code,
            )
            raise

        mail = compose_message(
            to=email,
            subject=subject,
            name=name,
            message=message,
            link=link,
            host=self._host,
            system_name=self._system_name,
        )

        try:
            result = await self._transport.send(mail)
        except APIError as exc:
            logger.error(
                "verification_email_failed",
                stage="transport",
                error_code=exc.code,
                user_id=str(user_id),
            )
            raise

        logger.info(
            "verification_email_sent",
            transport=result.transport,
            message_id=result.message_id,
            user_id=str(user_id),
        )
        return result
