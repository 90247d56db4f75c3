"""
Email Provider

Transport for the alerts summary email.
Default: Resend (HTTP API)
Fallback: SMTP (self-hosted relay)
Development: Console (logs instead of sending)

``EmailProvider.send`` never raises on delivery problems. Subclasses implement
``_deliver`` and may raise freely; the base class turns any fault into a
failed SendResult.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from email.message import EmailMessage as MIMEMessage
from typing import List, Optional

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
DEFAULT_FROM_EMAIL = "SellerWatch <alerts@sellerwatch.app>"


class DeliveryError(Exception):
    """The provider answered but refused the message."""


@dataclass
class EmailMessage:
    """One outgoing email. ``bcc`` recipients are never shown to ``to``."""
    to: str
    subject: str
    html_body: str
    plain_text_body: str
    from_email: Optional[str] = None
    reply_to: Optional[str] = None
    bcc: List[str] = field(default_factory=list)

    @property
    def recipients(self) -> List[str]:
        return [self.to, *self.bcc]


@dataclass
class SendResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class EmailProvider(ABC):
    """Base class for email transports."""

    name = "email"

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the provider has the credentials it needs."""

    @abstractmethod
    async def _deliver(self, message: EmailMessage) -> Optional[str]:
        """Hand the message to the transport and return its message id."""

    async def send(self, message: EmailMessage) -> SendResult:
        if not self.is_configured():
            return SendResult(success=False, error=f"{self.name} provider not configured")
        try:
            message_id = await self._deliver(message)
        except Exception as e:
            logger.exception(f"Failed to send email to {message.to} via {self.name}")
            return SendResult(success=False, error=str(e))
        return SendResult(success=True, message_id=message_id)


class ResendProvider(EmailProvider):
    """
    Resend HTTP API.

    https://resend.com/docs/api-reference/emails/send-email
    """

    name = "resend"

    def __init__(self, api_key: str, from_email: str = DEFAULT_FROM_EMAIL, timeout: float = 30.0):
        self.api_key = api_key
        self.from_email = from_email
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _payload(self, message: EmailMessage) -> dict:
        payload = {
            "from": message.from_email or self.from_email,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html_body,
            "text": message.plain_text_body,
        }
        if message.bcc:
            payload["bcc"] = list(message.bcc)
        if message.reply_to:
            payload["reply_to"] = message.reply_to
        return payload

    async def _deliver(self, message: EmailMessage) -> Optional[str]:
        import httpx

        async with httpx.AsyncClient(
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
        ) as client:
            response = await client.post(RESEND_API_URL, json=self._payload(message))

        # Resend answers 200 today; 201 is accepted as well
        if response.status_code not in (200, 201):
            logger.error(f"Resend rejected email to {message.to}: {response.status_code} {response.text}")
            raise DeliveryError(f"Resend returned {response.status_code}: {response.text}")
        return response.json().get("id")


class SMTPProvider(EmailProvider):
    """SMTP relay, multipart/alternative with plain text first."""

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        from_email: str = DEFAULT_FROM_EMAIL,
        use_tls: bool = False,
    ):
        self.host = host
        self.port = port
        self.credentials = (username or None, password or None)
        self.from_email = from_email
        self.use_tls = use_tls

    def is_configured(self) -> bool:
        return bool(self.host)

    def _mime(self, message: EmailMessage) -> MIMEMessage:
        mime = MIMEMessage()
        mime["Subject"] = message.subject
        mime["From"] = message.from_email or self.from_email
        mime["To"] = message.to
        if message.reply_to:
            mime["Reply-To"] = message.reply_to
        mime.set_content(message.plain_text_body)
        mime.add_alternative(message.html_body, subtype="html")
        return mime

    async def _deliver(self, message: EmailMessage) -> Optional[str]:
        import aiosmtplib

        username, password = self.credentials
        # Bcc is envelope-only, never a header
        await aiosmtplib.send(
            self._mime(message),
            recipients=message.recipients,
            hostname=self.host,
            port=self.port,
            username=username,
            password=password,
            use_tls=self.use_tls,
        )
        return None


class ConsoleProvider(EmailProvider):
    """Writes emails to the log. Used in development and when nothing is configured."""

    name = "console"

    def is_configured(self) -> bool:
        return True

    async def _deliver(self, message: EmailMessage) -> Optional[str]:
        rule = "-" * 60
        logger.info(
            f"\n{rule}\n"
            f"[console email] to={message.to} bcc={','.join(message.bcc) or 'none'}\n"
            f"subject: {message.subject}\n"
            f"{rule}\n"
            f"{message.plain_text_body}\n"
            f"{rule}"
        )
        return "console-dev"


def get_email_provider(
    resend_api_key: Optional[str] = None,
    smtp_config: Optional[dict] = None,
    from_email: str = DEFAULT_FROM_EMAIL,
    console_mode: bool = False,
) -> EmailProvider:
    """
    Pick the transport from configuration.

    Console mode wins, then Resend when an API key is set, then SMTP when a
    host is set. With nothing configured emails go to the log.
    """
    if console_mode:
        provider: EmailProvider = ConsoleProvider()
    elif resend_api_key:
        provider = ResendProvider(api_key=resend_api_key, from_email=from_email)
    elif smtp_config:
        provider = SMTPProvider(**smtp_config)
    else:
        logger.warning("No email provider configured, alerts emails will only be logged")
        return ConsoleProvider()

    logger.info(f"Using {provider.name} email provider")
    return provider
