"""
Order Mailer
Mail capability interface plus the two transports used in production:
Gmail API (OAuth2 refresh token) and plain SMTP as the fallback.
"""
import base64
import smtplib
import ssl
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Any, Dict, List, Optional, Union

import config

from .errors import MailTransportError

GMAIL_SEND_SCOPE = "https://www.googleapis.com/auth/gmail.send"


@dataclass
class MailAttachment:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass
class MailMessage:
    """A fully rendered email, ready for any transport."""
    to: Union[str, List[str]]
    subject: str
    text: str = ""
    html: str = ""
    from_address: Optional[str] = None
    attachments: List[MailAttachment] = field(default_factory=list)

    @property
    def recipients(self) -> List[str]:
        if isinstance(self.to, str):
            return [self.to]
        return list(self.to)

    def to_mime(self) -> EmailMessage:
        """
        Build the MIME message: multipart/alternative (text + html), wrapped
        in multipart/mixed when there are attachments.

        Raises:
            MailTransportError: If a header value is rejected (e.g. contains a line break)
        """
        mime = EmailMessage()
        try:
            mime["From"] = self.from_address or config.mail_from_address()
            mime["To"] = ", ".join(self.recipients)
            mime["Subject"] = self.subject
        except ValueError as e:
            raise MailTransportError("Cabeçalho de e-mail inválido", detail=str(e)) from e
        mime["Message-ID"] = make_msgid()

        mime.set_content(self.text or "")
        mime.add_alternative(self.html or f"<pre>{self.text or ''}</pre>", subtype="html")

        for attachment in self.attachments:
            maintype, _, subtype = attachment.content_type.partition("/")
            mime.add_attachment(
                attachment.content,
                maintype=maintype or "application",
                subtype=subtype or "octet-stream",
                filename=attachment.filename,
            )
        return mime


class MailTransport:
    """Capability interface: send a rendered message, return a result dict."""

    name = "base"

    def send(self, message: MailMessage) -> Dict[str, Any]:
        raise NotImplementedError


class SmtpMailTransport(MailTransport):
    """Sends through an SMTP server (implicit TLS on 465, STARTTLS otherwise)"""

    name = "smtp"

    def __init__(self, host: str = None, port: int = None, user: str = None,
                 password: str = None, timeout: int = None):
        self.host = host if host is not None else config.SMTP_HOST
        self.port = port if port is not None else config.SMTP_PORT
        self.user = user if user is not None else config.SMTP_USER
        self.password = password if password is not None else config.SMTP_PASS
        self.timeout = timeout if timeout is not None else config.SMTP_TIMEOUT_SECONDS

    def send(self, message: MailMessage) -> Dict[str, Any]:
        if not self.host:
            raise MailTransportError("Nenhum servidor de e-mail configurado (SMTP_HOST)")

        mime = message.to_mime()
        context = ssl.create_default_context()
        try:
            if self.port == 465:
                server = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout, context=context)
            else:
                server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            with server:
                if self.port != 465:
                    server.ehlo()
                    if server.has_extn("starttls"):
                        server.starttls(context=context)
                        server.ehlo()
                if self.user:
                    server.login(self.user, self.password or "")
                server.send_message(mime)
        except (smtplib.SMTPException, OSError) as e:
            raise MailTransportError("Falha ao enviar e-mail", detail=str(e)) from e

        return {"transport": self.name, "message_id": mime["Message-ID"]}


class GmailApiTransport(MailTransport):
    """Sends through the Gmail API using an OAuth2 refresh token"""

    name = "gmail"

    def __init__(self, sender_email: str = None, client_id: str = None,
                 client_secret: str = None, refresh_token: str = None,
                 token_uri: str = None):
        self.sender_email = sender_email or config.GMAIL_SENDER_EMAIL
        self.client_id = client_id or config.GMAIL_CLIENT_ID
        self.client_secret = client_secret or config.GMAIL_CLIENT_SECRET
        self.refresh_token = refresh_token or config.GMAIL_REFRESH_TOKEN
        self.token_uri = token_uri or config.GMAIL_TOKEN_URI

    def _get_gmail_service(self):
        """Create a Gmail API service; the access token is refreshed on demand."""
        from google.oauth2.credentials import Credentials
        from googleapiclient.discovery import build

        creds = Credentials(
            None,
            refresh_token=self.refresh_token,
            token_uri=self.token_uri,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=[GMAIL_SEND_SCOPE],
        )
        return build("gmail", "v1", credentials=creds, cache_discovery=False)

    def send(self, message: MailMessage) -> Dict[str, Any]:
        from google.auth.exceptions import GoogleAuthError
        from googleapiclient.errors import HttpError

        if message.from_address is None:
            message.from_address = f'"{config.GMAIL_SENDER_NAME}" <{self.sender_email}>'
        raw = base64.urlsafe_b64encode(message.to_mime().as_bytes()).decode("ascii")

        try:
            service = self._get_gmail_service()
            sent = service.users().messages().send(userId="me", body={"raw": raw}).execute()
        except (HttpError, GoogleAuthError, OSError) as e:
            raise MailTransportError(
                "Falha de autenticação ou envio no Gmail (verifique OAuth2 / token / escopo)",
                detail=str(e),
            ) from e

        return {"transport": self.name, "message_id": sent.get("id")}


def get_mail_transport() -> MailTransport:
    """Gmail API when its OAuth2 settings are complete, SMTP otherwise."""
    if config.has_gmail_credentials():
        return GmailApiTransport()
    return SmtpMailTransport()
