"""
Order Document Orchestrator
Coordinates normalization, rendering, PDF export and email delivery for one order
"""
from typing import Any, Dict, Optional

import config
from utils.logger import get_logger

from .errors import RecipientMissingError
from .formatting import single_line
from .mailer import MailAttachment, MailMessage, MailTransport, get_mail_transport
from .models import CanonicalOrder
from .normalizer import normalize_order
from .pdf_generator import OrderPDFGenerator, PdfRenderer
from .renderer import DocumentRenderer, get_renderer

logger = get_logger()


def resolve_recipient(explicit: Optional[str], order: CanonicalOrder,
                      fallback: Optional[str] = None) -> str:
    """
    Pick the email recipient: explicit address, then the customer's email
    on file, then the configured default address.

    Raises:
        RecipientMissingError: If none of the three is available
    """
    for candidate in (explicit, order.customer.email if order.customer else None, fallback):
        if candidate and str(candidate).strip():
            return str(candidate).strip()
    raise RecipientMissingError()


class OrderDocumentService:
    """Turns any raw order into its documents and delivers them"""

    def __init__(self, renderer: DocumentRenderer = None,
                 pdf_renderer: PdfRenderer = None,
                 mail_transport: MailTransport = None):
        self.renderer = renderer or get_renderer()
        self._pdf_renderer = pdf_renderer
        self._mail_transport = mail_transport

    @property
    def pdf_generator(self) -> OrderPDFGenerator:
        return OrderPDFGenerator(pdf_renderer=self._pdf_renderer, renderer=self.renderer)

    @property
    def mail_transport(self) -> MailTransport:
        if self._mail_transport is None:
            self._mail_transport = get_mail_transport()
        return self._mail_transport

    def document(self, raw_order: Any) -> Dict[str, Any]:
        """Canonical order plus its subject and plain-text rendering."""
        order = normalize_order(raw_order)
        return {
            "order": order.model_dump(mode="json"),
            "subject": self.renderer.render_subject(order),
            "text": self.renderer.render_plain_text(order),
        }

    def preview(self, raw_order: Any) -> Dict[str, Any]:
        """Everything the order screen shows for a draft or saved order."""
        order = normalize_order(raw_order)
        view = self.document(order)
        view["summary"] = self.renderer.render_summary(order)
        view["html"] = self.renderer.render_print_document(order)
        logger.log_document_rendered(order.reference, "preview", len(order.items))
        return view

    def generate_pdf(self, raw_order: Any):
        """Returns (filename, pdf bytes)."""
        return self.pdf_generator.generate_pdf(raw_order)

    def build_email(self, raw_order: Any, to: Optional[str] = None,
                    subject: Optional[str] = None, attach_pdf: bool = False) -> MailMessage:
        """
        Render the complete email for an order without sending it

        Args:
            raw_order: Any order shape accepted by the normalizer
            to: Explicit recipient (overrides the customer email)
            subject: Explicit subject (overrides the rendered one)
            attach_pdf: Attach the print PDF

        Returns:
            MailMessage ready for a transport
        """
        order = normalize_order(raw_order)
        recipient = resolve_recipient(to, order, config.default_recipient())

        message = MailMessage(
            to=recipient,
            subject=single_line(subject) or self.renderer.render_subject(order),
            text=self.renderer.render_plain_text(order),
            html=self.renderer.render_html_document(order),
            from_address=config.mail_from_address() if config.SMTP_FROM else None,
        )

        if attach_pdf:
            filename, pdf = self.generate_pdf(order)
            message.attachments.append(
                MailAttachment(filename=filename, content=pdf, content_type="application/pdf")
            )

        logger.log_document_rendered(order.reference, "email", len(order.items))
        return message

    def send_order_email(self, raw_order: Any, to: Optional[str] = None,
                         subject: Optional[str] = None, attach_pdf: bool = False) -> Dict[str, Any]:
        """
        Render, then send. Rendering (including the optional PDF) finishes
        before the transport is touched.
        """
        order = normalize_order(raw_order)
        message = self.build_email(order, to=to, subject=subject, attach_pdf=attach_pdf)

        try:
            result = self.mail_transport.send(message)
        except Exception as e:
            logger.log_error(order.reference, type(e).__name__, str(e))
            raise

        logger.log_email_sent(
            order.reference,
            message.recipients[0],
            getattr(self.mail_transport, "name", "custom"),
            len(message.attachments),
        )
        return result
