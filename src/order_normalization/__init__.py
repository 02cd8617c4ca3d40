"""
Order Normalization & Documents
Turns raw orders into one canonical view and renders every document from it:
subject, plain text, email HTML, printable copies and PDF
"""
from .errors import (
    MailTransportError,
    OrderDocumentError,
    OrderNotFoundError,
    OrderValidationError,
    PdfRenderError,
    RecipientMissingError,
    TransportError,
)
from .models import CanonicalOrder, CanonicalOrderItem, CustomerSnapshot, RawOrderInput, RawShape
from .normalizer import OrderNormalizer, normalize_order
from .renderer import DocumentRenderer, get_renderer
from .pdf_generator import OrderPDFGenerator, PdfRenderer, PlaywrightPdfRenderer
from .mailer import GmailApiTransport, MailMessage, MailTransport, SmtpMailTransport
from .orchestrator import OrderDocumentService, resolve_recipient

__all__ = [
    'CanonicalOrder',
    'CanonicalOrderItem',
    'CustomerSnapshot',
    'RawOrderInput',
    'RawShape',
    'OrderNormalizer',
    'normalize_order',
    'DocumentRenderer',
    'get_renderer',
    'OrderPDFGenerator',
    'PdfRenderer',
    'PlaywrightPdfRenderer',
    'MailMessage',
    'MailTransport',
    'GmailApiTransport',
    'SmtpMailTransport',
    'OrderDocumentService',
    'resolve_recipient',
    'OrderDocumentError',
    'OrderNotFoundError',
    'OrderValidationError',
    'RecipientMissingError',
    'TransportError',
    'PdfRenderError',
    'MailTransportError',
]
