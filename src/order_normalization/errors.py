"""
Order document errors.

Normalization and rendering never raise; these cover the boundaries around
them (lookups, request validation, PDF renderer and mail transport).
"""


class OrderDocumentError(Exception):
    """Base class for categorized order failures."""

    category = "error"
    status_code = 500

    def __init__(self, message: str, detail: str = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class OrderNotFoundError(OrderDocumentError):
    category = "not_found"
    status_code = 404

    def __init__(self, order_id: str):
        super().__init__("Order not found", detail=f"No order with id {order_id}")
        self.order_id = order_id


class OrderValidationError(OrderDocumentError):
    category = "validation"
    status_code = 400


class RecipientMissingError(OrderValidationError):
    def __init__(self):
        super().__init__(
            "Destinatário ausente (sem e-mail do cliente e sem fallback)"
        )


class TransportError(OrderDocumentError):
    """An external collaborator (browser, mail server) failed."""

    category = "transport"
    status_code = 502


class PdfRenderError(TransportError):
    pass


class MailTransportError(TransportError):
    pass
