"""
Order PDF Generator
Hands the printable order HTML to a headless browser and returns PDF bytes
"""
import time
from typing import Any, List, Tuple

import config
from utils.logger import get_logger

from .errors import PdfRenderError
from .models import CanonicalOrder
from .normalizer import normalize_order
from .renderer import DocumentRenderer, get_renderer

logger = get_logger()


def pdf_filename(order: CanonicalOrder) -> str:
    """Download / attachment name: ``pedido-<number-or-id>.pdf``."""
    return f"pedido-{order.reference}.pdf"


class PdfRenderer:
    """Capability interface: HTML in, PDF bytes out."""

    def render(self, html: str) -> bytes:
        raise NotImplementedError


class PlaywrightPdfRenderer(PdfRenderer):
    """Renders PDFs with a headless Chromium driven by Playwright"""

    def __init__(self, margin: str = None, browser_args: List[str] = None):
        self.margin = margin or config.PDF_MARGIN
        self.browser_args = browser_args if browser_args is not None else config.PDF_BROWSER_ARGS

    def render(self, html: str) -> bytes:
        """
        Render ``html`` as an A4 PDF with background graphics and fixed margins.

        A browser is launched per call and always closed, including when
        rendering fails.
        """
        from playwright.sync_api import Error as PlaywrightError
        from playwright.sync_api import sync_playwright

        try:
            with sync_playwright() as playwright:
                browser = playwright.chromium.launch(headless=True, args=self.browser_args)
                try:
                    page = browser.new_page()
                    page.set_content(html, wait_until="networkidle")
                    page.emulate_media(media="screen")
                    return page.pdf(
                        format="A4",
                        print_background=True,
                        margin={
                            "top": self.margin,
                            "bottom": self.margin,
                            "left": self.margin,
                            "right": self.margin,
                        },
                        prefer_css_page_size=True,
                    )
                finally:
                    browser.close()
        except PlaywrightError as e:
            raise PdfRenderError("Falha ao gerar PDF", detail=str(e)) from e


class OrderPDFGenerator:
    """Generates order PDFs (customer + company copies) from raw or canonical orders"""

    def __init__(self, pdf_renderer: PdfRenderer = None, renderer: DocumentRenderer = None):
        self.pdf_renderer = pdf_renderer or PlaywrightPdfRenderer()
        self.renderer = renderer or get_renderer()

    def generate_pdf(self, raw_order: Any) -> Tuple[str, bytes]:
        """
        Generate the print PDF for an order

        Args:
            raw_order: Any order shape accepted by the normalizer

        Returns:
            (filename, pdf bytes)
        """
        order = normalize_order(raw_order)
        html = self.renderer.render_print_document(order)

        start = time.time()
        try:
            pdf = self.pdf_renderer.render(html)
        except PdfRenderError:
            logger.log_error(order.reference, "PdfRenderError", "headless browser failed")
            raise
        except Exception as e:
            logger.log_error(order.reference, type(e).__name__, str(e))
            raise PdfRenderError("Falha ao gerar PDF", detail=str(e)) from e

        pdf = bytes(pdf)
        logger.log_pdf_generated(order.reference, len(pdf), time.time() - start)
        return pdf_filename(order), pdf
