"""
Document Renderer Tests
=======================

Verifies:
- Subject and plain-text formats.
- HTML escaping of user text on every HTML surface.
- Exactly one placeholder row for orders without items.
- Minimal (company) copy drops the unit-price column but keeps line totals.
- Dual-copy print policy: cut line vs. page break, density classes.
"""
import re
import sys
import unittest
from datetime import datetime
from pathlib import Path

# Ensure src/ is on path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / 'src'))

from order_normalization.renderer import (
    COMPANY_COPY_LABEL,
    CUSTOMER_COPY_LABEL,
    EMPTY_ITEMS_TEXT,
    DocumentRenderer,
)

NOW = datetime(2024, 5, 6, 7, 8, 9)


def _tbody(html):
    match = re.search(r"<tbody>(.*?)</tbody>", html, re.DOTALL)
    return match.group(1) if match else ""


def _order_with_items(count):
    return {
        "number": 3,
        "items": [{"name": f"Item {i}", "quantity": 1, "unitPrice": 2} for i in range(count)],
    }


CAFE_ORDER = {
    "id": "ord-7",
    "number": 7,
    "customer": {"name": "Maria", "email": "maria@example.com"},
    "items": [{"name": "Café", "unit": "kg", "quantity": "2", "unitPrice": 10}],
    "notes": "Sem açúcar",
}


class TestTextSurfaces(unittest.TestCase):

    def setUp(self):
        self.renderer = DocumentRenderer(density_threshold=30, density_normal=14, density_small=22)

    def test_subject_with_customer(self):
        self.assertEqual(self.renderer.render_subject(CAFE_ORDER), "Pedido #7 — Maria")

    def test_subject_without_number_or_customer(self):
        self.assertEqual(self.renderer.render_subject({}), "Pedido #—")

    def test_subject_is_single_line(self):
        subject = self.renderer.render_subject({"number": 2, "customer": {"name": "Ana\r\n  Silva"}})
        self.assertEqual(subject, "Pedido #2 — Ana Silva")

    def test_plain_text(self):
        expected = (
            "Pedido #7 — Maria\n"
            "\n"
            "Cliente: Maria\n"
            "E-mail: maria@example.com\n"
            "\n"
            "1. Café — 2 kg x R$ 10,00 = R$ 20,00\n"
            "\n"
            "Total: R$ 20,00\n"
            "Obs.: Sem açúcar"
        )
        self.assertEqual(self.renderer.render_plain_text(CAFE_ORDER), expected)

    def test_plain_text_omits_missing_customer_lines(self):
        text = self.renderer.render_plain_text({"number": 1, "customer": {"phone": "11999990000"}})
        self.assertIn("Telefone: 11999990000", text)
        self.assertNotIn("Cliente:", text)
        self.assertNotIn("E-mail:", text)
        self.assertNotIn("Obs.:", text)

    def test_summary_truncates_items(self):
        summary = self.renderer.render_summary(_order_with_items(5), max_items=3)
        self.assertIn("Itens (5): Item 0 x 1, Item 1 x 1, Item 2 x 1 … +2 itens", summary)
        self.assertIn("Total: R$ 10,00", summary)

    def test_summary_without_items(self):
        self.assertIn("Itens: —", self.renderer.render_summary({}))


class TestHtmlSurfaces(unittest.TestCase):

    def setUp(self):
        self.renderer = DocumentRenderer(density_threshold=30, density_normal=14, density_small=22)
        self.hostile = {
            "number": 1,
            "customer": {"name": "<script>alert('x')</script>", "email": "a&b@example.com"},
            "items": [{"name": "<b>Bolo</b>", "quantity": 1, "unitPrice": 5}],
            "notes": "\"quoted\" & <i>notes</i>",
        }

    def test_html_document_escapes_user_text(self):
        html = self.renderer.render_html_document(self.hostile, now=NOW)
        self.assertIn("&lt;script&gt;", html)
        self.assertNotIn("<script>", html)
        self.assertIn("&lt;b&gt;Bolo&lt;/b&gt;", html)
        self.assertIn("a&amp;b@example.com", html)
        self.assertIn("&quot;quoted&quot; &amp; &lt;i&gt;notes&lt;/i&gt;", html)

    def test_print_document_escapes_user_text(self):
        html = self.renderer.render_print_document(self.hostile, now=NOW)
        self.assertIn("&lt;script&gt;", html)
        self.assertNotIn("<script>", html)

    def test_html_document_layout(self):
        html = self.renderer.render_html_document(CAFE_ORDER, now=NOW)
        self.assertTrue(html.startswith("<!doctype html>"))
        self.assertIn("Pedido #7", html)
        self.assertIn("Emitido em 06/05/2024, 07:08:09", html)
        for header in ("#", "Descrição", "UN", "Qtd", "Preço", "Total"):
            self.assertIn(f">{header}</th>", html)
        self.assertIn("R$ 20,00", html)
        self.assertIn("Documento gerado eletronicamente", html)

    def test_missing_fields_use_placeholders(self):
        html = self.renderer.render_html_document({}, now=NOW)
        self.assertIn("Pedido #—", html)
        self.assertIn('<div style="font-weight:600;">—</div>', html)
        self.assertIn("<div>—</div>", html)

    def test_html_document_empty_items_single_row(self):
        body = _tbody(self.renderer.render_html_document({"number": 1}, now=NOW))
        self.assertEqual(body.count("<tr"), 1)
        self.assertIn('colspan="6"', body)
        self.assertIn(EMPTY_ITEMS_TEXT, body)

    def test_printable_sheet_empty_items_single_row(self):
        full = _tbody(self.renderer.render_printable_sheet({}, CUSTOMER_COPY_LABEL, now=NOW))
        self.assertEqual(full.count("<tr"), 1)
        self.assertIn('colspan="6"', full)

        minimal = _tbody(self.renderer.render_printable_sheet({}, COMPANY_COPY_LABEL, minimal=True, now=NOW))
        self.assertEqual(minimal.count("<tr"), 1)
        self.assertIn('colspan="5"', minimal)


class TestPrintableSheet(unittest.TestCase):

    def setUp(self):
        self.renderer = DocumentRenderer(density_threshold=30, density_normal=14, density_small=22)
        self.order = {"number": 9, "items": [{"name": "Pão", "quantity": 2, "unitPrice": 12.5}]}

    def test_full_copy_has_price_column(self):
        sheet = self.renderer.render_printable_sheet(self.order, CUSTOMER_COPY_LABEL, now=NOW)
        self.assertIn("Preço", sheet)
        self.assertIn("R$ 12,50", sheet)
        self.assertIn("R$ 25,00", sheet)
        self.assertIn(CUSTOMER_COPY_LABEL, sheet)

    def test_minimal_copy_omits_price_column(self):
        sheet = self.renderer.render_printable_sheet(self.order, COMPANY_COPY_LABEL, minimal=True, now=NOW)
        self.assertNotIn("Preço", sheet)
        self.assertNotIn("R$ 12,50", sheet)
        # Line and grand totals still come from the unit price
        self.assertEqual(sheet.count("R$ 25,00"), 2)
        self.assertIn('colspan="4"', sheet)


class TestPrintDocument(unittest.TestCase):

    def setUp(self):
        self.renderer = DocumentRenderer(density_threshold=30, density_normal=14, density_small=22)

    def test_two_copies(self):
        html = self.renderer.render_print_document(_order_with_items(2), now=NOW)
        self.assertEqual(html.count('<div class="copy">'), 2)
        self.assertIn(CUSTOMER_COPY_LABEL, html)
        self.assertIn(COMPANY_COPY_LABEL, html)

    def test_cut_line_up_to_threshold(self):
        html = self.renderer.render_print_document(_order_with_items(30), now=NOW)
        self.assertIn('<hr class="cut" />', html)
        self.assertNotIn('<div class="page-break"></div>', html)

    def test_page_break_above_threshold(self):
        html = self.renderer.render_print_document(_order_with_items(31), now=NOW)
        self.assertIn('<div class="page-break"></div>', html)
        self.assertNotIn('<hr class="cut" />', html)
        self.assertIn('<div class="sheet">', html)

    def test_density_classes(self):
        self.assertIn('<div class="sheet">', self.renderer.render_print_document(_order_with_items(14), now=NOW))
        self.assertIn('<div class="sheet print-scale-sm">',
                      self.renderer.render_print_document(_order_with_items(15), now=NOW))
        self.assertIn('<div class="sheet print-scale-xs">',
                      self.renderer.render_print_document(_order_with_items(23), now=NOW))

    def test_needs_two_sheets(self):
        self.assertFalse(self.renderer.needs_two_sheets(30))
        self.assertTrue(self.renderer.needs_two_sheets(31))


if __name__ == "__main__":
    unittest.main()
