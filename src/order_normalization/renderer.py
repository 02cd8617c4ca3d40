"""
Order Document Renderer
Renders a CanonicalOrder into every presentation artifact: email subject,
plain-text body, HTML email/preview document, and the printable sheets used
for printing and PDF export.

All surfaces share one layout contract (header, customer/notes block, item
table with footer total, disclaimer) and the formatting helpers, so the same
order shows the same numbers everywhere.
"""
from datetime import datetime
from typing import Any, List, Optional

import config

from .formatting import (
    DASH,
    escape_html,
    format_currency,
    format_quantity,
    format_timestamp,
    single_line,
)
from .models import CanonicalOrder
from .normalizer import normalize_order

CUSTOMER_COPY_LABEL = "1ª via — Cliente"
COMPANY_COPY_LABEL = "2ª via — Empresa (resumida)"
EMPTY_ITEMS_TEXT = "— Sem itens —"
DISCLAIMER = "Documento gerado eletronicamente. Válido como pedido de compra."
DOCUMENT_TITLE = "Emissão de pedidos"

FULL_COLUMNS = 6
MINIMAL_COLUMNS = 5

_CELL = "padding:8px 10px;border:1px solid #e5e7eb;"
_HEAD = "padding:10px;border:1px solid #e5e7eb;"

PRINT_CSS = """
  @page { size: A4 portrait; margin: 8mm; }
  html, body { margin:0; padding:0; font-family: -apple-system, Segoe UI, Roboto, Helvetica, Arial, sans-serif; color:#0f172a; }
  .sheet { padding: 0; }
  .copy { page-break-inside: avoid; margin: 0 0 8mm 0; }
  .copy:last-of-type { margin-bottom: 0; }
  .copy-header { display:flex; align-items:center; gap:10px; margin-bottom:6mm; }
  .copy-title { font-weight:700; font-size:16px; }
  .copy-sub { font-size:11px; color:#555; }
  .copy-badge { margin-left:auto; font-size:11px; border:1px solid #333; padding:2px 6px; border-radius:999px; }
  .copy-grid { display:grid; grid-template-columns:1fr 1fr; gap:6px 12px; margin-bottom:6mm; }
  .copy-field label { display:block; font-size:10px; color:#555; }
  .copy-table { width:100%; border-collapse: collapse; font-size:12px; }
  .copy-table th, .copy-table td { border:1px solid #111; padding:6px; }
  .center { text-align:center; } .num { text-align:right; }
  .desc { max-width:0; overflow:hidden; white-space:nowrap; text-overflow:ellipsis; }
  .tfoot th { font-weight:700; }
  .copy-footer { display:flex; align-items:center; gap:10mm; margin-top:6mm; }
  .sign-line { flex:1; border-top:1px dashed #111; text-align:center; padding-top:4mm; font-size:10px; }
  .cut { border:none; border-top:1px dashed #999; margin:8mm 0; }
  .page-break { break-after: page; page-break-after: always; height:0; }
  .print-scale-sm .copy-table { font-size:10px; }
  .print-scale-sm .copy-table th, .print-scale-sm .copy-table td { padding:4px; }
  .print-scale-xs .copy-table { font-size:9px; }
  .print-scale-xs .copy-table th, .print-scale-xs .copy-table td { padding:2px 4px; }
  .print-scale-xs .copy-header, .print-scale-xs .copy-grid { margin-bottom:3mm; }
"""


class DocumentRenderer:
    """Renders order documents from canonical (or raw) orders"""

    def __init__(self, density_threshold: int = None,
                 density_normal: int = None, density_small: int = None):
        """
        Args:
            density_threshold: Item count above which the two printed copies
                               go on separate sheets
            density_normal: Item count up to which the table prints at full size
            density_small: Item count up to which the table prints at small size
        """
        self.density_threshold = (
            density_threshold if density_threshold is not None else config.PRINT_DENSITY_THRESHOLD
        )
        self.density_normal = (
            density_normal if density_normal is not None else config.PRINT_DENSITY_NORMAL
        )
        self.density_small = (
            density_small if density_small is not None else config.PRINT_DENSITY_SMALL
        )

    # ── Pagination policy ─────────────────────────────────────────

    def needs_two_sheets(self, item_count: int) -> bool:
        return item_count > self.density_threshold

    def density_class(self, item_count: int) -> str:
        """CSS class shrinking the item table so both copies fit one sheet."""
        if item_count <= self.density_normal:
            return ""
        if item_count <= self.density_small:
            return "print-scale-sm"
        if item_count <= self.density_threshold:
            return "print-scale-xs"
        return ""

    # ── Text surfaces ─────────────────────────────────────────────

    @staticmethod
    def _number_label(order: CanonicalOrder) -> str:
        if order.number is None or not str(order.number).strip():
            return DASH
        return str(order.number)

    def render_subject(self, order: Any) -> str:
        """``Pedido #<number>`` plus the customer name when known."""
        order = normalize_order(order)
        subject = f"Pedido #{self._number_label(order)}"
        if order.customer and order.customer.name:
            subject += f" — {single_line(order.customer.name)}"
        return subject

    def render_plain_text(self, order: Any) -> str:
        """
        Line-oriented email body.

        Sections (subject, customer contact, items, totals) are separated by
        one blank line; customer lines are omitted when absent.
        """
        order = normalize_order(order)

        customer_lines = []
        if order.customer:
            if order.customer.name:
                customer_lines.append(f"Cliente: {order.customer.name}")
            if order.customer.email:
                customer_lines.append(f"E-mail: {order.customer.email}")
            if order.customer.phone:
                customer_lines.append(f"Telefone: {order.customer.phone}")

        item_lines = [
            f"{index}. {item.name} — {format_quantity(item.quantity)} {item.unit}"
            f" x {format_currency(item.unit_price)} = {format_currency(item.total)}"
            for index, item in enumerate(order.items, start=1)
        ]

        closing_lines = [f"Total: {format_currency(order.total)}"]
        if order.notes:
            closing_lines.append(f"Obs.: {order.notes}")

        sections = [[self.render_subject(order)], customer_lines, item_lines, closing_lines]
        return "\n\n".join("\n".join(lines) for lines in sections if lines)

    def render_summary(self, order: Any, max_items: int = 3) -> str:
        """Short share snippet: header, first items, total and notes."""
        order = normalize_order(order)
        visible = [
            f"{item.name} x {format_quantity(item.quantity)}"
            for item in order.items[:max_items]
        ]
        hidden = len(order.items) - len(visible)
        if order.items:
            items_line = f"Itens ({len(order.items)}): {', '.join(visible)}"
            if hidden > 0:
                items_line += f" … +{hidden} itens"
        else:
            items_line = f"Itens: {DASH}"

        lines = [self.render_subject(order), items_line, f"Total: {format_currency(order.total)}"]
        if order.notes:
            lines.append(f"Obs: {order.notes}")
        return "\n".join(lines)

    # ── HTML email / preview document ─────────────────────────────

    def _customer_contact_html(self, order: CanonicalOrder, separator_style: str = "") -> str:
        email = order.customer.email if order.customer else None
        phone = order.customer.phone if order.customer else None
        parts = []
        if email:
            parts.append(f"<span>{escape_html(email)}</span>")
        if email and phone:
            style = f' style="{separator_style}"' if separator_style else ""
            parts.append(f"<span{style}>•</span>")
        if phone:
            parts.append(f"<span>{escape_html(phone)}</span>")
        return "".join(parts)

    def _document_rows(self, order: CanonicalOrder) -> str:
        if not order.items:
            return (
                f'<tr><td colspan="{FULL_COLUMNS}" style="padding:24px;text-align:center;'
                f'color:#64748b;border:1px solid #e5e7eb;">{EMPTY_ITEMS_TEXT}</td></tr>'
            )
        rows = []
        for index, item in enumerate(order.items, start=1):
            rows.append(f"""
          <tr>
            <td style="{_CELL}text-align:center;">{index}</td>
            <td style="{_CELL}">{escape_html(item.name)}</td>
            <td style="{_CELL}text-align:center;">{escape_html(item.unit)}</td>
            <td style="{_CELL}text-align:right;">{format_quantity(item.quantity)}</td>
            <td style="{_CELL}text-align:right;">{format_currency(item.unit_price)}</td>
            <td style="{_CELL}text-align:right;font-weight:600;">{format_currency(item.total)}</td>
          </tr>""")
        return "".join(rows)

    def render_html_document(self, order: Any, now: Optional[datetime] = None) -> str:
        """
        Self-contained HTML rendition used for the email body and the
        on-screen preview.

        Args:
            order: Raw or canonical order
            now: Issued-at fallback when the order has no timestamp
        """
        order = normalize_order(order)
        issued_at = format_timestamp(order.created_at, now)
        customer_name = escape_html(order.customer.name) if order.customer and order.customer.name else DASH
        notes = escape_html(order.notes) if order.notes else DASH

        return f"""<!doctype html>
<html lang="pt-BR">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width,initial-scale=1" />
  <title>{escape_html(self.render_subject(order))}</title>
</head>
<body style="margin:0;background:#f6f7f9;padding:24px;font-family:-apple-system,BlinkMacSystemFont,Segoe UI,Roboto,Helvetica,Arial,sans-serif;color:#0f172a;">
  <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="max-width:680px;margin:0 auto;background:#ffffff;border:1px solid #e5e7eb;border-radius:12px;overflow:hidden;">
    <tr>
      <td style="padding:20px 24px;border-bottom:1px solid #e5e7eb;">
        <div style="font-size:18px;font-weight:700;">Pedido #{escape_html(self._number_label(order))}</div>
        <div style="font-size:12px;color:#64748b;">Emitido em {escape_html(issued_at)}</div>
      </td>
    </tr>
    <tr>
      <td style="padding:16px 24px;">
        <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="border-collapse:collapse;">
          <tr>
            <td style="width:50%;vertical-align:top;padding-right:12px;">
              <div style="font-size:12px;color:#64748b;margin-bottom:4px;">Cliente</div>
              <div style="font-weight:600;">{customer_name}</div>
              <div style="font-size:12px;color:#334155;margin-top:2px;display:flex;gap:8px;">{self._customer_contact_html(order, 'color:#94a3b8;')}</div>
            </td>
            <td style="width:50%;vertical-align:top;padding-left:12px;">
              <div style="font-size:12px;color:#64748b;margin-bottom:4px;">Observação</div>
              <div>{notes}</div>
            </td>
          </tr>
        </table>
      </td>
    </tr>
    <tr>
      <td style="padding:0 24px 16px;">
        <table width="100%" cellspacing="0" cellpadding="0" style="border-collapse:collapse;border:1px solid #e5e7eb;border-radius:8px;overflow:hidden;">
          <thead>
            <tr style="background:#f8fafc;color:#0f172a;">
              <th style="{_HEAD}text-align:left;">#</th>
              <th style="{_HEAD}text-align:left;">Descrição</th>
              <th style="{_HEAD}text-align:center;">UN</th>
              <th style="{_HEAD}text-align:right;">Qtd</th>
              <th style="{_HEAD}text-align:right;">Preço</th>
              <th style="{_HEAD}text-align:right;">Total</th>
            </tr>
          </thead>
          <tbody>{self._document_rows(order)}</tbody>
          <tfoot>
            <tr>
              <td colspan="{FULL_COLUMNS - 1}" style="{_HEAD}text-align:right;font-weight:700;">Total</td>
              <td style="{_HEAD}text-align:right;font-weight:700;">{format_currency(order.total)}</td>
            </tr>
          </tfoot>
        </table>
      </td>
    </tr>
    <tr>
      <td style="padding:16px 24px;color:#64748b;font-size:12px;border-top:1px solid #e5e7eb;">
        {DISCLAIMER}
      </td>
    </tr>
  </table>
</body>
</html>"""

    # ── Printable sheets ──────────────────────────────────────────

    def _sheet_rows(self, order: CanonicalOrder, minimal: bool) -> str:
        columns = MINIMAL_COLUMNS if minimal else FULL_COLUMNS
        if not order.items:
            return (
                f'<tr><td class="center" colspan="{columns}" style="padding:10mm 0">'
                f'{EMPTY_ITEMS_TEXT}</td></tr>'
            )
        rows = []
        for index, item in enumerate(order.items, start=1):
            price_cell = "" if minimal else f'\n        <td class="num">{format_currency(item.unit_price)}</td>'
            rows.append(f"""
      <tr>
        <td class="center">{index}</td>
        <td class="desc">{escape_html(item.name)}</td>
        <td class="center">{escape_html(item.unit)}</td>
        <td class="num">{format_quantity(item.quantity)}</td>{price_cell}
        <td class="num">{format_currency(item.total)}</td>
      </tr>""")
        return "".join(rows)

    def render_printable_sheet(self, order: Any, copy_label: str, minimal: bool = False,
                               now: Optional[datetime] = None) -> str:
        """
        One printed copy of the order.

        Args:
            order: Raw or canonical order
            copy_label: Badge distinguishing the copy (customer / company)
            minimal: Drop the unit-price column (company copy); line totals
                     are still the ones computed from the unit price
            now: Issued-at fallback when the order has no timestamp

        Returns:
            HTML fragment (``<div class="copy">``) for a print document
        """
        order = normalize_order(order)
        issued_at = format_timestamp(order.created_at, now)
        customer_name = escape_html(order.customer.name) if order.customer and order.customer.name else DASH
        notes = escape_html(order.notes) if order.notes else DASH
        price_header = "" if minimal else '\n          <th style="width:14%" class="num">Preço</th>'

        return f"""
  <div class="copy">
    <div class="copy-header">
      <div>
        <div class="copy-title">{DOCUMENT_TITLE}</div>
        <div class="copy-sub">Pedido #{escape_html(self._number_label(order))} • Emitido em {escape_html(issued_at)}</div>
      </div>
      <div class="copy-badge">{escape_html(copy_label)}</div>
    </div>

    <div class="copy-grid">
      <div class="copy-field">
        <label>Cliente</label>
        <div>
          <div style="font-weight:700">{customer_name}</div>
          <div style="font-size:10px;display:flex;gap:8px;align-items:center;flex-wrap:wrap">{self._customer_contact_html(order)}</div>
        </div>
      </div>
      <div class="copy-field">
        <label>Observação</label>
        <div>{notes}</div>
      </div>
    </div>

    <table class="copy-table">
      <thead>
        <tr>
          <th style="width:5%" class="center">#</th>
          <th>Descrição</th>
          <th style="width:10%" class="center">UN</th>
          <th style="width:{'16%' if minimal else '12%'}" class="num">Qtd</th>{price_header}
          <th style="width:{'22%' if minimal else '16%'}" class="num">Total</th>
        </tr>
      </thead>
      <tbody>{self._sheet_rows(order, minimal)}</tbody>
      <tfoot>
        <tr class="tfoot">
          <th colspan="{(MINIMAL_COLUMNS if minimal else FULL_COLUMNS) - 1}" class="num">Total</th>
          <th class="num">{format_currency(order.total)}</th>
        </tr>
      </tfoot>
    </table>

    <div class="copy-footer">
      <div style="font-size:10px">{DISCLAIMER}</div>
      <div class="sign-line"><span>Assinatura / Carimbo</span></div>
    </div>
  </div>"""

    def render_print_document(self, order: Any, now: Optional[datetime] = None) -> str:
        """
        Full A4 print document with the customer copy and the reduced
        company copy.

        Up to the density threshold both copies share one sheet, separated
        by a cut line; above it each copy gets its own sheet.
        """
        order = normalize_order(order)
        now = now or datetime.now()
        item_count = len(order.items)

        separator = '<div class="page-break"></div>' if self.needs_two_sheets(item_count) else '<hr class="cut" />'
        copies: List[str] = [
            self.render_printable_sheet(order, CUSTOMER_COPY_LABEL, minimal=False, now=now),
            separator,
            self.render_printable_sheet(order, COMPANY_COPY_LABEL, minimal=True, now=now),
        ]
        density = self.density_class(item_count)
        sheet_class = f"sheet {density}".strip()

        return f"""<!doctype html>
<html lang="pt-BR">
<head>
<meta charset="utf-8" />
<meta name="viewport" content="width=device-width,initial-scale=1" />
<title>Pedido #{escape_html(self._number_label(order))}</title>
<style>{PRINT_CSS}</style>
</head>
<body>
  <div class="{sheet_class}">
    {"".join(copies)}
  </div>
</body>
</html>"""


_default_renderer = None


def get_renderer() -> DocumentRenderer:
    """Shared renderer built from configuration."""
    global _default_renderer
    if _default_renderer is None:
        _default_renderer = DocumentRenderer()
    return _default_renderer
