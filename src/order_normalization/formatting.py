"""
Display formatting shared by every order document surface.

Plain text, email HTML, printable sheets and PDFs all format money, quantities
and timestamps through these helpers so one order never looks different
across surfaces.
"""
import html
from datetime import datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import config

from .normalizer import to_number

DASH = "—"
TIMESTAMP_FORMAT = "%d/%m/%Y, %H:%M:%S"


def format_currency(value: Any, symbol: str = None) -> str:
    """
    Format a monetary value as pt-BR Real, e.g. ``R$ 1.234,56``.

    Unparseable values format as zero.
    """
    symbol = symbol if symbol is not None else config.CURRENCY_SYMBOL
    amount = round(to_number(value), 2)
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(amount):,.2f}"
    # 1,234.56 -> 1.234,56
    grouped = grouped.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}{symbol} {grouped}"


def format_quantity(value: Any) -> str:
    """Integral quantities print without decimals; others trim trailing zeros."""
    quantity = to_number(value)
    if quantity.is_integer():
        return str(int(quantity))
    return f"{quantity:.6f}".rstrip("0").rstrip(".")


def format_timestamp(value: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Format an issued-at timestamp as ``dd/mm/yyyy, HH:MM:SS``.

    Aware datetimes are shown in DISPLAY_TIMEZONE; naive ones as-is.
    When the order carries no timestamp, ``now`` (or the current time) is used.
    """
    moment = value or now or datetime.now()
    if moment.tzinfo is not None and config.DISPLAY_TIMEZONE:
        try:
            moment = moment.astimezone(ZoneInfo(config.DISPLAY_TIMEZONE))
        except ZoneInfoNotFoundError:
            pass
    return moment.strftime(TIMESTAMP_FORMAT)


def escape_html(value: Any) -> str:
    """Escape ``& < > " '`` so user text never becomes markup."""
    return html.escape("" if value is None else str(value), quote=True)


def single_line(value: Any) -> str:
    """Collapse runs of whitespace (CR/LF included) into single spaces."""
    return " ".join(("" if value is None else str(value)).split())
