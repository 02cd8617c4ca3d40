"""
Order Normalizer
Turns loosely-shaped order records (sqlite rows, client JSON payloads, draft
state) into the CanonicalOrder every document surface renders.
"""
import math
import re
import sqlite3
from collections.abc import Mapping
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional

from .models import (
    CanonicalOrder,
    CanonicalOrderItem,
    CustomerSnapshot,
    RawOrderInput,
    RawShape,
)

PLACEHOLDER = "-"

# Plain ASCII decimal, optional sign and exponent
_NUMBER_PATTERN = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)

# Accepted renderings of the issued-at timestamp besides ISO 8601
_DATETIME_FORMATS = [
    "%d/%m/%Y, %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y",
]


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a numeric value the lenient way.

    Returns:
        A finite float, or None when the value is missing, not numeric, or
        not finite (NaN / infinity).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            number = float(value)
        except (OverflowError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not _NUMBER_PATTERN.fullmatch(text):
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def to_number(value: Any) -> float:
    """Coerce to a finite float; anything unparseable becomes 0."""
    number = parse_number(value)
    return number if number is not None else 0.0


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse datetimes, ISO strings, pt-BR display strings and epoch millis."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            pass
        for fmt in _DATETIME_FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
    return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class OrderNormalizer:
    """Normalizes raw order records into CanonicalOrder instances"""

    def __init__(self):
        """Initialize normalizer with field alias tables"""
        # Item-level aliases, in resolution order
        self.quantity_keys = ("quantity", "qty")
        self.unit_price_keys = ("unitPrice", "unit_price", "price")
        self.total_keys = ("total", "lineTotal", "line_total")
        self.product_keys = ("product",)

        # Order-level aliases
        self.created_at_keys = ("created_at", "createdAt", "issued_at", "issuedAt")

    @staticmethod
    def _field(source: Any, *keys: str) -> Any:
        """First non-None value among ``keys`` on a mapping, row or object."""
        if source is None:
            return None
        for key in keys:
            if isinstance(source, Mapping):
                value = source.get(key)
            elif isinstance(source, sqlite3.Row):
                value = source[key] if key in source.keys() else None
            else:
                value = getattr(source, key, None)
            if value is not None:
                return value
        return None

    def normalize_item(self, raw_item: Any) -> CanonicalOrderItem:
        """
        Normalize a single order line

        Resolution order for every field: the item's own value, then the
        nested product reference, then the default.

        Args:
            raw_item: Mapping / row / object with any of the aliased fields

        Returns:
            CanonicalOrderItem with finite, non-negative quantity and price
        """
        product = self._field(raw_item, *self.product_keys)

        name = _text(self._field(raw_item, "name")) or _text(self._field(product, "name"))
        unit = _text(self._field(raw_item, "unit")) or _text(self._field(product, "unit"))

        quantity = max(0.0, to_number(self._field(raw_item, *self.quantity_keys)))

        raw_price = self._field(raw_item, *self.unit_price_keys)
        if raw_price is None:
            raw_price = self._field(product, "price")
        unit_price = max(0.0, to_number(raw_price))

        explicit_total = parse_number(self._field(raw_item, *self.total_keys))
        total = explicit_total if explicit_total is not None else to_number(quantity * unit_price)

        return CanonicalOrderItem(
            name=name or PLACEHOLDER,
            unit=unit or PLACEHOLDER,
            quantity=quantity,
            unit_price=unit_price,
            total=total,
        )

    def normalize_customer(self, raw_customer: Any) -> Optional[CustomerSnapshot]:
        """Snapshot name/email/phone; None when nothing usable is present."""
        if raw_customer is None:
            return None
        snapshot = CustomerSnapshot(
            name=_text(self._field(raw_customer, "name")),
            email=_text(self._field(raw_customer, "email")),
            phone=_text(self._field(raw_customer, "phone")),
        )
        if snapshot.name is None and snapshot.email is None and snapshot.phone is None:
            return None
        return snapshot

    @staticmethod
    def _number(value: Any):
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if not math.isfinite(value):
                return None
            return int(value) if value.is_integer() else value
        return _text(value)

    def normalize_items(self, raw_items: Any) -> List[CanonicalOrderItem]:
        if not isinstance(raw_items, (list, tuple)):
            return []
        return [self.normalize_item(item) for item in raw_items]

    def normalize(self, raw: Any) -> CanonicalOrder:
        """
        Normalize a whole order

        Never raises for malformed input; missing or broken fields fall back
        to their defaults.

        Args:
            raw: A CanonicalOrder, a mapping (client JSON, dumped model), a
                 sqlite row or any object exposing the order attributes

        Returns:
            CanonicalOrder
        """
        tagged = RawOrderInput.classify(raw)
        if tagged.shape is RawShape.CANONICAL:
            return tagged.value

        source = tagged.value
        if source is None or isinstance(source, (str, bytes, int, float, bool)):
            source = {}

        items = self.normalize_items(self._field(source, "items"))

        explicit_total = parse_number(self._field(source, "total"))
        if explicit_total is not None:
            total = explicit_total
        else:
            total = to_number(sum((it.total for it in items), 0.0))

        return CanonicalOrder(
            id=_text(self._field(source, "id")),
            number=self._number(self._field(source, "number")),
            customer=self.normalize_customer(self._field(source, "customer")),
            items=items,
            notes=_text(self._field(source, "notes")) or "",
            created_at=parse_datetime(self._field(source, *self.created_at_keys)),
            total=total,
        )


_default_normalizer = OrderNormalizer()


def normalize_order(raw: Any) -> CanonicalOrder:
    """Normalize with the shared (stateless) normalizer."""
    return _default_normalizer.normalize(raw)
