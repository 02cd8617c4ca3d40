"""
Canonical order models and the raw-input boundary.

Everything upstream of the normalizer (sqlite rows, client JSON, draft
state) is untyped; everything downstream works on these models.
"""
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class CustomerSnapshot(BaseModel):
    """Customer identity as printed on an order."""
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class CanonicalOrderItem(BaseModel):
    """One fully-defaulted order line."""
    model_config = ConfigDict(frozen=True)

    name: str = "-"
    unit: str = "-"
    quantity: float = Field(0.0, ge=0)
    unit_price: float = Field(0.0, ge=0)
    total: float = 0.0


class CanonicalOrder(BaseModel):
    """The single order view every rendering surface consumes."""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    number: Optional[Union[int, str]] = None
    customer: Optional[CustomerSnapshot] = None
    items: List[CanonicalOrderItem] = Field(default_factory=list)
    notes: str = ""
    created_at: Optional[datetime] = None
    total: float = 0.0

    @property
    def reference(self) -> str:
        """Number when known, otherwise id; used in file names and logs."""
        if self.number is not None and str(self.number).strip():
            return str(self.number)
        return self.id or "-"


class RawShape(str, Enum):
    CANONICAL = "canonical"
    NEEDS_COERCION = "needs_coercion"


class RawOrderInput(BaseModel):
    """
    Tagged raw input: either an order that is already canonical, or any
    other value that must go through coercion.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    shape: RawShape
    value: Any = None

    @classmethod
    def classify(cls, raw: Any) -> "RawOrderInput":
        if isinstance(raw, RawOrderInput):
            return raw
        if isinstance(raw, CanonicalOrder):
            return cls(shape=RawShape.CANONICAL, value=raw)
        return cls(shape=RawShape.NEEDS_COERCION, value=raw)
