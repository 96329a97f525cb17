"""Order references.

An order can be addressed by its UUID primary key or by its display number.
OrderRef makes the choice explicit; only the HTTP layer guesses from the
shape of a raw path segment, via OrderRef.parse().
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass

from .exceptions import NotFound

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


@dataclass(frozen=True)
class OrderRef:
    """Either ById(uuid) or ByNumber(int)."""

    order_id: uuid.UUID | None = None
    order_number: int | None = None

    @classmethod
    def by_id(cls, order_id) -> OrderRef:
        if not isinstance(order_id, uuid.UUID):
            order_id = uuid.UUID(str(order_id))
        return cls(order_id=order_id)

    @classmethod
    def by_number(cls, order_number: int) -> OrderRef:
        return cls(order_number=int(order_number))

    @classmethod
    def parse(cls, raw: str) -> OrderRef:
        """Sniff a path segment: canonical UUID shape or a (optionally '#'-prefixed) number."""
        value = (raw or "").strip()
        if UUID_PATTERN.match(value):
            return cls.by_id(value)
        digits = value[1:] if value.startswith("#") else value
        if digits.isdigit():
            return cls.by_number(int(digits))
        raise NotFound(f"Order '{raw}' not found.")

    @property
    def is_id(self) -> bool:
        return self.order_id is not None

    def lookup(self) -> dict:
        """ORM filter kwargs for this reference."""
        if self.is_id:
            return {"id": self.order_id}
        return {"order_number": self.order_number}

    def __str__(self):
        return str(self.order_id) if self.is_id else str(self.order_number)
