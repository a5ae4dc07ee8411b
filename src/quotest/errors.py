"""Exception types raised by the pricing and reconciliation engine."""

from __future__ import annotations

from typing import Iterable, List


class QuotationError(Exception):
    """Base class for every error the engine reports to its caller."""


class InvalidInputError(QuotationError, ValueError):
    """Raised when an input value is negative, out of range or inconsistent."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class UnknownProductError(InvalidInputError):
    """Raised when a catalog item references a product the catalog lacks."""

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Unknown catalog product: {product_id!r}", field="product_id")
        self.product_id = product_id


class NoMatchError(QuotationError, LookupError):
    """Raised on request when recorded expenses could not be matched to materials."""

    def __init__(self, names: Iterable[str]) -> None:
        self.names: List[str] = list(names)
        joined = ", ".join(f'"{name}"' for name in self.names)
        super().__init__(f"No recorded expense matched: {joined}")
