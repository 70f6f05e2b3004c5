"""Cart and product row type definitions."""

from datetime import datetime
from typing import Any, TypedDict


class CartRow(TypedDict):
    """Cart table row.

    ``products`` holds a snapshot of the product plus the chosen quantity.
    """

    id: int
    created_at: datetime
    email: str
    name: str | None
    products: dict[str, Any]


class ProductRow(TypedDict, total=False):
    """Products table row (columns used by checkout)."""

    id: str
    name: str
    price: float | str | None
    stock: int | None
    unit: str | None
