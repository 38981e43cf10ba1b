"""Data models for extracted receipts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .currency import DEFAULT_CURRENCY, to_number

Amount = str | float | int


@dataclass(frozen=True)
class ReceiptItem:
    """A single receipt line. Negative ``price`` marks a discount line."""

    name: str
    quantity: Amount
    price: Amount
    unit_price: Amount | None = None

    @property
    def is_discount(self) -> bool:
        return to_number(self.price) < 0

    @property
    def quantity_value(self) -> float:
        return to_number(self.quantity)

    @property
    def price_value(self) -> float:
        return to_number(self.price)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "name": self.name,
            "quantity": self.quantity,
            "price": self.price,
        }
        if self.unit_price is not None:
            d["unitPrice"] = self.unit_price
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ReceiptItem:
        return cls(
            name=d["name"],
            quantity=d.get("quantity", "1"),
            price=d.get("price", d.get("total", "0")),
            unit_price=d.get("unitPrice"),
        )


def to_count(value: Any) -> int | None:
    """Explicit item count; zero means the receipt did not print one."""
    if isinstance(value, bool) or value is None:
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        count = int(float(value.strip() if isinstance(value, str) else value))
    except (ValueError, OverflowError):
        return None
    return count or None


def count_purchased_items(items: tuple[ReceiptItem, ...] | list[ReceiptItem]) -> int:
    """Sum quantities of positive-price lines. Discounts are not counted."""
    total = 0.0
    for item in items:
        if item.price_value > 0:
            qty = item.quantity_value
            total += qty if qty == qty else 1  # NaN quantity counts as one
    return int(round(total))


def legacy_mirror(
    items: tuple[ReceiptItem, ...],
    total: Amount | None,
    timestamp: str,
    file_name: str,
) -> dict[str, Any]:
    """Derive the older schema's duplicate fields from the canonical ones."""
    return {
        "products": tuple(
            {
                "name": item.name,
                "price": item.price,
                "quantity": item.quantity,
                "total": item.price,
            }
            for item in items
        ),
        "total_spending": total or 0,
        "extraction_date": timestamp,
        "file_name": file_name,
    }


@dataclass(frozen=True)
class ReceiptData:
    """One successful extraction. Never modified after construction."""

    id: str
    file_name: str
    timestamp: str
    items: tuple[ReceiptItem, ...]
    currency: str = DEFAULT_CURRENCY
    store_name: str | None = None
    address: str | None = None
    phone: str | None = None
    date: str | None = None
    total_items: int | None = None
    tax: Amount | None = None
    total: Amount | None = None
    total_discount: Amount | None = None

    # Legacy mirror fields, derived once in __post_init__
    products: tuple[dict[str, Any], ...] = field(init=False, compare=False, repr=False)
    total_spending: Amount = field(init=False, compare=False, repr=False)
    extraction_date: str = field(init=False, compare=False, repr=False)
    legacy_file_name: str = field(init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))
        mirror = legacy_mirror(self.items, self.total, self.timestamp, self.file_name)
        object.__setattr__(self, "products", mirror["products"])
        object.__setattr__(self, "total_spending", mirror["total_spending"])
        object.__setattr__(self, "extraction_date", mirror["extraction_date"])
        object.__setattr__(self, "legacy_file_name", mirror["file_name"])

    @property
    def item_count(self) -> int:
        """Explicit item count if the receipt printed one, else derived."""
        if self.total_items is not None:
            return self.total_items
        return count_purchased_items(self.items)

    @property
    def computed_discount(self) -> float:
        return sum(i.price_value for i in self.items if i.is_discount)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted JSON layout, legacy fields included."""
        return {
            "id": self.id,
            "storeName": self.store_name,
            "address": self.address,
            "phone": self.phone,
            "date": self.date,
            "currency": self.currency,
            "totalItems": self.total_items,
            "totalDiscount": self.total_discount,
            "items": [item.to_dict() for item in self.items],
            "tax": self.tax,
            "total": self.total,
            "timestamp": self.timestamp,
            "fileName": self.file_name,
            "products": [dict(p) for p in self.products],
            "total_spending": self.total_spending,
            "extraction_date": self.extraction_date,
            "file_name": self.legacy_file_name,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ReceiptData:
        """Rebuild a record from its persisted form.

        Accepts records written by the older schema, which only carried
        ``products``, ``total_spending``, ``extraction_date`` and
        ``file_name``.
        """
        raw_items = d.get("items")
        if raw_items is None:
            raw_items = d.get("products", [])
        timestamp = d.get("timestamp") or d.get("extraction_date") or ""
        file_name = d.get("fileName") or d.get("file_name") or ""
        total = d.get("total")
        if total is None and d.get("total_spending"):
            total = d["total_spending"]

        return cls(
            id=d.get("id") or f"legacy_{file_name}_{timestamp}",
            file_name=file_name,
            timestamp=timestamp,
            items=tuple(ReceiptItem.from_dict(i) for i in raw_items),
            currency=d.get("currency") or DEFAULT_CURRENCY,
            store_name=d.get("storeName"),
            address=d.get("address"),
            phone=d.get("phone"),
            date=d.get("date"),
            total_items=to_count(d.get("totalItems")),
            tax=d.get("tax"),
            total=total,
            total_discount=d.get("totalDiscount"),
        )
