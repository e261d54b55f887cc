"""
Typed order line items and their storage codec.

Line items live in a single JSON column on Order. encode_line_items / decode_line_items
are the only place that knows the stored shape; LineItemsField calls them at the
database boundary and everything else works with LineItem objects.
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Sequence, Tuple

MONEY_QUANTUM = Decimal("0.01")


class ItemStatus:
    """Kitchen progress of a single line item"""
    PENDING = "pending"
    FULFILLED = "fulfilled"

    values = (PENDING, FULFILLED)


def to_money(value) -> Decimal:
    try:
        return Decimal(str(value)).quantize(MONEY_QUANTUM)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Invalid amount: {value!r}")


@dataclass(frozen=True)
class Addon:
    name: str
    price: Decimal = Decimal("0.00")

    def __post_init__(self):
        object.__setattr__(self, 'price', to_money(self.price))
        if self.price < 0:
            raise ValueError(f"Add-on '{self.name}' has a negative price")


@dataclass(frozen=True)
class LineItem:
    name: str
    quantity: int
    unit_price: Decimal
    addons: Tuple[Addon, ...] = field(default_factory=tuple)
    status: str = ItemStatus.PENDING

    def __post_init__(self):
        object.__setattr__(self, 'unit_price', to_money(self.unit_price))
        object.__setattr__(self, 'addons', tuple(self.addons))
        if not self.name:
            raise ValueError("Line item name is required")
        if int(self.quantity) < 1:
            raise ValueError(f"Line item '{self.name}' must have a quantity of at least 1")
        if self.unit_price < 0:
            raise ValueError(f"Line item '{self.name}' has a negative price")
        if self.status not in ItemStatus.values:
            raise ValueError(f"Line item '{self.name}' has an unknown status '{self.status}'")

    @property
    def addons_total(self) -> Decimal:
        return sum((addon.price for addon in self.addons), Decimal("0.00"))

    @property
    def line_total(self) -> Decimal:
        return ((self.unit_price + self.addons_total) * self.quantity).quantize(MONEY_QUANTUM)


def line_items_total(items: Iterable[LineItem]) -> Decimal:
    return sum((item.line_total for item in items), Decimal("0.00"))


def encode_line_items(items: Sequence[LineItem]) -> List[dict]:
    """LineItem objects -> JSON-safe list. Amounts are stored as strings."""
    encoded = []
    for item in items:
        if isinstance(item, dict):
            item = decode_line_item(item)
        encoded.append({
            "name": item.name,
            "quantity": item.quantity,
            "unitPrice": str(item.unit_price),
            "addons": [{"name": addon.name, "price": str(addon.price)} for addon in item.addons],
            "status": item.status,
        })
    return encoded


def decode_line_item(raw: dict) -> LineItem:
    # "price" and "selectedAddons" are the keys ordering clients send
    unit_price = raw.get("unitPrice", raw.get("unit_price", raw.get("price")))
    addons = raw.get("addons", raw.get("selectedAddons")) or []
    return LineItem(
        name=raw["name"],
        quantity=int(raw["quantity"]),
        unit_price=unit_price,
        addons=tuple(Addon(name=addon["name"], price=addon.get("price", 0)) for addon in addons),
        status=raw.get("status") or ItemStatus.PENDING,
    )


def decode_line_items(raw) -> List[LineItem]:
    if not raw:
        return []
    return [decode_line_item(entry) for entry in raw]
