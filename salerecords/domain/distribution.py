from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from salerecords.domain.money import ZERO, RoundingSpec, to_decimal, to_fixed


@dataclass
class DistributeItem:
    id: int
    item_code: str
    item_total_sale_price: Decimal
    distribute_amt: Decimal = ZERO


@dataclass
class DistributeData:
    items: list[DistributeItem] = field(default_factory=list)
    items_total_amt: Decimal = ZERO

    def add(self, item_id: int, item_code: str, total_sale_price, spec: RoundingSpec | None = None) -> DistributeItem:
        weight = to_decimal(total_sale_price)
        item = DistributeItem(id=item_id, item_code=item_code, item_total_sale_price=weight)
        self.items.append(item)
        self.items_total_amt = to_fixed(self.items_total_amt + weight, spec)
        return item


def calculate_distribute_amt(data: DistributeData, amount, spec: RoundingSpec | None = None) -> None:
    """Split ``amount`` across ``data.items`` by sale-price weight, in place.

    Each share is rounded with ``spec``; the drift left after rounding goes to
    the first heaviest item when positive, or to the first item in order that
    can absorb it without going negative.
    """
    items = data.items
    if not items or data.items_total_amt == ZERO:
        return

    amount = to_decimal(amount)
    remainder = amount
    for item in items:
        item.distribute_amt = to_fixed(amount * item.item_total_sale_price / data.items_total_amt, spec)
        remainder = to_fixed(remainder - item.distribute_amt)

    if remainder > ZERO:
        heaviest = max(items, key=lambda item: item.item_total_sale_price)
        heaviest.distribute_amt = to_fixed(heaviest.distribute_amt + remainder)
    elif remainder < ZERO:
        for item in items:
            if item.distribute_amt + remainder >= ZERO:
                item.distribute_amt = to_fixed(item.distribute_amt + remainder)
                return
        # no single share can take the whole overshoot
        for item in items:
            taken = min(item.distribute_amt, -remainder)
            item.distribute_amt = to_fixed(item.distribute_amt - taken)
            remainder = to_fixed(remainder + taken)
            if remainder == ZERO:
                return
