"""Pricing engine

Pure functions: line prices from a product and its selected options, and
order totals from line totals, a discount rule and a tax rate. All money is
``Decimal``; only the order-level figures are rounded to the currency unit.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pos_core.exceptions import InvalidPricing, InvalidSelection

BEFORE_TAX = "before_tax"
AFTER_TAX = "after_tax"
DISCOUNT_POLICIES = (BEFORE_TAX, AFTER_TAX)

PERCENTAGE = "PERCENTAGE"
FIXED_AMOUNT = "FIXED_AMOUNT"

ZERO = Decimal("0")


def quantum(places: int) -> Decimal:
    """Smallest currency unit, e.g. Decimal('0.01') for 2 places"""
    return Decimal(1).scaleb(-places)


@dataclass(frozen=True)
class SelectedOption:
    group: str
    name: str
    price_delta: Decimal

    def to_dict(self) -> Dict[str, str]:
        return {"group": self.group, "name": self.name, "price_delta": str(self.price_delta)}


@dataclass(frozen=True)
class OptionGroup:
    name: str
    required: bool
    options: Dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class LinePrice:
    unit_price: Decimal
    quantity: int
    item_total: Decimal
    options: Tuple[SelectedOption, ...] = ()


@dataclass(frozen=True)
class DiscountRule:
    """Snapshot of a promotion's discount terms"""
    discount_type: str
    value: Decimal
    max_discount: Optional[Decimal] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DiscountRule":
        max_discount = data.get("max_discount")
        return cls(
            discount_type=data["discount_type"],
            value=Decimal(str(data["value"])),
            max_discount=Decimal(str(max_discount)) if max_discount is not None else None,
        )

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "discount_type": self.discount_type,
            "value": str(self.value),
            "max_discount": str(self.max_discount) if self.max_discount is not None else None,
        }


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    discount_amount: Decimal
    tax: Decimal
    total_amount: Decimal


def option_groups(product) -> "OrderedDict[str, OptionGroup]":
    """Group a product's flat option rows by group name, in sort order.

    A group is required if any of its rows is flagged required.
    """
    rows = sorted(product.options or [], key=lambda o: (o.sort_order or 0))
    groups: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    for row in rows:
        group = groups.setdefault(row.option_group, {"required": False, "options": OrderedDict()})
        group["required"] = group["required"] or bool(row.is_required)
        group["options"][row.option_name] = Decimal(str(row.price_delta or 0))

    return OrderedDict(
        (name, OptionGroup(name=name, required=g["required"], options=dict(g["options"])))
        for name, g in groups.items()
    )


def price(product, quantity: int, selections: Optional[Mapping[str, str]] = None) -> LinePrice:
    """Price one cart line.

    ``selections`` maps option-group name to the chosen option name. Every
    required group needs exactly one selection; optional groups take at most
    one. Nothing is defaulted.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidSelection("Quantity must be a positive integer", quantity=quantity)

    if not getattr(product, "is_available", True):
        raise InvalidSelection(f"{product.name} is not available", product=product.name)

    selections = dict(selections or {})
    groups = option_groups(product)

    unknown = [g for g in selections if g not in groups]
    if unknown:
        raise InvalidSelection(
            f"Option group(s) {', '.join(sorted(unknown))} do not belong to {product.name}",
            groups=sorted(unknown),
        )

    chosen: List[SelectedOption] = []
    for group in groups.values():
        choice = selections.get(group.name)
        if choice is None or choice == "":
            if group.required:
                raise InvalidSelection(
                    f"A selection for '{group.name}' is required", group=group.name
                )
            continue
        if not isinstance(choice, str):
            raise InvalidSelection(
                f"Only one option may be selected for '{group.name}'", group=group.name
            )
        if choice not in group.options:
            raise InvalidSelection(
                f"'{choice}' is not an option of '{group.name}'",
                group=group.name,
                option=choice,
            )
        chosen.append(SelectedOption(group.name, choice, group.options[choice]))

    unit_price = Decimal(str(product.price)) + sum((o.price_delta for o in chosen), ZERO)
    if unit_price < ZERO:
        raise InvalidPricing(
            f"Resolved price for {product.name} is negative", unit_price=str(unit_price)
        )

    return LinePrice(
        unit_price=unit_price,
        quantity=quantity,
        item_total=unit_price * quantity,
        options=tuple(chosen),
    )


def compute_discount(base: Decimal, rule: Optional[DiscountRule], places: int = 2) -> Decimal:
    """Discount for ``base``, never more than ``base`` itself.

    Percentages round down to the currency unit before the cap is applied.
    """
    if rule is None or base <= ZERO:
        return ZERO.quantize(quantum(places))

    if rule.discount_type == PERCENTAGE:
        discount = (base * rule.value / Decimal(100)).quantize(quantum(places), rounding=ROUND_DOWN)
        if rule.max_discount is not None:
            discount = min(discount, rule.max_discount)
    elif rule.discount_type == FIXED_AMOUNT:
        discount = rule.value
    else:
        raise InvalidPricing(f"Unknown discount type {rule.discount_type}")

    discount = max(min(discount, base), ZERO)
    return discount.quantize(quantum(places), rounding=ROUND_DOWN)


def compute_total(
    line_totals: Iterable[Decimal],
    rule: Optional[DiscountRule],
    tax_rate: Decimal,
    policy: str = BEFORE_TAX,
    places: int = 2,
) -> OrderTotals:
    """Order-level totals; ``total_amount == subtotal - discount_amount + tax``"""
    if policy not in DISCOUNT_POLICIES:
        raise InvalidPricing(f"Unknown discount policy {policy}")

    q = quantum(places)
    subtotal = sum((Decimal(str(t)) for t in line_totals), ZERO).quantize(q, rounding=ROUND_HALF_UP)
    rate = Decimal(str(tax_rate))

    if policy == BEFORE_TAX:
        discount = compute_discount(subtotal, rule, places)
        tax = ((subtotal - discount) * rate).quantize(q, rounding=ROUND_HALF_UP)
    else:
        tax = (subtotal * rate).quantize(q, rounding=ROUND_HALF_UP)
        discount = compute_discount(subtotal + tax, rule, places)

    return OrderTotals(
        subtotal=subtotal,
        discount_amount=discount,
        tax=tax,
        total_amount=subtotal - discount + tax,
    )
