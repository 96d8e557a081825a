"""
Pricing / tax calculator

Pure functions shared by the purchase and order engines.

Rounding rule: subtotal and bill discount are quantized to 0.01
(ROUND_HALF_UP) first and the taxable amount is their difference. Each tax
component is quantized from that taxable amount; tax is the sum of the
rounded components and total is taxable plus tax. The stored figures
therefore add up to the cent.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, NamedTuple, Optional, Union

from stockledger.schemas.pricing import BillTotals, Discount, TaxConfig

Number = Union[Decimal, int, float, str]

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


class LineInput(NamedTuple):
    """One bill line; discount is already in currency"""
    quantity: Number
    unit_price: Number
    discount: Number = 0


def to_decimal(value: Optional[Number]) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Number) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def resolve_line_discount(quantity: Number, unit_price: Number, discount: Optional[Discount]) -> Decimal:
    """Turn a line discount descriptor into currency"""
    if discount is None or discount.type == "none":
        return ZERO
    if discount.type == "percentage":
        gross = to_decimal(quantity) * to_decimal(unit_price)
        return gross * discount.value / HUNDRED
    return to_decimal(discount.value)


def line_total(quantity: Number, unit_price: Number, discount: Number = 0) -> Decimal:
    """quantity x unit_price - discount"""
    return to_decimal(quantity) * to_decimal(unit_price) - to_decimal(discount)


def bill_discount_amount(subtotal: Decimal, discount: Optional[Discount]) -> Decimal:
    if discount is None or discount.type == "none":
        return ZERO
    if discount.type == "percentage":
        return subtotal * discount.value / HUNDRED
    return to_decimal(discount.value)


def tax_amounts(taxable: Decimal, tax: Optional[TaxConfig]) -> dict:
    """Tax split by component; cgst and sgst are kept apart for reporting"""
    amounts = {"igst": ZERO, "cgst": ZERO, "sgst": ZERO}
    if tax is None or tax.type == "none":
        return amounts
    if tax.type == "igst":
        amounts["igst"] = taxable * tax.igst_rate / HUNDRED
    else:
        amounts["cgst"] = taxable * tax.cgst_rate / HUNDRED
        amounts["sgst"] = taxable * tax.sgst_rate / HUNDRED
    return amounts


def compute_bill(
    lines: Iterable[LineInput],
    bill_discount: Optional[Discount] = None,
    tax: Optional[TaxConfig] = None) -> BillTotals:
    """
    Bill totals for a sequence of lines

    subtotal = sum of line totals
    taxable  = subtotal - bill discount, never below zero
    tax      = taxable x rate (igst) or taxable x (cgst + sgst)
    total    = taxable + tax
    """
    line_totals: List[Decimal] = [line_total(*line) for line in lines]
    subtotal = round_money(sum(line_totals, ZERO))

    discount = round_money(bill_discount_amount(subtotal, bill_discount))
    if discount > subtotal:
        discount = subtotal
    taxable = subtotal - discount

    amounts = {name: round_money(value) for name, value in tax_amounts(taxable, tax).items()}
    tax_total = amounts["igst"] + amounts["cgst"] + amounts["sgst"]

    return BillTotals(
        subtotal=subtotal,
        discount=discount,
        taxable_amount=taxable,
        igst=amounts["igst"],
        cgst=amounts["cgst"],
        sgst=amounts["sgst"],
        tax=tax_total,
        total=taxable + tax_total,
    )


def amounts_agree(expected: Number, supplied: Optional[Number]) -> bool:
    """Caller-supplied figure matches ours to the cent (None means not supplied)"""
    if supplied is None:
        return True
    return abs(round_money(expected) - round_money(supplied)) <= CENT
