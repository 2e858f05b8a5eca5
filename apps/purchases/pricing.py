# apps/purchases/pricing.py
"""
Purchase line pricing calculator.

Pure functions over an immutable ``PurchaseLine``. Every edit screen that
touches a purchase line (bulk purchase drawer, single-entry edit, stock edit)
goes through these functions, so the unit conversion, discount cascade and
tax rules live in one place.

Quantities and prices on a ``PurchaseLine`` are main-unit denominated (what a
purchasing clerk types). The conversion to sub-units happens only in
``line_to_payload`` / ``line_from_payload``.

Nothing here raises on bad numeric input: empty or non-numeric values count
as zero and divisions by a zero factor yield zero.
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

ZERO = Decimal('0')
ONE = Decimal('1')
HUNDRED = Decimal('100')


def to_decimal(value: Any) -> Decimal:
    """Coerce user input to Decimal. Empty, None and garbage become 0."""
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if value is None:
        return ZERO
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    return result if result.is_finite() else ZERO


def _divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator > 0:
        return numerator / denominator
    return ZERO


def _percent_of(amount: Decimal, percentage: Decimal) -> Decimal:
    return amount * percentage / HUNDRED


# Tax modes

@dataclass(frozen=True)
class NoTax:
    tax_type = 'noTax'

    @property
    def rate(self) -> Decimal:
        return ZERO

    def components(self, taxable: Decimal) -> dict:
        return {'cgst': ZERO, 'sgst': ZERO, 'igst': ZERO}

    def tax_amount(self, taxable: Decimal) -> Decimal:
        return ZERO

    def as_entry(self) -> dict:
        return {'taxType': self.tax_type, 'cgst': ZERO, 'sgst': ZERO, 'igst': ZERO}


@dataclass(frozen=True)
class Central:
    """Inter-state purchase: a single IGST rate."""
    igst: Decimal = ZERO
    tax_type = 'central'

    @property
    def rate(self) -> Decimal:
        return self.igst

    def components(self, taxable: Decimal) -> dict:
        return {'cgst': ZERO, 'sgst': ZERO, 'igst': _percent_of(taxable, self.igst)}

    def tax_amount(self, taxable: Decimal) -> Decimal:
        return _percent_of(taxable, self.igst)

    def as_entry(self) -> dict:
        return {'taxType': self.tax_type, 'cgst': ZERO, 'sgst': ZERO, 'igst': self.igst}


@dataclass(frozen=True)
class State:
    """Intra-state purchase: CGST and SGST charged separately."""
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO
    tax_type = 'state'

    @property
    def rate(self) -> Decimal:
        return self.cgst + self.sgst

    def components(self, taxable: Decimal) -> dict:
        return {
            'cgst': _percent_of(taxable, self.cgst),
            'sgst': _percent_of(taxable, self.sgst),
            'igst': ZERO,
        }

    def tax_amount(self, taxable: Decimal) -> Decimal:
        parts = self.components(taxable)
        return parts['cgst'] + parts['sgst']

    def as_entry(self) -> dict:
        return {'taxType': self.tax_type, 'cgst': self.cgst, 'sgst': self.sgst, 'igst': ZERO}


@dataclass(frozen=True)
class Flat:
    """Plain tax percentage as entered on the bulk purchase form."""
    percentage: Decimal = ZERO
    tax_type = 'flat'

    @property
    def rate(self) -> Decimal:
        return self.percentage

    def components(self, taxable: Decimal) -> dict:
        return {'cgst': ZERO, 'sgst': ZERO, 'igst': ZERO}

    def tax_amount(self, taxable: Decimal) -> Decimal:
        return _percent_of(taxable, self.percentage)

    def as_entry(self) -> dict:
        return {'taxType': self.tax_type, 'cgst': ZERO, 'sgst': ZERO, 'igst': ZERO}


TAX_TYPES = ('noTax', 'central', 'state', 'flat')


def tax_mode_from_entry(tax_type, cgst=None, sgst=None, igst=None, tax_percentage=None):
    """
    Build a tax mode from the single-entry form fields.

    Rates that do not belong to the chosen type are dropped, which is what
    the form does when the tax type changes. Unknown types are untaxed.
    """
    if tax_type == Central.tax_type:
        return Central(igst=to_decimal(igst))
    if tax_type == State.tax_type:
        return State(cgst=to_decimal(cgst), sgst=to_decimal(sgst))
    if tax_type == Flat.tax_type:
        return Flat(percentage=to_decimal(tax_percentage))
    return NoTax()


# Purchase line

@dataclass(frozen=True)
class PurchaseLine:
    """
    One medicine row of a purchase.

    Discount percentages are the stored values; the discount amounts are
    derived from them so the two can never disagree.
    """
    medicine: Optional[Any] = None
    hsn_code: str = ''
    sub_units_per_unit: Decimal = ONE
    purchased_units: Decimal = ZERO
    total_purchased_unit: Decimal = ZERO
    price_per_main_unit: Decimal = ZERO
    price_per_sub_unit: Decimal = ZERO
    purchase_price: Decimal = ZERO
    mrp: Decimal = ZERO
    selling_price: Decimal = ZERO
    discount_percentage: Decimal = ZERO
    discount2_percentage: Decimal = ZERO
    tax_mode: Any = field(default_factory=Flat)
    batch_number: str = ''
    manufacturing_date: Any = None
    expiry_date: Any = None

    @property
    def discount_price(self) -> Decimal:
        return _percent_of(self.purchase_price, self.discount_percentage)

    @property
    def after_discount1(self) -> Decimal:
        return self.purchase_price * (ONE - self.discount_percentage / HUNDRED)

    @property
    def discount2_price(self) -> Decimal:
        return _percent_of(self.after_discount1, self.discount2_percentage)

    @property
    def taxable_amount(self) -> Decimal:
        """Price after both discounts, before tax."""
        return self.after_discount1 * (ONE - self.discount2_percentage / HUNDRED)

    @property
    def tax_percentage(self) -> Decimal:
        return self.tax_mode.rate

    @property
    def tax_amount(self) -> Decimal:
        return self.tax_mode.tax_amount(self.taxable_amount)


def empty_line() -> PurchaseLine:
    """Blank row added to a purchase form."""
    return PurchaseLine()


def select_medicine(line, medicine, hsn_code='', sub_units_per_unit=None):
    """Attach a medicine master record to a line."""
    factor = ONE if sub_units_per_unit is None else to_decimal(sub_units_per_unit)
    return replace(
        line,
        medicine=medicine,
        hsn_code=hsn_code or '',
        sub_units_per_unit=factor,
    )


# Recompute operations

def recompute_on_units_change(line, new_purchased_units):
    units = to_decimal(new_purchased_units)
    factor = line.sub_units_per_unit
    main_price = line.price_per_main_unit
    return replace(
        line,
        purchased_units=units,
        total_purchased_unit=units * factor,
        purchase_price=main_price * units,
        price_per_sub_unit=_divide(main_price, factor),
    )


def recompute_on_sub_units_change(line, new_total_purchased_unit):
    sub_units = to_decimal(new_total_purchased_unit)
    factor = line.sub_units_per_unit
    units = _divide(sub_units, factor)
    main_price = line.price_per_main_unit
    return replace(
        line,
        total_purchased_unit=sub_units,
        purchased_units=units,
        purchase_price=main_price * units,
        price_per_sub_unit=_divide(main_price, factor),
    )


def recompute_on_main_unit_price_change(line, new_price_per_main_unit):
    main_price = to_decimal(new_price_per_main_unit)
    return replace(
        line,
        price_per_main_unit=main_price,
        price_per_sub_unit=_divide(main_price, line.sub_units_per_unit),
        purchase_price=main_price * line.purchased_units,
    )


def recompute_on_sub_unit_price_change(line, new_price_per_sub_unit):
    sub_price = to_decimal(new_price_per_sub_unit)
    main_price = sub_price * line.sub_units_per_unit
    return replace(
        line,
        price_per_sub_unit=sub_price,
        price_per_main_unit=main_price,
        purchase_price=main_price * line.purchased_units,
    )


def recompute_on_discount1_percent_change(line, new_percentage):
    return replace(line, discount_percentage=to_decimal(new_percentage))


def recompute_on_discount1_amount_change(line, new_amount):
    amount = to_decimal(new_amount)
    percentage = _divide(amount, line.purchase_price) * HUNDRED
    return replace(line, discount_percentage=percentage)


def recompute_on_discount2_percent_change(line, new_percentage):
    return replace(line, discount2_percentage=to_decimal(new_percentage))


def recompute_on_discount2_amount_change(line, new_amount):
    amount = to_decimal(new_amount)
    percentage = _divide(amount, line.after_discount1) * HUNDRED
    return replace(line, discount2_percentage=percentage)


def _set_tax_percentage(line, value):
    return replace(line, tax_mode=Flat(percentage=to_decimal(value)))


_RECOMPUTE = {
    'purchased_units': recompute_on_units_change,
    'total_purchased_unit': recompute_on_sub_units_change,
    'price_per_main_unit': recompute_on_main_unit_price_change,
    'price_per_sub_unit': recompute_on_sub_unit_price_change,
    'discount_percentage': recompute_on_discount1_percent_change,
    'discount_price': recompute_on_discount1_amount_change,
    'discount2_percentage': recompute_on_discount2_percent_change,
    'discount2_price': recompute_on_discount2_amount_change,
    'tax_percentage': _set_tax_percentage,
}

_NUMERIC_FIELDS = ('mrp', 'selling_price')
_PLAIN_FIELDS = ('batch_number', 'hsn_code', 'manufacturing_date', 'expiry_date')

EDITABLE_FIELDS = tuple(_RECOMPUTE) + _NUMERIC_FIELDS + _PLAIN_FIELDS


def recompute(line, field_name, value):
    """
    Apply a single field edit and recompute whatever depends on it.

    Raises:
        ValueError: If ``field_name`` is not an editable line field
    """
    if field_name in _RECOMPUTE:
        return _RECOMPUTE[field_name](line, value)
    if field_name in _NUMERIC_FIELDS:
        return replace(line, **{field_name: to_decimal(value)})
    if field_name in _PLAIN_FIELDS:
        return replace(line, **{field_name: value})
    raise ValueError(f"Unknown purchase line field: {field_name}")


# Prices and totals

def final_price(line) -> Decimal:
    """Line price after discount 1, discount 2 and tax."""
    taxable = line.taxable_amount
    return taxable + line.tax_mode.tax_amount(taxable)


@dataclass(frozen=True)
class BillTotals:
    taxable_amount: Decimal
    subtotal_amount: Decimal
    total_amount: Decimal


def bill_totals(lines: Iterable[PurchaseLine], discount3_amount=ZERO) -> BillTotals:
    """
    Aggregate a purchase bill.

    The total is not floored at zero: a bill discount larger than the
    subtotal gives a negative total.
    """
    lines = list(lines)
    taxable = sum((line.taxable_amount for line in lines), ZERO)
    subtotal = sum((final_price(line) for line in lines), ZERO)
    return BillTotals(
        taxable_amount=taxable,
        subtotal_amount=subtotal,
        total_amount=subtotal - to_decimal(discount3_amount),
    )


@dataclass(frozen=True)
class BillDiscount:
    """
    Bill-level discount ("discount 3").

    Percent and amount are alternatives: setting one clears the other.
    """
    percent: Decimal = ZERO
    amount: Decimal = ZERO

    def with_percent(self, percent):
        return BillDiscount(percent=to_decimal(percent), amount=ZERO)

    def with_amount(self, amount):
        return BillDiscount(percent=ZERO, amount=to_decimal(amount))

    def effective_amount(self, subtotal) -> Decimal:
        subtotal = to_decimal(subtotal)
        percent = to_decimal(self.percent)
        if percent > 0 and subtotal > 0:
            return _percent_of(subtotal, percent)
        return to_decimal(self.amount)

    def apply(self, lines):
        """
        Bill totals for ``lines`` with this discount taken off.

        Returns:
            (BillTotals, the discount amount applied)
        """
        totals = bill_totals(lines)
        discount3_amount = self.effective_amount(totals.subtotal_amount)
        return replace(totals, total_amount=totals.subtotal_amount - discount3_amount), discount3_amount


@dataclass(frozen=True)
class SingleEntryTotals:
    total_price: Decimal
    discount_amount: Decimal
    taxable_amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    tax_amount: Decimal
    grand_total: Decimal


def single_entry_totals(total_purchased_unit, price_per_unit, discount, tax_mode) -> SingleEntryTotals:
    """
    Totals for the single-entry purchase edit form.

    Unlike the bulk bill, both the taxable amount and the grand total are
    floored at zero here.
    """
    total_price = to_decimal(total_purchased_unit) * to_decimal(price_per_unit)
    discount_amount = _percent_of(total_price, to_decimal(discount))
    taxable = max(ZERO, total_price - discount_amount)
    parts = tax_mode.components(taxable)
    tax = tax_mode.tax_amount(taxable)
    return SingleEntryTotals(
        total_price=total_price,
        discount_amount=discount_amount,
        taxable_amount=taxable,
        cgst_amount=parts['cgst'],
        sgst_amount=parts['sgst'],
        igst_amount=parts['igst'],
        tax_amount=tax,
        grand_total=max(ZERO, taxable + tax),
    )


# Sub-unit conversions

def main_unit_price_to_sub_unit(price, sub_units_per_unit) -> Decimal:
    return _divide(to_decimal(price), to_decimal(sub_units_per_unit))


def sub_unit_price_to_main_unit(price, sub_units_per_unit) -> Decimal:
    return to_decimal(price) * to_decimal(sub_units_per_unit)


# Payload boundary

def _boundary_factor(value) -> Decimal:
    factor = to_decimal(value)
    return factor if factor > 0 else ONE


def _iso(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value or None


def line_to_payload(line) -> dict:
    """Convert a form line to the sub-unit denominated API payload item."""
    factor = _boundary_factor(line.sub_units_per_unit)
    return {
        'medicine': line.medicine,
        'totalPurchasedUnit': line.total_purchased_unit / factor,
        'pricePerUnit': line.price_per_sub_unit,
        'purchasePrice': line.purchase_price,
        'mrp': line.mrp / factor,
        'sellingPrice': line.selling_price / factor,
        'batchNumber': (line.batch_number or '').strip().lower(),
        'hsnCode': line.hsn_code,
        'manufacturingDate': _iso(line.manufacturing_date),
        'expiryDate': _iso(line.expiry_date),
        'discountPercentage': line.discount_percentage,
        'discountPrice': line.discount_price,
        'discount2Percentage': line.discount2_percentage,
        'discount2Price': line.discount2_price,
        'taxPercentage': line.tax_percentage,
    }


def line_from_payload(item: dict, sub_units_per_unit) -> PurchaseLine:
    """
    Rebuild a form line from a stored payload item.

    The stored purchase price is kept as is; unit prices are derived from it.
    Items carrying a ``taxType`` keep their tax mode, others get a flat rate.
    """
    factor = _boundary_factor(sub_units_per_unit)
    purchased_units = to_decimal(item.get('totalPurchasedUnit'))
    total_purchased_unit = purchased_units * factor
    purchase_price = to_decimal(item.get('purchasePrice'))
    price_per_sub_unit = _divide(purchase_price, total_purchased_unit)

    if item.get('taxType'):
        tax_mode = tax_mode_from_entry(
            item['taxType'],
            cgst=item.get('cgst'),
            sgst=item.get('sgst'),
            igst=item.get('igst'),
            tax_percentage=item.get('taxPercentage'),
        )
    else:
        tax_mode = Flat(percentage=to_decimal(item.get('taxPercentage')))

    return PurchaseLine(
        medicine=item.get('medicine'),
        hsn_code=item.get('hsnCode') or '',
        sub_units_per_unit=factor,
        purchased_units=purchased_units,
        total_purchased_unit=total_purchased_unit,
        price_per_main_unit=price_per_sub_unit * factor,
        price_per_sub_unit=price_per_sub_unit,
        purchase_price=purchase_price,
        mrp=to_decimal(item.get('mrp')) * factor,
        selling_price=to_decimal(item.get('sellingPrice')) * factor,
        discount_percentage=to_decimal(item.get('discountPercentage')),
        discount2_percentage=to_decimal(item.get('discount2Percentage')),
        tax_mode=tax_mode,
        batch_number=item.get('batchNumber') or '',
        manufacturing_date=item.get('manufacturingDate'),
        expiry_date=item.get('expiryDate'),
    )


def build_purchase_payload(lines, invoice_number, distributor, purchase_date,
                           bill_discount: Optional[BillDiscount] = None) -> dict:
    """
    Assemble the purchase document sent to the purchase API.

    Rows without a medicine are left out, the same way the form ignores
    blank rows on submit.
    """
    bill_discount = bill_discount or BillDiscount()
    selected = [line for line in lines if line.medicine is not None]
    totals, discount3_amount = bill_discount.apply(selected)

    return {
        'invoiceNumber': invoice_number,
        'medicines': [line_to_payload(line) for line in selected],
        'distributor': distributor,
        'totalAmount': totals.total_amount,
        'purchaseDate': _iso(purchase_date),
        'taxableAmount': totals.taxable_amount,
        'discount3Percent': to_decimal(bill_discount.percent),
        'discount3Amount': discount3_amount,
    }
