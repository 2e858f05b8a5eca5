# apps/core/fields.py
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from rest_framework import serializers


class AmountField(serializers.DecimalField):
    """
    DecimalField for money, quantities and percentages coming from forms.

    Extra decimal places are rounded half-up instead of rejected, since the
    client sends derived values (e.g. a back-computed discount percentage)
    with whatever precision the division produced. With ``empty_as_zero``
    an empty string or null is read as 0, the way the purchase forms treat
    blank numeric inputs.
    """

    def __init__(self, *args, empty_as_zero=False, **kwargs):
        self.empty_as_zero = empty_as_zero
        kwargs.setdefault('max_digits', 14)
        kwargs.setdefault('decimal_places', 2)
        super().__init__(*args, **kwargs)

    def validate_empty_values(self, data):
        if self.empty_as_zero and (data is None or data == ''):
            return (False, 0)
        return super().validate_empty_values(data)

    def validate_precision(self, value):
        try:
            value = value.quantize(Decimal(1).scaleb(-self.decimal_places), rounding=ROUND_HALF_UP)
        except InvalidOperation:
            pass  # out of range, reported by the digit checks below
        return super().validate_precision(value)
