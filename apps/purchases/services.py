# apps/purchases/services.py
"""
Service layer for purchases.
Keeps purchase lines, bill totals and batch stock in step inside one transaction.
"""
import logging

from django.db import transaction

from apps.medicines.services import StockService
from .models import Purchase, PurchaseItem, quantize_money, quantize_rate
from .pricing import single_entry_totals

logger = logging.getLogger(__name__)

ITEM_FIELDS = (
    'medicine', 'hsn_code', 'batch_number', 'manufacturing_date', 'expiry_date',
    'total_purchased_unit', 'price_per_unit', 'purchase_price', 'mrp', 'selling_price',
    'discount_percentage', 'discount2_percentage', 'tax_type', 'tax_percentage',
    'cgst', 'sgst', 'igst',
)


class PurchaseService:
    """
    Creates, edits and deletes purchases.
    """

    @staticmethod
    def _receive_item(item):
        StockService.receive(
            item.medicine,
            item.batch_number,
            item.stock_quantity,
            mrp=item.mrp,
            selling_price=item.selling_price,
            manufacturing_date=item.manufacturing_date,
            expiry_date=item.expiry_date,
        )

    @staticmethod
    def _release_item(item):
        StockService.release(item.medicine, item.batch_number, item.stock_quantity)

    @staticmethod
    def _add_items(purchase, items_data):
        for data in items_data:
            item = PurchaseItem(purchase=purchase)
            for name in ITEM_FIELDS:
                if name in data:
                    setattr(item, name, data[name])
            item.batch_number = (item.batch_number or '').strip().lower()
            item.purchase_price = quantize_money(item.price_per_unit * item.stock_quantity)
            item.refresh_pricing()
            item.save()
            PurchaseService._receive_item(item)

    @staticmethod
    def _set_header(purchase, data):
        """
        Copy header fields onto the purchase.

        The bill discount is either a percent or a flat amount: whichever
        one is given clears the other. A positive percent wins when both are.
        """
        percent = data.pop('discount3_percent', None)
        amount = data.pop('discount3_amount', None)
        for name, value in data.items():
            setattr(purchase, name, value)

        if percent is None and amount is None:
            return
        if amount is None or (percent is not None and percent > 0):
            discount = purchase.bill_discount.with_percent(percent)
        else:
            discount = purchase.bill_discount.with_amount(amount)
        purchase.discount3_percent = discount.percent
        purchase.discount3_amount = discount.amount

    @staticmethod
    @transaction.atomic
    def create_purchase(validated_data):
        """
        Record a purchase and put its lines on the shelf.

        Args:
            validated_data: Serializer data; ``items`` holds the lines

        Returns:
            The saved Purchase with totals computed
        """
        data = dict(validated_data)
        items_data = data.pop('items', [])

        purchase = Purchase()
        PurchaseService._set_header(purchase, data)
        purchase.save()
        PurchaseService._add_items(purchase, items_data)
        purchase.calculate_totals()

        logger.info(
            f"Purchase {purchase.pk} ({purchase.invoice_number or 'no invoice number'}) "
            f"created with {len(items_data)} line(s), total {purchase.total_amount}"
        )
        return purchase

    @staticmethod
    @transaction.atomic
    def update_purchase(purchase, validated_data):
        """
        Replace a purchase's header and, when given, all of its lines.

        The old lines' stock is released before the new lines are received.

        Raises:
            InsufficientStockError: If stock from the old lines was already used
        """
        data = dict(validated_data)
        items_data = data.pop('items', None)

        PurchaseService._set_header(purchase, data)
        purchase.save()

        if items_data is not None:
            for item in purchase.items.select_related('medicine'):
                PurchaseService._release_item(item)
            purchase.items.all().delete()
            PurchaseService._add_items(purchase, items_data)

        purchase.calculate_totals()
        logger.info(f"Purchase {purchase.pk} updated, total {purchase.total_amount}")
        return purchase

    @staticmethod
    @transaction.atomic
    def delete_purchase(purchase):
        """
        Delete a purchase and take its quantities back out of stock.
        """
        for item in purchase.items.select_related('medicine'):
            PurchaseService._release_item(item)

        purchase_id = purchase.pk
        purchase.delete()
        logger.info(f"Purchase {purchase_id} deleted")

    @staticmethod
    @transaction.atomic
    def update_entry(item, validated_data):
        """
        Apply the single-entry edit form to one purchase line.

        The form prices the line as sub-units x sub-unit price, one discount
        and a tax type (no tax, IGST, or CGST + SGST). The combined tax rate is
        stored as ``tax_percentage``.
        """
        data = dict(validated_data)
        tax_mode = data.pop('tax_mode')
        purchase_date = data.pop('purchase_date', None)

        PurchaseService._release_item(item)

        for name, value in data.items():
            setattr(item, name, value)
        item.batch_number = (item.batch_number or '').strip().lower()

        totals = single_entry_totals(
            item.stock_quantity, item.price_per_unit, item.discount_percentage, tax_mode
        )
        entry = tax_mode.as_entry()

        item.purchase_price = quantize_money(totals.total_price)
        item.discount_price = quantize_money(totals.discount_amount)
        item.discount2_percentage = 0
        item.discount2_price = 0
        item.tax_type = tax_mode.tax_type
        item.cgst, item.sgst, item.igst = entry['cgst'], entry['sgst'], entry['igst']
        item.tax_percentage = quantize_rate(tax_mode.rate)
        item.taxable_amount = quantize_money(totals.taxable_amount)
        item.tax_amount = quantize_money(totals.tax_amount)
        item.final_price = quantize_money(totals.grand_total)
        item.save()

        PurchaseService._receive_item(item)

        purchase = item.purchase
        if purchase_date is not None:
            purchase.purchase_date = purchase_date
            purchase.save(update_fields=['purchase_date', 'updated_at'])
        purchase.calculate_totals()

        logger.info(
            f"Purchase entry {item.pk} updated: {tax_mode.tax_type} {item.tax_percentage}%, "
            f"grand total {item.final_price}"
        )
        return item
