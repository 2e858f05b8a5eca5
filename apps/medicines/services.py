# apps/medicines/services.py
"""
Service layer for stock operations.
All quantities are sub-units; row locks keep concurrent purchases consistent.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.db.models import F

from apps.core.exceptions import InsufficientStockError
from apps.purchases.pricing import main_unit_price_to_sub_unit, to_decimal

logger = logging.getLogger(__name__)


class StockService:
    """
    Service class for batch stock operations.
    """

    @staticmethod
    @transaction.atomic
    def receive(medicine, batch_number, quantity, mrp=None, selling_price=None,
                manufacturing_date=None, expiry_date=None):
        """
        Add purchased sub-units to a batch, creating the batch if needed.

        Args:
            medicine: Medicine instance
            batch_number: Batch identifier (stored lower-cased)
            quantity: Sub-units received
            mrp, selling_price: Per sub-unit; overwrite the batch prices when given
            manufacturing_date, expiry_date: Overwrite the batch dates when given

        Returns:
            Updated Stock instance
        """
        from apps.medicines.models import Stock

        batch_number = (batch_number or '').strip().lower()
        quantity = abs(to_decimal(quantity))

        stock, created = Stock.objects.select_for_update().get_or_create(
            medicine=medicine,
            batch_number=batch_number,
            defaults={'unit_type': medicine.unit_type},
        )

        update_fields = ['updated_at']
        for name, value in (
            ('mrp', mrp),
            ('selling_price', selling_price),
            ('manufacturing_date', manufacturing_date),
            ('expiry_date', expiry_date),
        ):
            if value is not None:
                setattr(stock, name, value)
                update_fields.append(name)
        stock.save(update_fields=update_fields)

        if quantity > 0:
            Stock.objects.filter(pk=stock.pk).update(total_quantity=F('total_quantity') + quantity)
            stock.refresh_from_db()

        logger.info(
            f"Received {quantity} sub-units of {medicine.name} batch '{batch_number}'"
            f"{' (new batch)' if created else ''}, on hand {stock.total_quantity}"
        )
        return stock

    @staticmethod
    @transaction.atomic
    def release(medicine, batch_number, quantity):
        """
        Take sub-units back out of a batch (purchase edited or deleted).

        Raises:
            InsufficientStockError: If the batch no longer holds that many sub-units
        """
        from apps.medicines.models import Stock

        batch_number = (batch_number or '').strip().lower()
        quantity = abs(to_decimal(quantity))
        if quantity == 0:
            return None

        try:
            stock = Stock.objects.select_for_update().get(medicine=medicine, batch_number=batch_number)
        except Stock.DoesNotExist:
            raise InsufficientStockError(detail={
                'message': f"No stock for {medicine.name} batch '{batch_number}'"
            })

        if stock.total_quantity < quantity:
            logger.warning(
                f"Cannot release {quantity} of {medicine.name} batch '{batch_number}': "
                f"only {stock.total_quantity} on hand"
            )
            raise InsufficientStockError(detail={
                'message': (
                    f"Insufficient stock for {medicine.name} batch '{batch_number}'. "
                    f"Available: {stock.total_quantity}, Requested: {quantity}"
                )
            })

        Stock.objects.filter(pk=stock.pk).update(total_quantity=F('total_quantity') - quantity)
        stock.refresh_from_db()
        logger.info(f"Released {quantity} sub-units of {medicine.name} batch '{batch_number}'")
        return stock

    @staticmethod
    @transaction.atomic
    def update_stock(stock, data):
        """
        Apply the stock edit form to a batch.

        ``selling_price_per_main_unit`` is what the form shows; it is stored
        per sub-unit. Renaming the medicine renames the master record.
        """
        from apps.medicines.models import Stock

        stock = Stock.objects.select_for_update().select_related('medicine').get(pk=stock.pk)

        medicine_name = data.pop('medicine_name', None)
        if medicine_name and medicine_name != stock.medicine.name:
            stock.medicine.name = medicine_name
            stock.medicine.save(update_fields=['name', 'updated_at'])

        main_price = data.pop('selling_price_per_main_unit', None)
        if main_price is not None:
            stock.selling_price = main_unit_price_to_sub_unit(
                main_price, stock.sub_units_per_unit
            ).quantize(Decimal('0.0001'), rounding=ROUND_HALF_UP)

        if 'batch_number' in data:
            data['batch_number'] = data['batch_number'].strip().lower()

        for name, value in data.items():
            setattr(stock, name, value)
        stock.save()

        logger.info(f"Stock {stock.pk} updated: {', '.join(sorted(data)) or 'no field changes'}")
        return stock

    @staticmethod
    def get_low_stock(threshold=None):
        """
        Batches at or below their reorder level, or below ``threshold`` sub-units.
        """
        from apps.medicines.models import Stock

        queryset = Stock.objects.select_related('medicine')
        if threshold is not None:
            return queryset.filter(total_quantity__lte=Decimal(str(threshold)))
        return queryset.filter(total_quantity__lte=F('reorder_level'))
