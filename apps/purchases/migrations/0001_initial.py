import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('distributors', '0001_initial'),
        ('medicines', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Purchase',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('invoice_number', models.CharField(blank=True, db_index=True, default='', max_length=100)),
                ('purchase_date', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('discount3_percent', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=7)),
                ('discount3_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('taxable_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('subtotal_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='purchases_created', to=settings.AUTH_USER_MODEL)),
                ('distributor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchases', to='distributors.distributor')),
            ],
            options={
                'ordering': ['-purchase_date', '-created_at'],
                'indexes': [models.Index(fields=['distributor', 'purchase_date'], name='purchase_distributor_date_idx')],
            },
        ),
        migrations.CreateModel(
            name='PurchaseItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('hsn_code', models.CharField(blank=True, default='', max_length=20)),
                ('batch_number', models.CharField(db_index=True, max_length=100)),
                ('manufacturing_date', models.DateTimeField(blank=True, null=True)),
                ('expiry_date', models.DateTimeField(blank=True, null=True)),
                ('total_purchased_unit', models.DecimalField(decimal_places=3, max_digits=14)),
                ('price_per_unit', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=14)),
                ('purchase_price', models.DecimalField(decimal_places=2, max_digits=14)),
                ('mrp', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=14)),
                ('selling_price', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=14)),
                ('discount_percentage', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=7)),
                ('discount_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('discount2_percentage', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=7)),
                ('discount2_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('tax_type', models.CharField(choices=[('flat', 'Flat percentage'), ('noTax', 'No tax'), ('central', 'Central (IGST)'), ('state', 'State (CGST + SGST)')], default='flat', max_length=10)),
                ('tax_percentage', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=7)),
                ('cgst', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=7)),
                ('sgst', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=7)),
                ('igst', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=7)),
                ('taxable_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('tax_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('final_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('medicine', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchase_items', to='medicines.medicine')),
                ('purchase', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='purchases.purchase')),
            ],
            options={
                'ordering': ['id'],
            },
        ),
    ]
