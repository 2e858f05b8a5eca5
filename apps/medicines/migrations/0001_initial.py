import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('distributors', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Medicine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(db_index=True, max_length=255)),
                ('hsn_code', models.CharField(blank=True, default='', max_length=20)),
                ('unit_type', models.CharField(choices=[('strip', 'Strip'), ('bottle', 'Bottle'), ('packet', 'Packet'), ('box', 'Box'), ('jar', 'Jar'), ('tube', 'Tube')], default='strip', max_length=20)),
                ('base_unit_type', models.CharField(choices=[('tablet', 'Tablet'), ('capsule', 'Capsule'), ('syrup', 'Syrup (ml)'), ('powder', 'Powder'), ('oil', 'Oil (ml)'), ('gram', 'Gram')], default='tablet', max_length=20)),
                ('total_quantity_in_a_unit', models.PositiveIntegerField(default=1, help_text='Number of sub-units (tablets, ml, ...) in one main unit', validators=[django.core.validators.MinValueValidator(1)])),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('manufacturer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='medicines', to='distributors.manufacturer')),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Stock',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('batch_number', models.CharField(db_index=True, max_length=100)),
                ('total_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), help_text='Quantity in sub-units', max_digits=14, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('unit_type', models.CharField(blank=True, default='', max_length=20)),
                ('mrp', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=12)),
                ('selling_price', models.DecimalField(decimal_places=4, default=Decimal('0'), help_text='Price per sub-unit', max_digits=12)),
                ('manufacturing_date', models.DateTimeField(blank=True, null=True)),
                ('expiry_date', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('reorder_level', models.DecimalField(decimal_places=3, default=Decimal('10'), max_digits=14)),
                ('medicine', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stocks', to='medicines.medicine')),
            ],
            options={
                'ordering': ['expiry_date', 'medicine__name'],
                'constraints': [models.UniqueConstraint(fields=('medicine', 'batch_number'), name='unique_medicine_batch')],
            },
        ),
    ]
