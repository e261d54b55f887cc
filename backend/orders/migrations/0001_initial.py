import uuid

import django.db.models.deletion
import orders.fields
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('restaurants', '0001_initial'),
        ('customers', '0001_initial'),
        ('tables', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('order_number', models.CharField(max_length=20)),
                ('order_type', models.CharField(choices=[('dine-in', 'Dine-in'), ('pickup', 'Pickup'), ('pos-counter', 'POS Counter')], max_length=20)),
                ('line_items', orders.fields.LineItemsField(default=list)),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=10)),
                ('currency', models.CharField(default='USD', max_length=3)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('preparing', 'Preparing'), ('ready', 'Ready'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='pending', max_length=20)),
                ('payment_status', models.CharField(choices=[('unpaid', 'Unpaid'), ('paid', 'Paid'), ('cash_in_hand', 'Cash in Hand')], default='unpaid', max_length=20)),
                ('payment_method', models.CharField(blank=True, max_length=30)),
                ('otp', models.CharField(blank=True, max_length=12, null=True)),
                ('qr_code', models.TextField(blank=True)),
                ('discount_used', models.JSONField(blank=True, help_text="Loyalty usage: {'points': int, 'discount': str}", null=True)),
                ('points_earned', models.PositiveIntegerField(default=0)),
                ('customer_name', models.CharField(blank=True, max_length=255)),
                ('customer_phone', models.CharField(blank=True, max_length=20)),
                ('customer_email', models.EmailField(blank=True, max_length=254)),
                ('pickup_time', models.DateTimeField(blank=True, null=True)),
                ('special_instructions', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_orders', to=settings.AUTH_USER_MODEL)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='orders', to='customers.customer')),
                ('restaurant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='orders', to='restaurants.restaurant')),
                ('table', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='orders', to='tables.diningtable')),
            ],
            options={
                'verbose_name': 'Order',
                'verbose_name_plural': 'Orders',
                'ordering': ['-created_at', 'order_number'],
                'indexes': [
                    models.Index(fields=['restaurant', 'status'], name='order_rest_status_idx'),
                    models.Index(fields=['restaurant', 'order_type'], name='order_rest_type_idx'),
                    models.Index(fields=['restaurant', '-created_at'], name='order_rest_created_idx'),
                    models.Index(fields=['table', 'status'], name='order_table_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('restaurant', 'order_number'), name='unique_order_number_per_restaurant'),
                ],
            },
        ),
    ]
