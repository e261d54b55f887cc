import uuid
from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('restaurants', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Customer',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(blank=True, max_length=255)),
                ('phone', models.CharField(blank=True, max_length=20, null=True)),
                ('email', models.EmailField(blank=True, max_length=254, null=True)),
                ('total_orders', models.PositiveIntegerField(default=0)),
                ('total_spent', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('last_order_date', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('restaurant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='customers', to='restaurants.restaurant')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['restaurant', 'phone'], name='customer_rest_phone_idx'),
                    models.Index(fields=['restaurant', 'email'], name='customer_rest_email_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('phone__isnull', False)), fields=('restaurant', 'phone'), name='unique_customer_phone_per_restaurant'),
                    models.UniqueConstraint(condition=models.Q(('email__isnull', False)), fields=('restaurant', 'email'), name='unique_customer_email_per_restaurant'),
                ],
            },
        ),
    ]
