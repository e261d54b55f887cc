from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('restaurants', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='RestaurantSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('currency', models.CharField(default='USD', help_text='ISO 4217 currency code stamped on every new order', max_length=3)),
                ('loyalty_enabled', models.BooleanField(default=False, help_text='When disabled, orders neither earn nor redeem points')),
                ('earn_rate', models.DecimalField(decimal_places=4, default=Decimal('1.0000'), help_text='Points earned per currency unit spent (floor applied)', max_digits=6, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('point_expiry_days', models.PositiveIntegerField(default=365, help_text='Days until earned points expire')),
                ('min_redeem_points', models.PositiveIntegerField(default=100, help_text='Smallest redemption a customer may request')),
                ('redeem_rate', models.PositiveIntegerField(default=100, help_text='Points per redemption unit', validators=[django.core.validators.MinValueValidator(1)])),
                ('redeem_value', models.DecimalField(decimal_places=2, default=Decimal('5.00'), help_text='Currency value of one redemption unit', max_digits=10)),
                ('company_name', models.CharField(blank=True, help_text='Name used in confirmation messages (falls back to restaurant name)', max_length=255)),
                ('email_confirmations_enabled', models.BooleanField(default=True)),
                ('sms_confirmations_enabled', models.BooleanField(default=False)),
                ('feedback_requests_enabled', models.BooleanField(default=False, help_text='Send a feedback request once the kitchen completes an order')),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('restaurant', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='ordering_settings', to='restaurants.restaurant')),
            ],
            options={
                'verbose_name': 'Restaurant Settings',
                'verbose_name_plural': 'Restaurant Settings',
            },
        ),
    ]
