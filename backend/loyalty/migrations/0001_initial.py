import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('restaurants', '0001_initial'),
        ('customers', '0001_initial'),
        ('orders', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='LoyaltyLedgerEntry',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('entry_type', models.CharField(choices=[('earn', 'Earn'), ('redeem', 'Redeem')], max_length=10)),
                ('points', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('expires_at', models.DateTimeField(blank=True, help_text='Only meaningful for earn entries', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='loyalty_entries', to='customers.customer')),
                ('order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='loyalty_entries', to='orders.order')),
                ('restaurant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='loyalty_entries', to='restaurants.restaurant')),
            ],
            options={
                'verbose_name_plural': 'loyalty ledger entries',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['customer', 'entry_type', 'expires_at'], name='ledger_cust_type_exp_idx'),
                    models.Index(fields=['restaurant', 'created_at'], name='ledger_rest_created_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('points__gt', 0)), name='loyalty_entry_points_positive'),
                ],
            },
        ),
    ]
