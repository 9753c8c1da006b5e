from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='EmailSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('setting_key', models.CharField(choices=[('email_notifications_enabled', 'All email notifications'), ('quote_notifications_enabled', 'Quote emails'), ('order_notifications_enabled', 'Order emails')], max_length=64, unique=True)),
                ('setting_value', models.BooleanField(default=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'email_settings',
                'verbose_name_plural': 'email settings',
            },
        ),
        migrations.CreateModel(
            name='EmailTemplate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('template_type', models.CharField(max_length=64, unique=True)),
                ('subject', models.CharField(max_length=255)),
                ('body', models.TextField(help_text='Django template syntax; context has quote, status, status_label')),
                ('is_active', models.BooleanField(default=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'email_templates',
            },
        ),
        migrations.CreateModel(
            name='Quote',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(db_index=True, default='pending', max_length=32)),
                ('customer_email', models.EmailField(blank=True, default='', max_length=254)),
                ('origin_country', models.CharField(max_length=2)),
                ('destination_country', models.CharField(max_length=2)),
                ('shipping_method', models.CharField(choices=[('standard', 'Standard'), ('express', 'Express'), ('economy', 'Economy')], default='standard', max_length=20)),
                ('payment_gateway', models.CharField(default='stripe', max_length=32)),
                ('insurance_required', models.BooleanField(default=True)),
                ('handling_fee_type', models.CharField(choices=[('fixed', 'Fixed'), ('percentage', 'Percentage'), ('both', 'Both')], default='both', max_length=12)),
                ('order_discount', models.JSONField(blank=True, null=True)),
                ('shipping_discount', models.JSONField(blank=True, null=True)),
                ('calculation_data', models.JSONField(blank=True, null=True)),
                ('customer_currency', models.CharField(default='USD', max_length=3)),
                ('total_usd', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14)),
                ('total_customer_currency', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=18)),
                ('share_token', models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('calculated_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='quotes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'quotes',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['customer', '-created_at'], name='quotes_custome_2a9c1e_idx'),
                    models.Index(fields=['status', 'expires_at'], name='quotes_status_5b7d0f_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='QuoteItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('product_url', models.URLField(blank=True, default='', max_length=1024)),
                ('quantity', models.PositiveIntegerField(default=1)),
                ('unit_price_usd', models.DecimalField(decimal_places=2, max_digits=12)),
                ('weight_kg', models.DecimalField(blank=True, decimal_places=3, max_digits=10, null=True)),
                ('hsn_code', models.CharField(blank=True, max_length=16, null=True)),
                ('use_hsn_rates', models.BooleanField(default=False)),
                ('discount_percentage', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=5)),
                ('quote', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='quotes.quote')),
            ],
            options={
                'db_table': 'quote_items',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='StatusTransition',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('from_status', models.CharField(max_length=32)),
                ('to_status', models.CharField(max_length=32)),
                ('trigger', models.CharField(choices=[('payment_received', 'Payment received'), ('quote_sent', 'Quote sent'), ('order_shipped', 'Order shipped'), ('quote_expired', 'Quote expired'), ('manual', 'Manual'), ('auto_calculation', 'Auto calculation')], default='manual', max_length=32)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('changed_at', models.DateTimeField(auto_now_add=True)),
                ('changed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('quote', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transitions', to='quotes.quote')),
            ],
            options={
                'db_table': 'status_transitions',
                'ordering': ['changed_at', 'id'],
                'indexes': [
                    models.Index(fields=['quote', 'changed_at'], name='status_tran_quote_i_8e4f2a_idx'),
                ],
            },
        ),
    ]
