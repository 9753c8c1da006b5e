from decimal import Decimal

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Country',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=2, unique=True)),
                ('name', models.CharField(max_length=128)),
                ('currency', models.CharField(max_length=3)),
                ('symbol', models.CharField(blank=True, default='', max_length=8)),
                ('rate_from_usd', models.DecimalField(decimal_places=6, default=Decimal('1'), max_digits=18)),
                ('rate_updated_at', models.DateTimeField(blank=True, null=True)),
                ('minimum_payment_amount', models.DecimalField(decimal_places=2, default=Decimal('10'), max_digits=14)),
                ('shipping_allowed', models.BooleanField(default=True)),
                ('customs_rate', models.DecimalField(blank=True, decimal_places=2, help_text='Default customs duty, percent', max_digits=6, null=True)),
                ('local_tax_rate', models.DecimalField(blank=True, decimal_places=2, help_text='GST / VAT, percent', max_digits=6, null=True)),
                ('local_tax_name', models.CharField(blank=True, default='', max_length=32)),
            ],
            options={
                'db_table': 'countries',
                'ordering': ['code'],
                'verbose_name_plural': 'countries',
            },
        ),
    ]
