from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('main', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ProductFormula',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=6, max_digits=15)),
                ('unit_type', models.CharField(choices=[('primary', 'Primary Unit'), ('secondary', 'Secondary Unit')], default='primary', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('ingredient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='used_in_formulas', to='main.product')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='formula_lines', to='main.product')),
            ],
            options={
                'ordering': ['id'],
                'constraints': [models.UniqueConstraint(fields=('product', 'ingredient'), name='unique_formula_ingredient')],
            },
        ),
        migrations.CreateModel(
            name='ProductionLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(db_index=True)),
                ('batch_no', models.CharField(max_length=50, unique=True)),
                ('output_quantity', models.DecimalField(decimal_places=4, max_digits=15)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('output_product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='production_logs', to='main.product')),
            ],
            options={
                'ordering': ['-date', '-id'],
            },
        ),
        migrations.CreateModel(
            name='ProductionItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('input_quantity', models.DecimalField(decimal_places=4, max_digits=15)),
                ('input_product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='main.product')),
                ('production', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='stock.productionlog')),
            ],
            options={
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='StockLedger',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField()),
                ('transaction_type', models.CharField(choices=[('OPENING', 'Opening Stock'), ('PURCHASE', 'Purchase'), ('SALE', 'Sale'), ('PRODUCTION', 'Auto Production'), ('CONSUMPTION', 'Consumption'), ('PRODUCTION_IN', 'Production In'), ('PRODUCTION_OUT', 'Production Out'), ('ADJUSTMENT_IN', 'Adjustment In'), ('ADJUSTMENT_OUT', 'Adjustment Out'), ('TRANSFER_IN', 'Transfer In'), ('TRANSFER_OUT', 'Transfer Out')], db_index=True, max_length=20)),
                ('quantity_in', models.DecimalField(decimal_places=4, default=0, max_digits=15)),
                ('quantity_out', models.DecimalField(decimal_places=4, default=0, max_digits=15)),
                ('related_id', models.PositiveBigIntegerField(blank=True, null=True)),
                ('trans_unit', models.CharField(blank=True, max_length=30, null=True)),
                ('trans_conversion_factor', models.DecimalField(decimal_places=6, default=1, max_digits=15)),
                ('remarks', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='ledger_entries', to='main.product')),
            ],
            options={
                'verbose_name': 'stock ledger entry',
                'verbose_name_plural': 'stock ledger',
                'ordering': ['date', 'id'],
                'indexes': [
                    models.Index(fields=['product', 'date'], name='stock_ledger_product_date_idx'),
                    models.Index(fields=['related_id', 'transaction_type'], name='stock_ledger_related_type_idx'),
                ],
            },
        ),
    ]
