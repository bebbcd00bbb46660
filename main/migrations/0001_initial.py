from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, unique=True)),
                ('hsn_code', models.CharField(blank=True, default='', max_length=20)),
                ('packing_type', models.CharField(help_text='Primary unit, e.g. BAG', max_length=30)),
                ('maintain_stock', models.BooleanField(default=True)),
                ('has_dual_units', models.BooleanField(default=False)),
                ('secondary_unit', models.CharField(blank=True, max_length=30, null=True)),
                ('conversion_rate', models.DecimalField(blank=True, decimal_places=6, help_text='Secondary units per one primary unit (1 BAG = 20 KGS)', max_digits=15, null=True)),
                ('formula_base_qty', models.DecimalField(decimal_places=4, default=1, help_text='Batch size production is rounded up to', max_digits=15)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Purchase',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(db_index=True)),
                ('bill_no', models.CharField(blank=True, default='', max_length=50)),
                ('party_name', models.CharField(blank=True, default='', max_length=200)),
                ('quantity', models.DecimalField(decimal_places=4, max_digits=15)),
                ('unit', models.CharField(blank=True, default='', max_length=30)),
                ('conversion_factor', models.DecimalField(decimal_places=6, default=1, max_digits=15)),
                ('bill_value', models.DecimalField(decimal_places=2, default=0, max_digits=15)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchases', to='main.product')),
            ],
            options={
                'ordering': ['-date', '-id'],
            },
        ),
        migrations.CreateModel(
            name='Sale',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(db_index=True)),
                ('bill_no', models.CharField(blank=True, default='', max_length=50)),
                ('party_name', models.CharField(blank=True, default='', max_length=200)),
                ('quantity', models.DecimalField(decimal_places=4, max_digits=15)),
                ('unit', models.CharField(blank=True, default='', max_length=30)),
                ('conversion_factor', models.DecimalField(decimal_places=6, default=1, max_digits=15)),
                ('bill_value', models.DecimalField(decimal_places=2, default=0, max_digits=15)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sales', to='main.product')),
            ],
            options={
                'ordering': ['-date', '-id'],
            },
        ),
    ]
