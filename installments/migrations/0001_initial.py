from decimal import Decimal
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('customer', '0001_initial'),
        ('sales', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='InstallmentPlan',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('description', models.TextField(blank=True, null=True)),
                ('down_payment_percent', models.DecimalField(decimal_places=2, help_text='Down payment as % of the sale total', max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal('0')), django.core.validators.MaxValueValidator(Decimal('100'))])),
                ('number_of_payments', models.PositiveIntegerField(help_text='Number of installments after the down payment', validators=[django.core.validators.MinValueValidator(1)])),
                ('interval_days', models.PositiveIntegerField(help_text='Days between installments (e.g. 7, 15, 30)', validators=[django.core.validators.MinValueValidator(1)])),
                ('interest_rate', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Flat interest % applied to the financed amount', max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'installment_plans',
                'ordering': ['-is_active', 'number_of_payments', 'name'],
            },
        ),
        migrations.CreateModel(
            name='Deposit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('checkout_session', models.UUIDField(blank=True, db_index=True, help_text='Draft checkout this record was created in', null=True)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('date', models.DateTimeField()),
                ('method', models.CharField(choices=[('cash', 'Cash'), ('card', 'Card'), ('bank_transfer', 'Bank Transfer'), ('mobile_wallet', 'Mobile Wallet'), ('other', 'Other')], default='cash', max_length=20)),
                ('note', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='deposits', to='customer.customer')),
                ('sale', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='deposits', to='sales.sale')),
            ],
            options={
                'db_table': 'deposits',
                'ordering': ['-date'],
                'indexes': [
                    models.Index(fields=['customer', 'sale'], name='deposits_customer_sale_idx'),
                    models.Index(fields=['sale'], name='deposits_sale_idx'),
                    models.Index(fields=['date'], name='deposits_date_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Installment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('checkout_session', models.UUIDField(blank=True, db_index=True, help_text='Draft checkout this record was created in', null=True)),
                ('payment_number', models.PositiveIntegerField(blank=True, help_text='Position in the generated schedule (1, 2, 3...)', null=True)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('due_date', models.DateField()),
                ('paid_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('paid', 'Paid'), ('prepaid', 'Prepaid')], default='pending', max_length=10)),
                ('note', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='installments', to='customer.customer')),
                ('sale', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='installments', to='sales.sale')),
            ],
            options={
                'db_table': 'installments',
                'ordering': ['due_date', 'id'],
                'indexes': [
                    models.Index(fields=['customer', 'sale'], name='installments_cust_sale_idx'),
                    models.Index(fields=['sale'], name='installments_sale_idx'),
                    models.Index(fields=['due_date'], name='installments_due_date_idx'),
                    models.Index(fields=['status'], name='installments_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action_type', models.CharField(choices=[('DEPOSIT_RECORDED', 'Deposit Recorded'), ('INSTALLMENT_RECORDED', 'Installment Recorded'), ('INSTALLMENT_PAID', 'Installment Paid'), ('INSTALLMENT_PREPAID', 'Installment Prepaid'), ('RECORDS_LINKED', 'Records Linked'), ('LINK_CONFLICT', 'Link Conflict'), ('LINK_FAILED', 'Link Failed')], max_length=50)),
                ('description', models.TextField()),
                ('metadata', models.JSONField(blank=True, help_text='Additional data related to the action', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to='customer.customer')),
                ('sale', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to='sales.sale')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='ledger_audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'ledger_audit_logs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['customer', '-created_at'], name='audit_customer_created_idx'),
                    models.Index(fields=['action_type'], name='audit_action_type_idx'),
                ],
            },
        ),
    ]
