from decimal import Decimal

from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator
from django.contrib.auth import get_user_model

from customer.models import Customer

User = get_user_model()


# ========================================
# INSTALLMENT PLAN MODEL
# ========================================

class InstallmentPlan(models.Model):
    """
    Reusable template describing how a sale total splits into a down
    payment and N future payments.

    Business Rules:
    - Down payment is a percentage of the sale total (0-100)
    - At least one installment, spaced interval_days apart
    - Interest is a flat percentage of the financed amount
    - Schedules copy the plan's numbers, so editing a plan never touches
      existing ledger records
    """

    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(null=True, blank=True)

    down_payment_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))],
        help_text="Down payment as % of the sale total"
    )
    number_of_payments = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Number of installments after the down payment"
    )
    interval_days = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Days between installments (e.g. 7, 15, 30)"
    )
    interest_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0'))],
        help_text="Flat interest % applied to the financed amount"
    )
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'installment_plans'
        ordering = ['-is_active', 'number_of_payments', 'name']

    def __str__(self):
        return f"{self.name} ({self.number_of_payments} x {self.interval_days}d)"


# ========================================
# DEPOSIT MODEL
# ========================================

class Deposit(models.Model):
    """
    Immediate partial payment recorded against a customer.

    The sale is null while the checkout is still open; the LinkingService
    sets it exactly once when the sale completes.
    """

    METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('card', 'Card'),
        ('bank_transfer', 'Bank Transfer'),
        ('mobile_wallet', 'Mobile Wallet'),
        ('other', 'Other'),
    ]

    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='deposits'
    )
    sale = models.ForeignKey(
        'sales.Sale',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='deposits'
    )
    checkout_session = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Draft checkout this record was created in"
    )

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    date = models.DateTimeField()
    method = models.CharField(max_length=20, choices=METHOD_CHOICES, default='cash')
    note = models.TextField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'deposits'
        ordering = ['-date']
        indexes = [
            models.Index(fields=['customer', 'sale'], name='deposits_customer_sale_idx'),
            models.Index(fields=['sale'], name='deposits_sale_idx'),
            models.Index(fields=['date'], name='deposits_date_idx'),
        ]

    def __str__(self):
        return f"Deposit {self.amount} for Customer {self.customer_id}"


# ========================================
# INSTALLMENT MODEL
# ========================================

class Installment(models.Model):
    """
    Scheduled future payment obligation.

    Stored status is one of pending/paid/prepaid and only ever moves out of
    pending. "Overdue" is derived at read time by the StatusEngine.
    """

    STATUS_PENDING = 'pending'
    STATUS_PAID = 'paid'
    STATUS_PREPAID = 'prepaid'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_PAID, 'Paid'),
        (STATUS_PREPAID, 'Prepaid'),
    ]
    SETTLED_STATUSES = (STATUS_PAID, STATUS_PREPAID)

    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='installments'
    )
    sale = models.ForeignKey(
        'sales.Sale',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='installments'
    )
    checkout_session = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Draft checkout this record was created in"
    )

    payment_number = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Position in the generated schedule (1, 2, 3...)"
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    due_date = models.DateField()
    paid_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    note = models.TextField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'installments'
        ordering = ['due_date', 'id']
        indexes = [
            models.Index(fields=['customer', 'sale'], name='installments_cust_sale_idx'),
            models.Index(fields=['sale'], name='installments_sale_idx'),
            models.Index(fields=['due_date'], name='installments_due_date_idx'),
            models.Index(fields=['status'], name='installments_status_idx'),
        ]

    def __str__(self):
        return f"Installment {self.amount} due {self.due_date} ({self.status})"

    @property
    def is_settled(self):
        return self.status in self.SETTLED_STATUSES


# ========================================
# AUDIT LOG MODEL
# ========================================

class AuditLog(models.Model):
    """
    Tracks ledger events for compliance and manual reconciliation.
    LINK_CONFLICT rows list the records a sale could not claim.
    """

    ACTION_TYPE_CHOICES = [
        ('DEPOSIT_RECORDED', 'Deposit Recorded'),
        ('INSTALLMENT_RECORDED', 'Installment Recorded'),
        ('INSTALLMENT_PAID', 'Installment Paid'),
        ('INSTALLMENT_PREPAID', 'Installment Prepaid'),
        ('RECORDS_LINKED', 'Records Linked'),
        ('LINK_CONFLICT', 'Link Conflict'),
        ('LINK_FAILED', 'Link Failed'),
    ]

    action_type = models.CharField(max_length=50, choices=ACTION_TYPE_CHOICES)
    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='ledger_audit_logs'
    )
    customer = models.ForeignKey(
        Customer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )
    sale = models.ForeignKey(
        'sales.Sale',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )

    description = models.TextField()
    metadata = models.JSONField(
        null=True,
        blank=True,
        help_text="Additional data related to the action"
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'ledger_audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['customer', '-created_at'], name='audit_customer_created_idx'),
            models.Index(fields=['action_type'], name='audit_action_type_idx'),
        ]

    def __str__(self):
        return f"{self.action_type} at {self.created_at}"

    @classmethod
    def record(cls, action_type, description, user=None, customer_id=None, sale_id=None, **metadata):
        return cls.objects.create(
            action_type=action_type,
            description=description,
            user=user if getattr(user, 'is_authenticated', False) else None,
            customer_id=customer_id,
            sale_id=sale_id,
            metadata=metadata or None,
        )
