from decimal import Decimal

from django.db import models
from django.contrib.auth import get_user_model

from customer.models import Customer

User = get_user_model()


# ========================================
# SALE MODEL
# ========================================

class Sale(models.Model):
    """
    A completed checkout.

    Deposits and installments recorded during the checkout point back here
    once the sale is linked; the sale itself never points at them.
    """

    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('card', 'Card'),
        ('bank_transfer', 'Bank Transfer'),
        ('mobile_wallet', 'Mobile Wallet'),
        ('installments', 'Installments'),
        ('mixed', 'Mixed'),
    ]

    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='sales'
    )
    checkout_session = models.UUIDField(
        null=True,
        blank=True,
        unique=True,
        help_text="POS checkout session that produced this sale"
    )

    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=12, decimal_places=2)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='cash')

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='sales_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'sales'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['customer', '-created_at'], name='sales_customer_created_idx'),
        ]

    def __str__(self):
        return f"Sale #{self.pk} - {self.total}"
