"""
Customer records for the retail checkout.

Only what the installment ledger needs: a stable id to key deposits and
installments on, plus contact details shown on receipts and reminders.
"""

from django.db import models
from django.contrib.auth import get_user_model

User = get_user_model()


# ========================================
# CUSTOMER MODEL
# ========================================

class Customer(models.Model):
    """
    Core customer model storing basic customer information.

    Business Rules:
    - Document number, when given, must be unique
    - A customer can own many deposits, installments and sales
    """

    STATUS_CHOICES = [
        ('ACTIVE', 'Active'),
        ('INACTIVE', 'Inactive'),
        ('BLOCKED', 'Blocked'),
    ]

    document_number = models.CharField(
        max_length=50,
        unique=True,
        null=True,
        blank=True,
        help_text="National ID or passport number"
    )
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100, blank=True)
    email = models.EmailField(blank=True)
    phone_number = models.CharField(max_length=20, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='ACTIVE')

    # Cashier who created this customer
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='customers_created'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'customers'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['document_number'], name='customers_document_idx'),
            models.Index(fields=['phone_number'], name='customers_phone_idx'),
            models.Index(fields=['created_at'], name='customers_created_idx'),
        ]

    def __str__(self):
        return f"{self.full_name} ({self.document_number or self.pk})"

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()
