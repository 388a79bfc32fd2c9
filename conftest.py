import uuid
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from customer.models import Customer
from installments.config import CheckoutConfig
from installments.models import InstallmentPlan
from sales.models import Sale

User = get_user_model()


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def user(db):
    return User.objects.create_user(username="cashier", password="pass123")


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(username="manager", password="pass123", is_staff=True)


@pytest.fixture
def api_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture
def config():
    return CheckoutConfig(
        tax_rate=Decimal("7.00"),
        max_discount_percent=Decimal("30.00"),
        late_fee_daily_percent=Decimal("0.10"),
        reminder_days_ahead=7,
        overdue_report_cache_timeout=60,
    )


@pytest.fixture
def customer(user):
    return Customer.objects.create(first_name="Ana", last_name="Lopez", document_number="8-123-456", created_by=user)


@pytest.fixture
def other_customer(user):
    return Customer.objects.create(first_name="Luis", last_name="Perez", document_number="8-999-000", created_by=user)


@pytest.fixture
def plan(db):
    return InstallmentPlan.objects.create(
        name="3-Month Plan",
        down_payment_percent=Decimal("30"),
        number_of_payments=3,
        interval_days=30,
        interest_rate=Decimal("5"),
    )


@pytest.fixture
def checkout_session():
    return uuid.uuid4()


@pytest.fixture
def make_sale(db):
    def _make_sale(customer=None, total=Decimal("100.00"), **extra):
        return Sale.objects.create(
            customer=customer,
            subtotal=total,
            total=total,
            **extra,
        )
    return _make_sale
