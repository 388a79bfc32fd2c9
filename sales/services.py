from decimal import Decimal, InvalidOperation
import logging

from django.db import IntegrityError, transaction

from customer.models import Customer
from installments.config import CheckoutConfig
from installments.exceptions import InvalidAmountError, NotFoundError, ValidationError
from installments.linking import LinkingService
from installments.models import AuditLog
from installments.utils.money import ZERO, round2
from installments.utils.parsing import as_id, as_session

from .models import Sale

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


def _non_negative(value, field):
    try:
        amount = round2(ZERO if value in (None, "") else value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(f"{field} is not a valid amount", **{field: repr(value)})
    if amount < 0:
        raise InvalidAmountError(f"{field} cannot be negative", **{field: str(amount)})
    return amount


def compute_totals(subtotal, discount_amount=None, config=None):
    """
    Price a checkout: returns (subtotal, discount, tax, total).

    Tax is charged on the discounted subtotal at `config.tax_rate` percent.
    """
    config = config or CheckoutConfig()
    subtotal = _non_negative(subtotal, "subtotal")
    if subtotal <= 0:
        raise InvalidAmountError("Subtotal must be greater than zero", subtotal=str(subtotal))
    discount = _non_negative(discount_amount, "discount_amount")

    max_discount = round2(subtotal * config.max_discount_percent / HUNDRED)
    if discount > max_discount:
        raise ValidationError(
            f"Discount {discount} exceeds the maximum of {config.max_discount_percent}% ({max_discount})",
            discount_amount=str(discount),
            max_discount=str(max_discount),
        )

    taxable = subtotal - discount
    tax = round2(taxable * config.tax_rate / HUNDRED)
    return subtotal, discount, tax, taxable + tax


def _session_used(session):
    return Sale.objects.filter(checkout_session=session).exists()


def _session_used_error(session):
    return ValidationError(
        f"Checkout session {session} already produced a sale",
        checkout_session=str(session),
    )


def complete_sale(data, config=None, user=None):
    """
    Create a Sale and link the checkout's ledger records to it.

    The sale is committed in its own transaction before linking starts. Any
    linking failure is logged and audited and returned as `link_error`,
    but never undoes the sale; the link can be retried later.

    Returns (sale, link_result, link_error).
    """
    config = config or CheckoutConfig()
    customer_id = as_id(data.get("customer_id"), "customer_id")
    session = as_session(data.get("checkout_session"))

    if customer_id is not None and not Customer.objects.filter(pk=customer_id).exists():
        raise NotFoundError(f"Customer {customer_id} not found", customer_id=customer_id)
    if session is not None and _session_used(session):
        raise _session_used_error(session)

    payment_method = data.get("payment_method") or "cash"
    if payment_method not in dict(Sale.PAYMENT_METHOD_CHOICES):
        raise ValidationError(f"Unknown payment method '{payment_method}'", payment_method=payment_method)

    subtotal, discount, tax, total = compute_totals(data.get("subtotal"), data.get("discount_amount"), config)

    try:
        with transaction.atomic():
            sale = Sale.objects.create(
                customer_id=customer_id,
                checkout_session=session,
                subtotal=subtotal,
                discount_amount=discount,
                tax_amount=tax,
                total=total,
                payment_method=payment_method,
                created_by=user if getattr(user, "is_authenticated", False) else None,
            )
    except IntegrityError:
        # checkout_session is the only unique column: a concurrent request won.
        if session is None:
            raise
        raise _session_used_error(session)
    logger.info(f"[SalesService] Sale {sale.pk} completed: total {total} for customer {customer_id}")

    if customer_id is None and session is None:
        return sale, None, None

    try:
        result = LinkingService(user=user).link_to_sale(customer_id, sale.pk, checkout_session=session)
    except Exception as exc:
        logger.exception(f"[SalesService] Linking ledger records to sale {sale.pk} failed")
        AuditLog.record(
            "LINK_FAILED",
            f"Linking ledger records to sale {sale.pk} failed: {exc}",
            user=user,
            customer_id=customer_id,
            sale_id=sale.pk,
            error=str(exc),
            checkout_session=str(session) if session else None,
        )
        return sale, None, exc

    return sale, result, None
