from collections import namedtuple
import logging

from django.db import transaction
from django.utils import timezone

from customer.models import Customer
from sales.models import Sale

from .config import CheckoutConfig
from .exceptions import AlreadyPaidError, NotFoundError, ValidationError
from .models import AuditLog, Deposit, Installment
from .utils.parsing import as_amount, as_date, as_datetime, as_id, as_session

logger = logging.getLogger(__name__)


LedgerRecords = namedtuple("LedgerRecords", ["deposits", "installments"])


# ==================================================
#  Payment ledger
# ==================================================

class PaymentLedger:
    """
    Creates, queries and settles individual Deposit / Installment records.

    Records are independent of the sale: `sale` stays null unless the caller
    supplies one, and the ledger never touches Sale rows. Linking a record
    to a sale afterwards is the LinkingService's job.
    """

    KINDS = ("deposit", "installment")

    def __init__(self, config=None, user=None):
        self.config = config or CheckoutConfig()
        self.user = user

    # -------- creation --------

    def create(self, kind, data):
        if kind not in self.KINDS:
            raise ValidationError(f"Unknown record kind '{kind}'", kind=kind)
        if kind == "deposit":
            return self.create_deposit(data)
        return self.create_installment(data)

    def _resolve_owner(self, data):
        customer_id = as_id(data.get("customer_id"), "customer_id")
        sale_id = as_id(data.get("sale_id"), "sale_id")

        if customer_id is not None and not Customer.objects.filter(pk=customer_id).exists():
            raise NotFoundError(f"Customer {customer_id} not found", customer_id=customer_id)

        if sale_id is not None:
            sale = Sale.objects.filter(pk=sale_id).only("id", "customer_id").first()
            if sale is None:
                raise NotFoundError(f"Sale {sale_id} not found", sale_id=sale_id)
            if customer_id is not None and sale.customer_id not in (None, customer_id):
                raise ValidationError(
                    f"Sale {sale_id} does not belong to customer {customer_id}",
                    sale_id=sale_id,
                    customer_id=customer_id,
                )
        return customer_id, sale_id

    def create_deposit(self, data):
        amount = as_amount(data.get("amount"))
        date = as_datetime(data.get("date"), "date")
        method = data.get("method") or self.config.default_deposit_method
        if method not in dict(Deposit.METHOD_CHOICES):
            raise ValidationError(f"Unknown payment method '{method}'", method=method)
        customer_id, sale_id = self._resolve_owner(data)

        with transaction.atomic():
            deposit = Deposit.objects.create(
                customer_id=customer_id,
                sale_id=sale_id,
                checkout_session=as_session(data.get("checkout_session")),
                amount=amount,
                date=date,
                method=method,
                note=data.get("note") or None,
            )
            AuditLog.record(
                "DEPOSIT_RECORDED",
                f"Deposit of {amount} recorded",
                user=self.user,
                customer_id=customer_id,
                sale_id=sale_id,
                deposit_id=deposit.pk,
                amount=str(amount),
            )

        logger.info(f"[PaymentLedger] Deposit {deposit.pk} ({amount}) recorded for customer {customer_id}")
        return deposit

    def create_installment(self, data):
        amount = as_amount(data.get("amount"))
        due_date = as_date(data.get("due_date"), "due_date")
        customer_id, sale_id = self._resolve_owner(data)

        with transaction.atomic():
            installment = Installment.objects.create(
                customer_id=customer_id,
                sale_id=sale_id,
                checkout_session=as_session(data.get("checkout_session")),
                payment_number=data.get("payment_number"),
                amount=amount,
                due_date=due_date,
                status=Installment.STATUS_PENDING,
                note=data.get("note") or None,
            )
            AuditLog.record(
                "INSTALLMENT_RECORDED",
                f"Installment of {amount} due {due_date} recorded",
                user=self.user,
                customer_id=customer_id,
                sale_id=sale_id,
                installment_id=installment.pk,
                amount=str(amount),
            )

        logger.info(
            f"[PaymentLedger] Installment {installment.pk} ({amount} due {due_date}) "
            f"recorded for customer {customer_id}"
        )
        return installment

    def record_schedule(self, schedule, customer_id=None, sale_id=None, checkout_session=None, method=None):
        """
        Persist a generated PaymentSchedule: one Deposit for the down payment
        (skipped when zero) and one pending Installment per scheduled payment.
        """
        owner = {
            "customer_id": customer_id,
            "sale_id": sale_id,
            "checkout_session": checkout_session,
        }
        count = len(schedule.installments)

        with transaction.atomic():
            deposit = None
            if schedule.down_payment > 0:
                deposit = self.create_deposit({
                    **owner,
                    "amount": schedule.down_payment,
                    "date": timezone.now(),
                    "method": method,
                    "note": "Down payment",
                })

            installments = []
            for payment in schedule.installments:
                if payment.amount <= 0:
                    continue
                installments.append(self.create_installment({
                    **owner,
                    "amount": payment.amount,
                    "due_date": payment.due_date,
                    "payment_number": payment.payment_number,
                    "note": f"Payment {payment.payment_number} of {count}",
                }))

        return deposit, installments

    # -------- queries --------

    def get_by_customer(self, customer_id):
        return LedgerRecords(
            deposits=list(Deposit.objects.filter(customer_id=customer_id).order_by("-date", "-id")),
            installments=list(Installment.objects.filter(customer_id=customer_id).order_by("due_date", "id")),
        )

    def get_by_sale(self, sale_id):
        return LedgerRecords(
            deposits=list(Deposit.objects.filter(sale_id=sale_id).order_by("-date", "-id")),
            installments=list(Installment.objects.filter(sale_id=sale_id).order_by("due_date", "id")),
        )

    def get_by_session(self, checkout_session):
        session = as_session(checkout_session)
        return LedgerRecords(
            deposits=list(Deposit.objects.filter(checkout_session=session).order_by("-date", "-id")),
            installments=list(Installment.objects.filter(checkout_session=session).order_by("due_date", "id")),
        )

    def get_installment(self, installment_id):
        try:
            return Installment.objects.get(pk=installment_id)
        except (Installment.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Installment {installment_id} not found", installment_id=installment_id)

    # -------- status transitions --------

    def mark_as_paid(self, installment_id, paid_date=None):
        return self._settle(installment_id, Installment.STATUS_PAID, paid_date)

    def mark_as_prepaid(self, installment_id, paid_date=None):
        return self._settle(installment_id, Installment.STATUS_PREPAID, paid_date)

    def _settle(self, installment_id, new_status, paid_date):
        installment = self.get_installment(installment_id)
        paid_on = timezone.localdate() if paid_date in (None, "") else as_date(paid_date, "paid_date")

        with transaction.atomic():
            updated = Installment.objects.filter(
                pk=installment.pk,
                status=Installment.STATUS_PENDING,
            ).update(status=new_status, paid_date=paid_on, updated_at=timezone.now())

            if not updated:
                installment.refresh_from_db()
                logger.warning(
                    f"[PaymentLedger] Installment {installment.pk} is already {installment.status}; "
                    f"refusing to mark it {new_status}"
                )
                raise AlreadyPaidError(
                    f"Installment {installment.pk} is already {installment.status}",
                    installment_id=installment.pk,
                    status=installment.status,
                )

            AuditLog.record(
                "INSTALLMENT_PREPAID" if new_status == Installment.STATUS_PREPAID else "INSTALLMENT_PAID",
                f"Installment {installment.pk} marked {new_status} on {paid_on}",
                user=self.user,
                customer_id=installment.customer_id,
                sale_id=installment.sale_id,
                installment_id=installment.pk,
                paid_date=paid_on.isoformat(),
            )

        installment.refresh_from_db()
        logger.info(f"[PaymentLedger] Installment {installment.pk} marked {new_status} on {paid_on}")
        return installment
