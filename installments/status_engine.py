"""
Read-side status derivation and reporting.

"Overdue" is never stored: an installment is overdue when it is still
pending and its due date is before today. Everything here only reads the
ledger; the periodic overdue pass caches a snapshot and writes no model
fields.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
import logging

from django.core.cache import cache
from django.db.models import Count, Sum
from django.utils import timezone

from .config import CheckoutConfig
from .models import Installment
from .utils.money import ZERO, round2, to_decimal

logger = logging.getLogger(__name__)

STATUS_OVERDUE = "overdue"
OVERDUE_REPORT_CACHE_KEY = "installments:overdue_report"


def today(now=None):
    if now is None:
        return timezone.localdate()
    if isinstance(now, datetime):
        return timezone.localdate(now) if timezone.is_aware(now) else now.date()
    return now


# ==================================================
#  Effective status
# ==================================================

def effective_status(installment, now=None):
    if installment.status == Installment.STATUS_PENDING and installment.due_date < today(now):
        return STATUS_OVERDUE
    return installment.status


def days_late(installment, now=None):
    if effective_status(installment, now) != STATUS_OVERDUE:
        return 0
    return (today(now) - installment.due_date).days


def late_fee(installment, now=None, daily_percent=None):
    """
    Late fee accrued on an overdue installment: a flat daily percentage of
    the installment amount for every day past the due date.
    """
    if daily_percent is None:
        daily_percent = CheckoutConfig().late_fee_daily_percent
    days = days_late(installment, now)
    if not days:
        return ZERO
    return round2(to_decimal(installment.amount) * to_decimal(daily_percent) / Decimal("100") * days)


# ==================================================
#  Aggregation
# ==================================================

@dataclass(frozen=True)
class LedgerSummary:
    total_deposits: Decimal
    total_installments: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    pending_count: int
    overdue_count: int

    def as_dict(self):
        return {
            "totalDeposits": str(self.total_deposits),
            "totalInstallments": str(self.total_installments),
            "paidAmount": str(self.paid_amount),
            "remainingAmount": str(self.remaining_amount),
            "pendingCount": self.pending_count,
            "overdueCount": self.overdue_count,
        }


def aggregate(records, now=None):
    """
    Summarise a LedgerRecords pair. Deposits always count as paid; settled
    installments add to the paid amount, pending and overdue ones to the
    remaining amount.
    """
    total_deposits = sum((to_decimal(d.amount) for d in records.deposits), ZERO)
    total_installments = ZERO
    paid = total_deposits
    remaining = ZERO
    pending_count = 0
    overdue_count = 0

    for installment in records.installments:
        amount = to_decimal(installment.amount)
        total_installments += amount
        status = effective_status(installment, now)
        if status in Installment.SETTLED_STATUSES:
            paid += amount
            continue
        remaining += amount
        if status == STATUS_OVERDUE:
            overdue_count += 1
        else:
            pending_count += 1

    return LedgerSummary(
        total_deposits=total_deposits,
        total_installments=total_installments,
        paid_amount=paid,
        remaining_amount=remaining,
        pending_count=pending_count,
        overdue_count=overdue_count,
    )


# ==================================================
#  Queries
# ==================================================

def overdue_installments(now=None):
    return Installment.objects.filter(
        status=Installment.STATUS_PENDING,
        due_date__lt=today(now),
    ).select_related("customer").order_by("due_date", "id")


def upcoming_installments(days_ahead=None, now=None):
    """Pending installments due between today and `days_ahead` days from now."""
    if days_ahead is None:
        days_ahead = CheckoutConfig().reminder_days_ahead
    start = today(now)
    return Installment.objects.filter(
        status=Installment.STATUS_PENDING,
        due_date__gte=start,
        due_date__lte=start + timedelta(days=int(days_ahead)),
    ).select_related("customer").order_by("due_date", "id")


# ==================================================
#  Overdue report (periodic pass)
# ==================================================

def build_overdue_report(now=None):
    queryset = overdue_installments(now)
    totals = queryset.aggregate(
        count=Count("id"),
        amount=Sum("amount"),
        customers=Count("customer", distinct=True),
    )
    return {
        "generatedAt": timezone.now().isoformat(),
        "asOf": today(now).isoformat(),
        "overdueCount": totals["count"] or 0,
        "overdueAmount": str(round2(totals["amount"] or ZERO)),
        "customersWithOverdue": totals["customers"] or 0,
        "installmentIds": list(queryset.values_list("id", flat=True)),
    }


def refresh_overdue_report(now=None, timeout=None):
    if timeout is None:
        timeout = CheckoutConfig().overdue_report_cache_timeout
    report = build_overdue_report(now)
    cache.set(OVERDUE_REPORT_CACHE_KEY, report, timeout)
    logger.info(
        f"[StatusEngine] Overdue report refreshed: {report['overdueCount']} installments, "
        f"{report['overdueAmount']} outstanding"
    )
    return report


def get_overdue_report(timeout=None):
    report = cache.get(OVERDUE_REPORT_CACHE_KEY)
    if report is None:
        report = refresh_overdue_report(timeout=timeout)
    return report
