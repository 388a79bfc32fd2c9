"""
Schedule generation: turns a plan template and a sale total into a concrete
down payment plus N dated installments.

generate_schedule() is pure and never touches the database, so the POS can
call it for every keystroke of a live preview. calculate_schedule() is the
service wrapper that loads the plan first.
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation
import logging

from django.utils import timezone

from .models import InstallmentPlan
from .exceptions import (
    ArithmeticInvariantError,
    InvalidAmountError,
    InvalidPlanError,
    NotFoundError,
)
from .utils.money import ZERO, floor2, round2, to_decimal

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


# ==================================================
#  Value objects
# ==================================================

@dataclass(frozen=True)
class PlanTerms:
    """Snapshot of a plan's numbers, frozen when a schedule is generated."""

    name: str
    down_payment_percent: Decimal
    number_of_payments: int
    interval_days: int
    interest_rate: Decimal = ZERO
    plan_id: int = None

    @classmethod
    def from_plan(cls, plan):
        if isinstance(plan, cls):
            return plan
        return cls(
            plan_id=plan.pk,
            name=plan.name,
            down_payment_percent=to_decimal(plan.down_payment_percent),
            number_of_payments=plan.number_of_payments,
            interval_days=plan.interval_days,
            interest_rate=to_decimal(plan.interest_rate),
        )

    def validate(self):
        if self.number_of_payments is None or self.number_of_payments < 1:
            raise InvalidPlanError(
                "Plan must have at least one payment",
                number_of_payments=self.number_of_payments,
            )
        if self.interval_days is None or self.interval_days <= 0:
            raise InvalidPlanError(
                "Payment interval must be a positive number of days",
                interval_days=self.interval_days,
            )
        for field in ("down_payment_percent", "interest_rate"):
            value = getattr(self, field)
            if not isinstance(value, Decimal) or not value.is_finite():
                raise InvalidPlanError(f"{field} must be a finite number", **{field: str(value)})
        if self.interest_rate < 0:
            raise InvalidPlanError("Interest rate cannot be negative", interest_rate=str(self.interest_rate))
        if not ZERO <= self.down_payment_percent <= HUNDRED:
            raise InvalidPlanError(
                "Down payment percent must be between 0 and 100",
                down_payment_percent=str(self.down_payment_percent),
            )


@dataclass(frozen=True)
class ScheduledPayment:
    payment_number: int
    amount: Decimal
    due_date: object

    def as_dict(self):
        return {
            "paymentNumber": self.payment_number,
            "amount": str(self.amount),
            "dueDate": self.due_date.isoformat(),
        }


@dataclass(frozen=True)
class PaymentSchedule:
    terms: PlanTerms
    sale_total: Decimal
    down_payment: Decimal
    financed_amount: Decimal
    interest_amount: Decimal
    installments: tuple
    total_amount: Decimal

    @property
    def installments_total(self):
        return sum((p.amount for p in self.installments), ZERO)

    def as_dict(self):
        return {
            "plan": {
                "id": self.terms.plan_id,
                "name": self.terms.name,
                "downPaymentPercent": str(self.terms.down_payment_percent),
                "numberOfPayments": self.terms.number_of_payments,
                "intervalDays": self.terms.interval_days,
                "interestRate": str(self.terms.interest_rate),
            },
            "saleTotal": str(self.sale_total),
            "downPayment": str(self.down_payment),
            "financedAmount": str(self.financed_amount),
            "interestAmount": str(self.interest_amount),
            "totalAmount": str(self.total_amount),
            "installments": [p.as_dict() for p in self.installments],
        }


# ==================================================
#  Generator
# ==================================================

def _money(value, field):
    try:
        return round2(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(f"{field} is not a valid amount", **{field: repr(value)})


def generate_schedule(plan, sale_total, custom_down_payment=None, today=None):
    """
    Build a PaymentSchedule for `sale_total` under `plan`.

    `plan` may be an InstallmentPlan or a PlanTerms. The down payment is
    `custom_down_payment` when given, else the plan's percentage of the
    total. Interest is rounded to cents before splitting; the first N-1
    installments are the even split rounded to cents and the last one takes
    the remainder, so the parts always add up to the total exactly.
    """
    terms = PlanTerms.from_plan(plan)
    terms.validate()

    total = _money(sale_total, "sale_total")
    if total <= 0:
        raise InvalidAmountError("Sale total must be greater than zero", sale_total=str(total))

    if custom_down_payment is None:
        down_payment = round2(total * terms.down_payment_percent / HUNDRED)
    else:
        down_payment = _money(custom_down_payment, "custom_down_payment")
        if down_payment < 0:
            raise InvalidAmountError("Down payment cannot be negative", custom_down_payment=str(down_payment))
        if down_payment > total:
            raise InvalidAmountError(
                "Down payment cannot exceed the sale total",
                custom_down_payment=str(down_payment),
                sale_total=str(total),
            )

    today = today or timezone.localdate()
    count = terms.number_of_payments

    financed = total - down_payment
    interest = round2(financed * terms.interest_rate / HUNDRED)
    to_split = financed + interest
    base = round2(to_split / count)
    if base * (count - 1) > to_split:
        # Rounding up N-1 times would overdraw the last payment.
        base = floor2(to_split / count)
    last = to_split - base * (count - 1)

    payments = tuple(
        ScheduledPayment(
            payment_number=i + 1,
            amount=base if i < count - 1 else last,
            due_date=today + timedelta(days=terms.interval_days * (i + 1)),
        )
        for i in range(count)
    )

    schedule = PaymentSchedule(
        terms=terms,
        sale_total=total,
        down_payment=down_payment,
        financed_amount=financed,
        interest_amount=interest,
        installments=payments,
        total_amount=total + interest,
    )
    _check_invariants(schedule)
    return schedule


def _check_invariants(schedule):
    if schedule.down_payment + schedule.installments_total != schedule.total_amount:
        logger.error(
            "[ScheduleGenerator] Parts do not add up: %s + %s != %s",
            schedule.down_payment, schedule.installments_total, schedule.total_amount,
        )
        raise ArithmeticInvariantError(
            "Down payment and installments do not add up to the total amount",
            down_payment=str(schedule.down_payment),
            installments_total=str(schedule.installments_total),
            total_amount=str(schedule.total_amount),
        )
    negative = [p.payment_number for p in schedule.installments if p.amount < 0]
    if negative:
        raise ArithmeticInvariantError("Schedule produced a negative installment", payment_numbers=negative)


def calculate_schedule(plan_id, sale_total, custom_down_payment=None, today=None):
    """Load an active plan and generate its schedule."""
    try:
        plan = InstallmentPlan.objects.get(pk=plan_id)
    except (InstallmentPlan.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Installment plan {plan_id} not found", plan_id=plan_id)

    if not plan.is_active:
        raise InvalidPlanError(f"Installment plan '{plan.name}' is not active", plan_id=plan.pk)

    schedule = generate_schedule(plan, sale_total, custom_down_payment=custom_down_payment, today=today)
    logger.info(
        f"[ScheduleGenerator] Plan {plan.pk} on {schedule.sale_total}: "
        f"down {schedule.down_payment}, {len(schedule.installments)} payments, interest {schedule.interest_amount}"
    )
    return schedule
