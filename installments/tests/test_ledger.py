import pytest
from datetime import date, timedelta
from decimal import Decimal

from django.utils import timezone

from installments.exceptions import AlreadyPaidError, InvalidAmountError, NotFoundError, ValidationError
from installments.ledger import PaymentLedger
from installments.models import AuditLog, Deposit, Installment
from installments.schedule import PlanTerms, generate_schedule


@pytest.mark.django_db
class TestPaymentLedgerCreate:

    @pytest.fixture
    def ledger(self, config, user):
        return PaymentLedger(config, user=user)

    def test_create_deposit_starts_unlinked(self, ledger, customer):
        deposit = ledger.create_deposit({
            "customer_id": customer.id,
            "amount": "50.00",
            "date": timezone.now(),
            "method": "card",
        })

        assert deposit.sale_id is None
        assert deposit.amount == Decimal("50.00")
        assert deposit.method == "card"
        assert AuditLog.objects.filter(action_type="DEPOSIT_RECORDED", customer=customer).count() == 1

    def test_deposit_method_defaults_from_config(self, ledger, customer):
        deposit = ledger.create_deposit({"customer_id": customer.id, "amount": 10, "date": "2026-01-15"})

        assert deposit.method == "cash"
        assert timezone.is_aware(deposit.date)

    def test_create_installment_is_always_pending(self, ledger, customer):
        installment = ledger.create("installment", {
            "customer_id": customer.id,
            "amount": Decimal("25.00"),
            "due_date": "2026-05-01",
            "status": "paid",
        })

        assert installment.status == Installment.STATUS_PENDING
        assert installment.due_date == date(2026, 5, 1)
        assert installment.paid_date is None
        assert installment.sale_id is None

    def test_sale_is_kept_when_given(self, ledger, customer, make_sale):
        sale = make_sale(customer)

        installment = ledger.create_installment({
            "customer_id": customer.id,
            "sale_id": sale.id,
            "amount": "10.00",
            "due_date": date(2026, 5, 1),
        })

        assert installment.sale_id == sale.id

    def test_unknown_kind(self, ledger, customer):
        with pytest.raises(ValidationError):
            ledger.create("refund", {"customer_id": customer.id, "amount": "1.00"})

    @pytest.mark.parametrize("amount", [0, "-1", "abc", None, "NaN", float("nan"), "Infinity"])
    def test_amount_must_be_positive(self, ledger, customer, amount):
        with pytest.raises(InvalidAmountError):
            ledger.create_deposit({"customer_id": customer.id, "amount": amount, "date": timezone.now()})

    @pytest.mark.parametrize("amount", ["NaN", float("inf")])
    def test_installment_amount_must_be_finite(self, ledger, customer, amount):
        with pytest.raises(InvalidAmountError):
            ledger.create_installment({"customer_id": customer.id, "amount": amount, "due_date": date(2026, 7, 1)})

    def test_deposit_requires_date(self, ledger, customer):
        with pytest.raises(ValidationError):
            ledger.create_deposit({"customer_id": customer.id, "amount": "5.00"})

    def test_installment_requires_due_date(self, ledger, customer):
        with pytest.raises(ValidationError):
            ledger.create_installment({"customer_id": customer.id, "amount": "5.00", "due_date": "not-a-date"})

    def test_unknown_customer(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.create_deposit({"customer_id": 424242, "amount": "5.00", "date": timezone.now()})

    def test_unknown_sale(self, ledger, customer):
        with pytest.raises(NotFoundError):
            ledger.create_installment({
                "customer_id": customer.id, "sale_id": 424242, "amount": "5.00", "due_date": "2026-05-01",
            })

    def test_sale_of_another_customer_is_rejected(self, ledger, customer, other_customer, make_sale):
        sale = make_sale(other_customer)

        with pytest.raises(ValidationError):
            ledger.create_deposit({
                "customer_id": customer.id, "sale_id": sale.id, "amount": "5.00", "date": timezone.now(),
            })
        assert not Deposit.objects.exists()

    def test_bad_checkout_session(self, ledger, customer):
        with pytest.raises(ValidationError):
            ledger.create_deposit({
                "customer_id": customer.id, "amount": "5.00", "date": timezone.now(), "checkout_session": "nope",
            })


@pytest.mark.django_db
class TestRecordSchedule:

    def test_persists_down_payment_and_installments(self, config, customer, checkout_session):
        schedule = generate_schedule(
            PlanTerms("Test", Decimal("20"), 3, 30, Decimal("0")),
            Decimal("100.00"),
            today=date(2026, 3, 1),
        )

        deposit, installments = PaymentLedger(config).record_schedule(
            schedule, customer_id=customer.id, checkout_session=checkout_session,
        )

        assert deposit.amount == Decimal("20.00")
        assert deposit.note == "Down payment"
        assert deposit.checkout_session == checkout_session
        assert [i.amount for i in installments] == [Decimal("26.67"), Decimal("26.67"), Decimal("26.66")]
        assert [i.note for i in installments] == ["Payment 1 of 3", "Payment 2 of 3", "Payment 3 of 3"]
        assert [i.payment_number for i in installments] == [1, 2, 3]
        assert all(i.sale_id is None for i in installments)

    def test_zero_down_payment_creates_no_deposit(self, config, customer):
        schedule = generate_schedule(PlanTerms("Zero", Decimal("0"), 2, 15), Decimal("40.00"))

        deposit, installments = PaymentLedger(config).record_schedule(schedule, customer_id=customer.id)

        assert deposit is None
        assert len(installments) == 2

    def test_plan_edits_do_not_reach_recorded_schedule(self, config, customer, plan):
        schedule = generate_schedule(plan, Decimal("100.00"), today=date(2026, 3, 1))
        deposit, installments = PaymentLedger(config).record_schedule(schedule, customer_id=customer.id)

        plan.down_payment_percent = Decimal("60")
        plan.number_of_payments = 2
        plan.interval_days = 14
        plan.interest_rate = Decimal("25")
        plan.save()

        deposit.refresh_from_db()
        assert deposit.amount == Decimal("30.00")
        stored = list(Installment.objects.filter(customer=customer).order_by("payment_number"))
        assert [i.amount for i in stored] == [Decimal("24.50"), Decimal("24.50"), Decimal("24.50")]
        assert [i.due_date for i in stored] == [date(2026, 3, 31), date(2026, 4, 30), date(2026, 5, 30)]
        assert not Deposit.objects.exists()


@pytest.mark.django_db
class TestPaymentLedgerQueries:

    def test_get_by_customer_orders_records(self, config, customer, other_customer):
        ledger = PaymentLedger(config)
        now = timezone.now()
        old = ledger.create_deposit({"customer_id": customer.id, "amount": "5", "date": now - timedelta(days=2)})
        new = ledger.create_deposit({"customer_id": customer.id, "amount": "6", "date": now})
        late = ledger.create_installment({"customer_id": customer.id, "amount": "7", "due_date": date(2026, 9, 1)})
        soon = ledger.create_installment({"customer_id": customer.id, "amount": "8", "due_date": date(2026, 6, 1)})
        ledger.create_deposit({"customer_id": other_customer.id, "amount": "9", "date": now})

        records = ledger.get_by_customer(customer.id)

        assert [d.id for d in records.deposits] == [new.id, old.id]
        assert [i.id for i in records.installments] == [soon.id, late.id]

    def test_get_by_sale_and_session(self, config, customer, make_sale, checkout_session):
        ledger = PaymentLedger(config)
        sale = make_sale(customer)
        linked = ledger.create_installment({
            "customer_id": customer.id, "sale_id": sale.id, "amount": "10", "due_date": "2026-06-01",
        })
        drafted = ledger.create_installment({
            "customer_id": customer.id, "checkout_session": str(checkout_session),
            "amount": "10", "due_date": "2026-06-01",
        })

        assert [i.id for i in ledger.get_by_sale(sale.id).installments] == [linked.id]
        assert [i.id for i in ledger.get_by_session(checkout_session).installments] == [drafted.id]

    def test_get_installment_missing(self, config):
        with pytest.raises(NotFoundError):
            PaymentLedger(config).get_installment(31337)


@pytest.mark.django_db
class TestStatusTransitions:

    @pytest.fixture
    def installment(self, config, customer):
        return PaymentLedger(config).create_installment({
            "customer_id": customer.id, "amount": "30.00", "due_date": "2026-04-01",
        })

    def test_mark_as_paid(self, config, user, installment):
        paid = PaymentLedger(config, user=user).mark_as_paid(installment.id, date(2026, 3, 28))

        assert paid.status == Installment.STATUS_PAID
        assert paid.paid_date == date(2026, 3, 28)
        log = AuditLog.objects.get(action_type="INSTALLMENT_PAID")
        assert log.user == user
        assert log.metadata["installment_id"] == installment.id

    def test_paid_date_defaults_to_today(self, config, installment):
        paid = PaymentLedger(config).mark_as_paid(installment.id)

        assert paid.paid_date == timezone.localdate()

    def test_mark_as_paid_twice_keeps_first_paid_date(self, config, installment):
        ledger = PaymentLedger(config)
        ledger.mark_as_paid(installment.id, "2026-03-28")

        with pytest.raises(AlreadyPaidError):
            ledger.mark_as_paid(installment.id, "2026-04-15")

        installment.refresh_from_db()
        assert installment.paid_date == date(2026, 3, 28)
        assert AuditLog.objects.filter(action_type="INSTALLMENT_PAID").count() == 1

    def test_mark_as_prepaid(self, config, installment):
        prepaid = PaymentLedger(config).mark_as_prepaid(installment.id, "2026-03-01")

        assert prepaid.status == Installment.STATUS_PREPAID
        assert AuditLog.objects.filter(action_type="INSTALLMENT_PREPAID").exists()

    def test_prepaid_cannot_be_paid_again(self, config, installment):
        ledger = PaymentLedger(config)
        ledger.mark_as_prepaid(installment.id)

        with pytest.raises(AlreadyPaidError) as exc_info:
            ledger.mark_as_paid(installment.id)
        assert exc_info.value.http_status == 409

    def test_mark_missing_installment(self, config):
        with pytest.raises(NotFoundError):
            PaymentLedger(config).mark_as_paid(99999)

    def test_marking_does_not_touch_sale(self, config, customer, make_sale):
        sale = make_sale(customer)
        ledger = PaymentLedger(config)
        installment = ledger.create_installment({
            "customer_id": customer.id, "sale_id": sale.id, "amount": "5", "due_date": "2026-04-01",
        })

        ledger.mark_as_paid(installment.id)

        sale.refresh_from_db()
        assert sale.total == Decimal("100.00")
        installment.refresh_from_db()
        assert installment.sale_id == sale.id
