import uuid
import pytest
from datetime import date
from unittest.mock import patch

from django.utils import timezone

from installments.exceptions import LinkingConflictError, NotFoundError, ValidationError
from installments.ledger import PaymentLedger
from installments.linking import LinkingService, LinkResult
from installments.models import AuditLog, Deposit, Installment


@pytest.fixture
def ledger(config):
    return PaymentLedger(config)


@pytest.fixture
def unlinked_records(ledger, customer):
    """Two deposits and two installments recorded before the sale exists."""
    deposits = [
        ledger.create_deposit({"customer_id": customer.id, "amount": amount, "date": timezone.now()})
        for amount in ("20.00", "5.00")
    ]
    installments = [
        ledger.create_installment({"customer_id": customer.id, "amount": "40.00", "due_date": due})
        for due in (date(2026, 4, 1), date(2026, 5, 1))
    ]
    return deposits, installments


@pytest.mark.django_db
class TestLinkToSale:

    def test_links_all_unlinked_records(self, customer, make_sale, unlinked_records, user):
        deposits, installments = unlinked_records
        sale = make_sale(customer)

        result = LinkingService(user=user).link_to_sale(customer.id, sale.id)

        assert result.linked_count == 4
        assert sorted(result.linked_deposit_ids) == sorted(d.id for d in deposits)
        assert sorted(result.linked_installment_ids) == sorted(i.id for i in installments)
        assert not result.has_conflicts
        assert Deposit.objects.filter(sale=sale).count() == 2
        assert Installment.objects.filter(sale=sale).count() == 2
        assert AuditLog.objects.filter(action_type="RECORDS_LINKED", sale=sale).count() == 1

    def test_second_call_links_nothing(self, customer, make_sale, unlinked_records):
        sale = make_sale(customer)
        service = LinkingService()
        service.link_to_sale(customer.id, sale.id)

        again = service.link_to_sale(customer.id, sale.id)

        assert again.linked_count == 0
        assert not again.has_conflicts
        assert again.as_dict()["skippedIds"] == {"deposits": [], "installments": []}

    def test_other_customers_records_are_untouched(self, ledger, customer, other_customer, make_sale, unlinked_records):
        foreign = ledger.create_deposit({"customer_id": other_customer.id, "amount": "9.00", "date": timezone.now()})
        sale = make_sale(customer)

        LinkingService().link_to_sale(customer.id, sale.id)

        foreign.refresh_from_db()
        assert foreign.sale_id is None

    def test_linked_record_is_never_reassigned(self, customer, make_sale, unlinked_records):
        first = make_sale(customer)
        second = make_sale(customer)
        LinkingService().link_to_sale(customer.id, first.id)

        result = LinkingService().link_to_sale(customer.id, second.id)

        assert result.linked_count == 0
        assert set(Deposit.objects.values_list("sale_id", flat=True)) == {first.id}
        assert set(Installment.objects.values_list("sale_id", flat=True)) == {first.id}

    def test_session_scopes_the_claim(self, ledger, customer, make_sale):
        this_checkout, earlier_checkout = uuid.uuid4(), uuid.uuid4()
        mine = ledger.create_installment({
            "customer_id": customer.id, "checkout_session": this_checkout, "amount": "10", "due_date": "2026-04-01",
        })
        stale = ledger.create_installment({
            "customer_id": customer.id, "checkout_session": earlier_checkout, "amount": "10", "due_date": "2026-04-01",
        })
        sale = make_sale(customer, checkout_session=this_checkout)

        result = LinkingService().link_to_sale(customer.id, sale.id, checkout_session=this_checkout)

        assert result.linked_installment_ids == [mine.id]
        stale.refresh_from_db()
        assert stale.sale_id is None

    def test_session_claim_includes_records_taken_before_customer_was_set(
        self, ledger, customer, other_customer, make_sale, checkout_session,
    ):
        anonymous = ledger.create_deposit({"checkout_session": checkout_session, "amount": "15", "date": timezone.now()})
        mine = ledger.create_installment({
            "customer_id": customer.id, "checkout_session": checkout_session, "amount": "10", "due_date": "2026-04-01",
        })
        someone_else = ledger.create_installment({
            "customer_id": other_customer.id, "checkout_session": checkout_session, "amount": "10",
            "due_date": "2026-04-01",
        })
        sale = make_sale(customer, checkout_session=checkout_session)

        result = LinkingService().link_to_sale(customer.id, sale.id, checkout_session=checkout_session)

        assert result.linked_deposit_ids == [anonymous.id]
        assert result.linked_installment_ids == [mine.id]
        anonymous.refresh_from_db()
        assert anonymous.sale_id == sale.id
        assert anonymous.customer_id == customer.id
        someone_else.refresh_from_db()
        assert someone_else.sale_id is None

    def test_customer_only_link_ignores_customerless_records(self, ledger, customer, make_sale):
        orphan = ledger.create_deposit({"amount": "15", "date": timezone.now()})
        sale = make_sale(customer)

        result = LinkingService().link_to_sale(customer.id, sale.id)

        assert result.linked_count == 0
        orphan.refresh_from_db()
        assert orphan.sale_id is None

    def test_walk_in_checkout_links_by_session_only(self, ledger, make_sale, checkout_session):
        deposit = ledger.create_deposit({"checkout_session": checkout_session, "amount": "15", "date": timezone.now()})
        sale = make_sale(None)

        result = LinkingService().link_to_sale(None, sale.id, checkout_session=str(checkout_session))

        assert result.linked_deposit_ids == [deposit.id]

    def test_requires_customer_or_session(self, make_sale):
        sale = make_sale(None)

        with pytest.raises(ValidationError):
            LinkingService().link_to_sale(None, sale.id)

    def test_unknown_sale(self, customer):
        with pytest.raises(NotFoundError):
            LinkingService().link_to_sale(customer.id, 987654)

    def test_sale_of_another_customer(self, customer, other_customer, make_sale, unlinked_records):
        sale = make_sale(other_customer)

        with pytest.raises(ValidationError):
            LinkingService().link_to_sale(customer.id, sale.id)
        assert not Deposit.objects.filter(sale__isnull=False).exists()


@pytest.mark.django_db
class TestConcurrentLinking:

    def test_racing_sales_claim_each_record_exactly_once(self, customer, make_sale, unlinked_records):
        """
        Sale B reads its candidate deposits, then sale A links everything
        before B gets to claim them. B must skip those rows, not steal them.
        """
        deposits, installments = unlinked_records
        sale_a = make_sale(customer)
        sale_b = make_sale(customer)
        original = LinkingService._unlinked_ids
        state = {"interleaved": False}

        def read_then_lose_race(service, model, customer_id, session):
            ids = original(service, model, customer_id, session)
            if not state["interleaved"]:
                state["interleaved"] = True
                LinkingService().link_to_sale(customer.id, sale_a.id)
            return ids

        with patch.object(LinkingService, "_unlinked_ids", autospec=True, side_effect=read_then_lose_race):
            result_b = LinkingService().link_to_sale(customer.id, sale_b.id)

        assert result_b.linked_count == 0
        assert sorted(result_b.skipped_deposit_ids) == sorted(d.id for d in deposits)
        assert result_b.has_conflicts
        for model in (Deposit, Installment):
            assert set(model.objects.values_list("sale_id", flat=True)) == {sale_a.id}

        conflict = AuditLog.objects.get(action_type="LINK_CONFLICT", sale=sale_b)
        assert sorted(conflict.metadata["deposits"]) == sorted(d.id for d in deposits)

    def test_stale_snapshot_is_split_between_sales(self, customer, make_sale, unlinked_records):
        deposits, installments = unlinked_records
        sale_a = make_sale(customer)
        sale_b = make_sale(customer)
        snapshot = {
            Deposit: [d.id for d in deposits],
            Installment: [i.id for i in installments],
        }
        # Sale A already claimed the first installment.
        Installment.objects.filter(pk=installments[0].id).update(sale=sale_a)

        with patch.object(LinkingService, "_unlinked_ids", side_effect=lambda model, c, s: snapshot[model]):
            result = LinkingService().link_to_sale(customer.id, sale_b.id)

        assert result.skipped_installment_ids == [installments[0].id]
        assert result.linked_installment_ids == [installments[1].id]
        assert sorted(result.linked_deposit_ids) == sorted(d.id for d in deposits)
        assert Installment.objects.get(pk=installments[0].id).sale_id == sale_a.id
        assert not Installment.objects.filter(sale__isnull=True).exists()


class TestLinkResult:

    def test_as_dict(self):
        result = LinkResult(sale_id=7, linked_deposit_ids=[1], linked_installment_ids=[2, 3], skipped_installment_ids=[4])

        assert result.as_dict() == {
            "saleId": 7,
            "linkedCount": 3,
            "skippedIds": {"deposits": [], "installments": [4]},
            "linked": {"deposits": [1], "installments": [2, 3]},
        }

    def test_raise_for_conflicts(self):
        result = LinkResult(sale_id=7, skipped_deposit_ids=[9])

        with pytest.raises(LinkingConflictError) as exc_info:
            result.raise_for_conflicts()
        assert exc_info.value.result is result
        assert exc_info.value.http_status == 409

    def test_raise_for_conflicts_passes_clean_result(self):
        result = LinkResult(sale_id=7, linked_deposit_ids=[1])

        assert result.raise_for_conflicts() is result
        assert result.linked_count == 1
