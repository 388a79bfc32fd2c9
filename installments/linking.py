"""
Linking of standalone ledger records to a completed sale.

Deposits and installments can be recorded before their sale exists. When
the sale completes, link_to_sale() claims every unlinked record for the
customer (scoped to the checkout session when one is given, where
records of the session that have no customer yet are adopted) with a
per-row compare-and-set, so two sales racing for the same customer can
never both claim a record.
"""

from dataclasses import dataclass, field
import logging

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from sales.models import Sale

from .exceptions import LinkingConflictError, NotFoundError, ValidationError
from .models import AuditLog, Deposit, Installment
from .utils.parsing import as_id, as_session

logger = logging.getLogger(__name__)


@dataclass
class LinkResult:
    sale_id: int
    linked_deposit_ids: list = field(default_factory=list)
    linked_installment_ids: list = field(default_factory=list)
    skipped_deposit_ids: list = field(default_factory=list)
    skipped_installment_ids: list = field(default_factory=list)

    @property
    def linked_count(self):
        return len(self.linked_deposit_ids) + len(self.linked_installment_ids)

    @property
    def skipped_ids(self):
        return {
            "deposits": list(self.skipped_deposit_ids),
            "installments": list(self.skipped_installment_ids),
        }

    @property
    def has_conflicts(self):
        return bool(self.skipped_deposit_ids or self.skipped_installment_ids)

    def as_dict(self):
        return {
            "saleId": self.sale_id,
            "linkedCount": self.linked_count,
            "skippedIds": self.skipped_ids,
            "linked": {
                "deposits": list(self.linked_deposit_ids),
                "installments": list(self.linked_installment_ids),
            },
        }

    def raise_for_conflicts(self):
        if self.has_conflicts:
            raise LinkingConflictError(
                f"Some records could not be linked to sale {self.sale_id}",
                result=self,
                skipped=self.skipped_ids,
            )
        return self


class LinkingService:

    def __init__(self, user=None):
        self.user = user

    def link_to_sale(self, customer_id, sale_id, checkout_session=None):
        customer_id = as_id(customer_id, "customer_id")
        session = as_session(checkout_session)
        if customer_id is None and session is None:
            raise ValidationError("customer_id or checkout_session is required to link records")

        sale_pk = as_id(sale_id, "sale_id")
        sale = Sale.objects.filter(pk=sale_pk).first() if sale_pk is not None else None
        if sale is None:
            raise NotFoundError(f"Sale {sale_id} not found", sale_id=sale_id)
        if customer_id is not None and sale.customer_id is not None and sale.customer_id != customer_id:
            raise ValidationError(
                f"Sale {sale.pk} belongs to customer {sale.customer_id}, not {customer_id}",
                sale_id=sale.pk,
                customer_id=customer_id,
            )

        result = LinkResult(sale_id=sale.pk)

        with transaction.atomic():
            for model, linked, skipped in (
                (Deposit, result.linked_deposit_ids, result.skipped_deposit_ids),
                (Installment, result.linked_installment_ids, result.skipped_installment_ids),
            ):
                for pk in self._unlinked_ids(model, customer_id, session):
                    if self._claim(model, pk, sale.pk):
                        linked.append(pk)
                    else:
                        skipped.append(pk)
                if customer_id is not None and session is not None and linked:
                    model.objects.filter(pk__in=linked, customer__isnull=True).update(customer_id=customer_id)

            if result.linked_count:
                AuditLog.record(
                    "RECORDS_LINKED",
                    f"{result.linked_count} ledger records linked to sale {sale.pk}",
                    user=self.user,
                    customer_id=customer_id,
                    sale_id=sale.pk,
                    deposits=result.linked_deposit_ids,
                    installments=result.linked_installment_ids,
                    checkout_session=str(session) if session else None,
                )
            if result.has_conflicts:
                AuditLog.record(
                    "LINK_CONFLICT",
                    f"Records already claimed by another sale were skipped for sale {sale.pk}",
                    user=self.user,
                    customer_id=customer_id,
                    sale_id=sale.pk,
                    **result.skipped_ids,
                )

        if result.has_conflicts:
            logger.warning(
                f"[LinkingService] Sale {sale.pk}: skipped records already linked elsewhere {result.skipped_ids}"
            )
        logger.info(
            f"[LinkingService] Linked {result.linked_count} records to sale {sale.pk} "
            f"(customer={customer_id}, session={session})"
        )
        return result

    def _unlinked_ids(self, model, customer_id, session):
        queryset = model.objects.filter(sale__isnull=True)
        if session is not None:
            queryset = queryset.filter(checkout_session=session)
            if customer_id is not None:
                # Records taken before the customer was picked carry no customer yet.
                queryset = queryset.filter(Q(customer_id=customer_id) | Q(customer__isnull=True))
        elif customer_id is not None:
            queryset = queryset.filter(customer_id=customer_id)
        return list(queryset.order_by("pk").values_list("pk", flat=True))

    def _claim(self, model, pk, sale_id):
        # Compare-and-set: only a row that is still unlinked can be claimed.
        return model.objects.filter(pk=pk, sale__isnull=True).update(
            sale_id=sale_id,
            updated_at=timezone.now(),
        ) == 1
