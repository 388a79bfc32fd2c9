from django.core.management.base import BaseCommand

from installments.config import CheckoutConfig
from installments.status_engine import refresh_overdue_report


class Command(BaseCommand):
    help = 'Recompute the cached overdue installments report (safe to run on any schedule)'

    def handle(self, *args, **options):
        config = CheckoutConfig.from_settings()
        report = refresh_overdue_report(timeout=config.overdue_report_cache_timeout)
        self.stdout.write(self.style.SUCCESS(
            f"{report['overdueCount']} overdue installment(s), "
            f"{report['overdueAmount']} outstanding across {report['customersWithOverdue']} customer(s)."
        ))
