import pytest
from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.utils import timezone

from installments.models import Installment, InstallmentPlan
from installments.status_engine import OVERDUE_REPORT_CACHE_KEY


@pytest.mark.django_db
class TestSeedInstallmentPlans:

    def test_seeds_default_plans(self):
        out = StringIO()
        call_command("seed_installment_plans", stdout=out)

        assert InstallmentPlan.objects.count() == 5
        weekly = InstallmentPlan.objects.get(name="Weekly 4-Week Plan")
        assert weekly.interval_days == 7
        assert weekly.down_payment_percent == Decimal("25.00")
        assert "5 installment plan(s) created" in out.getvalue()

    def test_is_idempotent(self):
        call_command("seed_installment_plans", stdout=StringIO())
        call_command("seed_installment_plans", "--force", stdout=StringIO())

        assert InstallmentPlan.objects.count() == 5

    def test_loads_plans_from_csv(self, tmp_path):
        sheet = tmp_path / "plans.csv"
        sheet.write_text(
            "Name,Down_Payment_Percent,Number_Of_Payments,Interval_Days,Interest_Rate\n"
            "Biweekly 6,15,6,14,4.5\n"
        )

        call_command("seed_installment_plans", "--file", str(sheet), stdout=StringIO())

        plan = InstallmentPlan.objects.get(name="Biweekly 6")
        assert plan.interest_rate == Decimal("4.50")
        assert plan.description is None

    def test_rejects_invalid_rows(self, tmp_path):
        sheet = tmp_path / "plans.csv"
        sheet.write_text(
            "name,down_payment_percent,number_of_payments,interval_days,interest_rate\n"
            "Broken,10,0,30,0\n"
        )

        with pytest.raises(CommandError):
            call_command("seed_installment_plans", "--file", str(sheet), stdout=StringIO())
        assert not InstallmentPlan.objects.exists()

    def test_rejects_missing_columns(self, tmp_path):
        sheet = tmp_path / "plans.csv"
        sheet.write_text("name,interval_days\nX,30\n")

        with pytest.raises(CommandError):
            call_command("seed_installment_plans", "--file", str(sheet), stdout=StringIO())


@pytest.mark.django_db
class TestRefreshOverdueReport:

    def test_refreshes_cache(self, customer):
        Installment.objects.create(
            customer=customer, amount=Decimal("42.00"), due_date=timezone.localdate() - timedelta(days=4),
        )
        out = StringIO()

        call_command("refresh_overdue_report", stdout=out)

        assert cache.get(OVERDUE_REPORT_CACHE_KEY)["overdueCount"] == 1
        assert "1 overdue installment(s), 42.00 outstanding" in out.getvalue()
