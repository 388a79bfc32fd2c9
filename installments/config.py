from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings


@dataclass(frozen=True)
class CheckoutConfig:
    """
    Tunables for checkout and ledger operations.

    Built by the caller (a view, a command, a test) and handed to the
    operations that need it; engine code never reads settings itself.
    """

    tax_rate: Decimal = Decimal("0.00")
    max_discount_percent: Decimal = Decimal("100.00")
    late_fee_daily_percent: Decimal = Decimal("0.10")
    reminder_days_ahead: int = 7
    overdue_report_cache_timeout: int = 900
    default_deposit_method: str = "cash"

    @classmethod
    def from_settings(cls):
        raw = getattr(settings, "CHECKOUT", {}) or {}
        defaults = cls()
        return cls(
            tax_rate=Decimal(str(raw.get("TAX_RATE", defaults.tax_rate))),
            max_discount_percent=Decimal(str(raw.get("MAX_DISCOUNT_PERCENT", defaults.max_discount_percent))),
            late_fee_daily_percent=Decimal(str(raw.get("LATE_FEE_DAILY_PERCENT", defaults.late_fee_daily_percent))),
            reminder_days_ahead=int(raw.get("REMINDER_DAYS_AHEAD", defaults.reminder_days_ahead)),
            overdue_report_cache_timeout=int(
                raw.get("OVERDUE_REPORT_CACHE_TIMEOUT", defaults.overdue_report_cache_timeout)
            ),
            default_deposit_method=raw.get("DEFAULT_DEPOSIT_METHOD", defaults.default_deposit_method),
        )
