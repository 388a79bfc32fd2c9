from django.db.models.signals import post_save
from django.dispatch import receiver

from installments.models import InstallmentPlan
from installments.utils.utils import invalidate_cached_responses


# ============================================================
# SIGNAL: Drop cached plan listings when a plan changes
# ============================================================
@receiver(post_save, sender=InstallmentPlan)
def clear_installment_plan_cache(sender, instance, **kwargs):
    invalidate_cached_responses("installment-plans")
