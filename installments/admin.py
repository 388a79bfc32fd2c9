from django.contrib import admin

from .models import InstallmentPlan, Deposit, Installment, AuditLog


@admin.register(InstallmentPlan)
class InstallmentPlanAdmin(admin.ModelAdmin):
    list_display = ('name', 'down_payment_percent', 'number_of_payments', 'interval_days', 'interest_rate', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('name',)


@admin.register(Deposit)
class DepositAdmin(admin.ModelAdmin):
    list_display = ('id', 'customer', 'sale', 'amount', 'method', 'date')
    list_filter = ('method',)
    raw_id_fields = ('customer', 'sale')


@admin.register(Installment)
class InstallmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'customer', 'sale', 'amount', 'due_date', 'status', 'paid_date')
    list_filter = ('status',)
    raw_id_fields = ('customer', 'sale')


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('action_type', 'customer', 'sale', 'user', 'created_at')
    list_filter = ('action_type',)
    readonly_fields = ('action_type', 'user', 'customer', 'sale', 'description', 'metadata', 'created_at')
