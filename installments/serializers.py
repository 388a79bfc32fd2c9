from decimal import Decimal

from rest_framework import serializers

from .models import InstallmentPlan, Deposit, Installment
from .status_engine import effective_status, late_fee


# ------------------------------
# Installment Plan Serializer
# ------------------------------
class InstallmentPlanSerializer(serializers.ModelSerializer):

    class Meta:
        model = InstallmentPlan
        fields = [
            'id',
            'name',
            'description',
            'down_payment_percent',
            'number_of_payments',
            'interval_days',
            'interest_rate',
            'is_active',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']


# ------------------------------
# Schedule preview input
# ------------------------------
class ScheduleRequestSerializer(serializers.Serializer):
    plan_id = serializers.IntegerField()
    sale_total = serializers.DecimalField(max_digits=12, decimal_places=2)
    custom_down_payment = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True
    )


# ------------------------------
# Ledger records
# ------------------------------
class DepositSerializer(serializers.ModelSerializer):

    class Meta:
        model = Deposit
        fields = [
            'id',
            'customer',
            'sale',
            'checkout_session',
            'amount',
            'date',
            'method',
            'note',
            'created_at',
        ]
        read_only_fields = fields


class InstallmentSerializer(serializers.ModelSerializer):
    """
    Installment with its read-time status. `effective_status` and
    `late_fee` are evaluated against the `now` passed in the context.
    """

    effective_status = serializers.SerializerMethodField()
    late_fee = serializers.SerializerMethodField()

    class Meta:
        model = Installment
        fields = [
            'id',
            'customer',
            'sale',
            'checkout_session',
            'payment_number',
            'amount',
            'due_date',
            'paid_date',
            'status',
            'effective_status',
            'late_fee',
            'note',
            'created_at',
        ]
        read_only_fields = fields

    def get_effective_status(self, obj):
        return effective_status(obj, self.context.get('now'))

    def get_late_fee(self, obj):
        config = self.context.get('config')
        daily_percent = config.late_fee_daily_percent if config else None
        return str(late_fee(obj, self.context.get('now'), daily_percent))


class DepositCreateSerializer(serializers.Serializer):
    customer_id = serializers.IntegerField(required=False, allow_null=True)
    sale_id = serializers.IntegerField(required=False, allow_null=True)
    checkout_session = serializers.UUIDField(required=False, allow_null=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    date = serializers.DateTimeField()
    method = serializers.ChoiceField(choices=Deposit.METHOD_CHOICES, required=False)
    note = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class InstallmentCreateSerializer(serializers.Serializer):
    customer_id = serializers.IntegerField(required=False, allow_null=True)
    sale_id = serializers.IntegerField(required=False, allow_null=True)
    checkout_session = serializers.UUIDField(required=False, allow_null=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    due_date = serializers.DateField()
    note = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class MarkPaidSerializer(serializers.Serializer):
    paid_date = serializers.DateField(required=False, allow_null=True)
    prepaid = serializers.BooleanField(required=False, default=False)


class LinkRequestSerializer(serializers.Serializer):
    customer_id = serializers.IntegerField(required=False, allow_null=True)
    sale_id = serializers.IntegerField()
    checkout_session = serializers.UUIDField(required=False, allow_null=True)
    strict = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):
        if attrs.get('customer_id') is None and attrs.get('checkout_session') is None:
            raise serializers.ValidationError("customer_id or checkout_session is required.")
        return attrs
