from decimal import Decimal

from rest_framework import serializers

from .models import Sale


class SaleSerializer(serializers.ModelSerializer):
    customer_name = serializers.SerializerMethodField()

    class Meta:
        model = Sale
        fields = [
            'id',
            'customer',
            'customer_name',
            'checkout_session',
            'subtotal',
            'discount_amount',
            'tax_amount',
            'total',
            'payment_method',
            'created_by',
            'created_at',
        ]
        read_only_fields = fields

    def get_customer_name(self, obj):
        return obj.customer.full_name if obj.customer_id else None


class CheckoutSerializer(serializers.Serializer):
    customer_id = serializers.IntegerField(required=False, allow_null=True)
    checkout_session = serializers.UUIDField(required=False, allow_null=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    discount_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal('0.00'), required=False, default=Decimal('0.00')
    )
    payment_method = serializers.ChoiceField(choices=Sale.PAYMENT_METHOD_CHOICES, default='cash')
