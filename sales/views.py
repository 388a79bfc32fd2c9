import logging

from drf_yasg.utils import swagger_auto_schema

from django.utils import timezone

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from customer.permissions import IsAuthenticatedUser
from installments.config import CheckoutConfig
from installments.exceptions import LedgerError
from installments.ledger import PaymentLedger
from installments.serializers import DepositSerializer, InstallmentSerializer
from installments.status_engine import aggregate

from .models import Sale
from .serializers import SaleSerializer, CheckoutSerializer
from .services import complete_sale

logger = logging.getLogger(__name__)


class CheckoutView(APIView):
    """
    Completes a sale and links the checkout's deposits and installments to it.
    A linking failure is reported under `link.error`; the sale is kept.
    """
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Complete a sale",
        request_body=CheckoutSerializer,
        responses={201: SaleSerializer, 400: "Validation Error", 404: "Customer not found"},
        tags=["Sales"]
    )
    def post(self, request):
        serializer = CheckoutSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"status": "error", "message": "Validation failed", "details": serializer.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            sale, result, link_error = complete_sale(
                serializer.validated_data,
                config=CheckoutConfig.from_settings(),
                user=request.user,
            )
        except LedgerError as exc:
            return Response(
                {"status": "error", "message": exc.message, "code": exc.code},
                status=exc.http_status,
            )
        except Exception:
            logger.exception("[CheckoutAPI] Unexpected error completing sale.")
            return Response(
                {"status": "error", "message": "Failed to complete sale."},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        link = result.as_dict() if result else None
        if link_error is not None:
            link = {"error": str(link_error)}

        return Response(
            {
                "status": "success",
                "message": "Sale completed.",
                "data": {"sale": SaleSerializer(sale).data, "link": link},
            },
            status=status.HTTP_201_CREATED,
        )


class SaleDetailView(APIView):
    """
    Receipt data: the sale plus its linked deposits, installments and
    paid/remaining summary.
    """
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Retrieve a sale with its ledger summary",
        responses={200: SaleSerializer, 404: "Sale not found"},
        tags=["Sales"]
    )
    def get(self, request, sale_id):
        try:
            sale = Sale.objects.select_related('customer').get(id=sale_id)
        except Sale.DoesNotExist:
            return Response({"status": "error", "message": "Sale not found"}, status=status.HTTP_404_NOT_FOUND)

        config = CheckoutConfig.from_settings()
        records = PaymentLedger(config).get_by_sale(sale.id)
        now = timezone.localdate()
        context = {"now": now, "config": config}

        return Response(
            {
                "status": "success",
                "data": {
                    "sale": SaleSerializer(sale).data,
                    "deposits": DepositSerializer(records.deposits, many=True).data,
                    "installments": InstallmentSerializer(records.installments, many=True, context=context).data,
                    "summary": aggregate(records, now).as_dict(),
                },
            },
            status=status.HTTP_200_OK,
        )
