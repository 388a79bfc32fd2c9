# ============================================================
# Standard Library Imports
# ============================================================
import logging

# swagger settup
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from customer.permissions import IsAuthenticatedUser, IsStaffOrReadOnly

# ============================================================
# Django Imports
# ============================================================
from django.utils import timezone

# ============================================================
# Third-Party Imports
# ============================================================
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.pagination import PageNumberPagination

# ============================================================
# Local Application Imports
# ============================================================
from .config import CheckoutConfig
from .exceptions import LedgerError, LinkingConflictError, ValidationError
from .ledger import PaymentLedger
from .linking import LinkingService
from .models import InstallmentPlan, Deposit, Installment
from .schedule import calculate_schedule
from .status_engine import (
    aggregate,
    get_overdue_report,
    late_fee,
    days_late,
    effective_status,
    refresh_overdue_report,
    upcoming_installments,
)
from .serializers import (
    InstallmentPlanSerializer,
    ScheduleRequestSerializer,
    DepositSerializer,
    InstallmentSerializer,
    DepositCreateSerializer,
    InstallmentCreateSerializer,
    MarkPaidSerializer,
    LinkRequestSerializer,
)
from .utils.parsing import as_id, as_session
from .utils.utils import cache_response

# ============================================================
# Logger Setup
# ============================================================
logger = logging.getLogger(__name__)


# ============================================================
# Pagination
# ============================================================
class LedgerPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


# ============================================================
# Response helpers
# ============================================================
def ledger_error_response(exc):
    return Response(
        {"status": "error", "message": exc.message, "code": exc.code},
        status=exc.http_status,
    )


def validation_error_response(errors):
    return Response(
        {"status": "error", "message": "Validation failed", "details": errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


def server_error_response(message):
    return Response(
        {"status": "error", "message": message},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


LEDGER_FILTER_PARAMS = [
    openapi.Parameter('customer_id', openapi.IN_QUERY, type=openapi.TYPE_INTEGER, description="Filter by customer"),
    openapi.Parameter('sale_id', openapi.IN_QUERY, type=openapi.TYPE_INTEGER, description="Filter by sale"),
    openapi.Parameter(
        'checkout_session', openapi.IN_QUERY, type=openapi.TYPE_STRING, description="Filter by checkout session UUID"
    ),
]


def filter_ledger_queryset(queryset, params):
    customer_id = as_id(params.get('customer_id'), 'customer_id')
    sale_id = as_id(params.get('sale_id'), 'sale_id')
    session = as_session(params.get('checkout_session'))
    if customer_id is not None:
        queryset = queryset.filter(customer_id=customer_id)
    if sale_id is not None:
        queryset = queryset.filter(sale_id=sale_id)
    if session is not None:
        queryset = queryset.filter(checkout_session=session)
    return queryset


# ============================================================
# Installment plan templates
# ============================================================
class InstallmentPlanListCreateView(APIView):
    """
    Lists plan templates (optionally only active ones) and lets staff add new ones.
    """
    permission_classes = [IsStaffOrReadOnly]

    @swagger_auto_schema(
        operation_summary="List installment plans",
        manual_parameters=[
            openapi.Parameter('active', openapi.IN_QUERY, type=openapi.TYPE_BOOLEAN, description="Only active plans"),
        ],
        responses={200: InstallmentPlanSerializer(many=True)},
        tags=["Installments"]
    )
    @cache_response("installment-plans", timeout=300)
    def get(self, request):
        try:
            queryset = InstallmentPlan.objects.all()
            if request.query_params.get('active', '').lower() in ('1', 'true', 'yes'):
                queryset = queryset.filter(is_active=True)
            serializer = InstallmentPlanSerializer(queryset, many=True)
            return Response(
                {"status": "success", "count": len(serializer.data), "data": serializer.data},
                status=status.HTTP_200_OK,
            )
        except Exception:
            logger.exception("[InstallmentPlanAPI] Error listing installment plans.")
            return server_error_response("Failed to fetch installment plans.")

    @swagger_auto_schema(
        operation_summary="Create an installment plan",
        request_body=InstallmentPlanSerializer,
        responses={201: InstallmentPlanSerializer, 400: "Validation Error"},
        tags=["Installments"]
    )
    def post(self, request):
        serializer = InstallmentPlanSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        plan = serializer.save()
        logger.info(f"[InstallmentPlanAPI] Plan {plan.id} '{plan.name}' created by {request.user}")
        return Response(
            {"status": "success", "message": "Installment plan created.", "data": InstallmentPlanSerializer(plan).data},
            status=status.HTTP_201_CREATED,
        )


class InstallmentPlanDetailView(APIView):
    """
    Retrieve, edit or deactivate one plan template.

    Schedules already recorded keep the numbers they were generated with;
    editing a plan only affects schedules generated afterwards. DELETE
    deactivates the plan instead of removing it.
    """
    permission_classes = [IsStaffOrReadOnly]

    def get_object(self, plan_id):
        return InstallmentPlan.objects.filter(pk=plan_id).first()

    @swagger_auto_schema(
        operation_summary="Get an installment plan",
        responses={200: InstallmentPlanSerializer, 404: "Plan not found"},
        tags=["Installments"]
    )
    def get(self, request, plan_id):
        plan = self.get_object(plan_id)
        if plan is None:
            return Response({"status": "error", "message": "Plan not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response({"status": "success", "data": InstallmentPlanSerializer(plan).data}, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_summary="Replace an installment plan",
        request_body=InstallmentPlanSerializer,
        responses={200: InstallmentPlanSerializer, 400: "Validation Error", 404: "Plan not found"},
        tags=["Installments"]
    )
    def put(self, request, plan_id):
        return self._update(request, plan_id, partial=False)

    @swagger_auto_schema(
        operation_summary="Update an installment plan",
        request_body=InstallmentPlanSerializer,
        responses={200: InstallmentPlanSerializer, 400: "Validation Error", 404: "Plan not found"},
        tags=["Installments"]
    )
    def patch(self, request, plan_id):
        return self._update(request, plan_id, partial=True)

    @swagger_auto_schema(
        operation_summary="Deactivate an installment plan",
        responses={200: InstallmentPlanSerializer, 404: "Plan not found"},
        tags=["Installments"]
    )
    def delete(self, request, plan_id):
        plan = self.get_object(plan_id)
        if plan is None:
            return Response({"status": "error", "message": "Plan not found."}, status=status.HTTP_404_NOT_FOUND)
        plan.is_active = False
        plan.save(update_fields=['is_active', 'updated_at'])
        logger.info(f"[InstallmentPlanAPI] Plan {plan.id} '{plan.name}' deactivated by {request.user}")
        return Response(
            {"status": "success", "message": "Installment plan deactivated.", "data": InstallmentPlanSerializer(plan).data},
            status=status.HTTP_200_OK,
        )

    def _update(self, request, plan_id, partial):
        plan = self.get_object(plan_id)
        if plan is None:
            return Response({"status": "error", "message": "Plan not found."}, status=status.HTTP_404_NOT_FOUND)
        serializer = InstallmentPlanSerializer(plan, data=request.data, partial=partial)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        plan = serializer.save()
        logger.info(f"[InstallmentPlanAPI] Plan {plan.id} '{plan.name}' updated by {request.user}")
        return Response(
            {"status": "success", "message": "Installment plan updated.", "data": InstallmentPlanSerializer(plan).data},
            status=status.HTTP_200_OK,
        )


# ============================================================
# Schedule preview
# ============================================================
class ScheduleCalculateView(APIView):
    """
    Previews the down payment and installments a plan would produce for a
    sale total. Nothing is persisted.
    """
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Calculate a payment schedule",
        request_body=ScheduleRequestSerializer,
        responses={200: "Schedule", 400: "Invalid plan or amount", 404: "Plan not found"},
        tags=["Installments"]
    )
    def post(self, request):
        serializer = ScheduleRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({"success": False, "error": serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            schedule = calculate_schedule(
                data["plan_id"],
                data["sale_total"],
                custom_down_payment=data.get("custom_down_payment"),
            )
        except LedgerError as exc:
            return Response(
                {"success": False, "error": exc.message, "code": exc.code},
                status=exc.http_status,
            )
        return Response({"success": True, "schedule": schedule.as_dict()}, status=status.HTTP_200_OK)


# ============================================================
# Deposits
# ============================================================
class DepositListCreateView(APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="List deposits",
        manual_parameters=LEDGER_FILTER_PARAMS,
        responses={200: DepositSerializer(many=True)},
        tags=["Installments"]
    )
    def get(self, request):
        try:
            queryset = filter_ledger_queryset(Deposit.objects.all(), request.query_params).order_by('-date', '-id')
        except LedgerError as exc:
            return ledger_error_response(exc)
        paginator = LedgerPagination()
        page = paginator.paginate_queryset(queryset, request)
        return paginator.get_paginated_response(DepositSerializer(page, many=True).data)

    @swagger_auto_schema(
        operation_summary="Record a deposit",
        request_body=DepositCreateSerializer,
        responses={201: DepositSerializer, 400: "Validation Error", 404: "Customer or sale not found"},
        tags=["Installments"]
    )
    def post(self, request):
        serializer = DepositCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        try:
            ledger = PaymentLedger(CheckoutConfig.from_settings(), user=request.user)
            deposit = ledger.create_deposit(serializer.validated_data)
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(
            {"status": "success", "message": "Deposit recorded.", "data": DepositSerializer(deposit).data},
            status=status.HTTP_201_CREATED,
        )


# ============================================================
# Installments
# ============================================================
class InstallmentListCreateView(APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="List installments",
        manual_parameters=LEDGER_FILTER_PARAMS,
        responses={200: InstallmentSerializer(many=True)},
        tags=["Installments"]
    )
    def get(self, request):
        try:
            queryset = filter_ledger_queryset(Installment.objects.all(), request.query_params)
        except LedgerError as exc:
            return ledger_error_response(exc)
        paginator = LedgerPagination()
        page = paginator.paginate_queryset(queryset.order_by('due_date', 'id'), request)
        context = {"now": timezone.localdate(), "config": CheckoutConfig.from_settings()}
        return paginator.get_paginated_response(InstallmentSerializer(page, many=True, context=context).data)

    @swagger_auto_schema(
        operation_summary="Record an installment",
        request_body=InstallmentCreateSerializer,
        responses={201: InstallmentSerializer, 400: "Validation Error", 404: "Customer or sale not found"},
        tags=["Installments"]
    )
    def post(self, request):
        serializer = InstallmentCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        try:
            ledger = PaymentLedger(CheckoutConfig.from_settings(), user=request.user)
            installment = ledger.create_installment(serializer.validated_data)
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(
            {"status": "success", "message": "Installment recorded.", "data": InstallmentSerializer(installment).data},
            status=status.HTTP_201_CREATED,
        )


class InstallmentMarkPaidView(APIView):
    """
    Settles a pending installment as paid (or prepaid). Settling an
    installment twice returns 409 and leaves the stored paid date alone.
    """
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Mark an installment as paid",
        request_body=MarkPaidSerializer,
        responses={200: InstallmentSerializer, 404: "Installment not found", 409: "Already paid"},
        tags=["Installments"]
    )
    def post(self, request, installment_id):
        serializer = MarkPaidSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        ledger = PaymentLedger(CheckoutConfig.from_settings(), user=request.user)
        try:
            if data.get("prepaid"):
                installment = ledger.mark_as_prepaid(installment_id, data.get("paid_date"))
            else:
                installment = ledger.mark_as_paid(installment_id, data.get("paid_date"))
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(
            {
                "status": "success",
                "message": f"Installment marked {installment.status}.",
                "data": InstallmentSerializer(installment).data,
            },
            status=status.HTTP_200_OK,
        )


class InstallmentLateFeeView(APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Late fee accrued on an installment",
        responses={200: "Late fee", 404: "Installment not found"},
        tags=["Installments"]
    )
    def get(self, request, installment_id):
        config = CheckoutConfig.from_settings()
        try:
            installment = PaymentLedger(config).get_installment(installment_id)
        except LedgerError as exc:
            return ledger_error_response(exc)

        now = timezone.localdate()
        return Response(
            {
                "status": "success",
                "data": {
                    "installment_id": installment.id,
                    "amount": str(installment.amount),
                    "due_date": installment.due_date.isoformat(),
                    "effective_status": effective_status(installment, now),
                    "days_late": days_late(installment, now),
                    "daily_percent": str(config.late_fee_daily_percent),
                    "late_fee": str(late_fee(installment, now, config.late_fee_daily_percent)),
                },
            },
            status=status.HTTP_200_OK,
        )


class UpcomingInstallmentsView(APIView):
    """
    Payment reminders: pending installments due in the next `days_ahead` days.
    """
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Upcoming installment reminders",
        manual_parameters=[
            openapi.Parameter('days_ahead', openapi.IN_QUERY, type=openapi.TYPE_INTEGER, description="Look-ahead window"),
        ],
        responses={200: InstallmentSerializer(many=True)},
        tags=["Installments"]
    )
    def get(self, request):
        config = CheckoutConfig.from_settings()
        days_ahead = request.query_params.get('days_ahead') or config.reminder_days_ahead
        try:
            days_ahead = int(days_ahead)
        except (TypeError, ValueError):
            return ledger_error_response(ValidationError("days_ahead must be an integer"))
        if days_ahead < 0:
            return ledger_error_response(ValidationError("days_ahead cannot be negative"))

        now = timezone.localdate()
        queryset = upcoming_installments(days_ahead, now)
        context = {"now": now, "config": config}
        data = []
        for installment in queryset:
            row = InstallmentSerializer(installment, context=context).data
            row["customer_name"] = installment.customer.full_name if installment.customer else None
            row["days_until_due"] = (installment.due_date - now).days
            data.append(row)

        return Response(
            {"status": "success", "days_ahead": days_ahead, "count": len(data), "data": data},
            status=status.HTTP_200_OK,
        )


# ============================================================
# Linking
# ============================================================
class LinkRecordsView(APIView):
    """
    Claims a customer's unlinked deposits and installments for a sale.
    Safe to retry: already linked records are left alone. With `strict`,
    records lost to another sale turn the answer into a 409.
    """
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Link ledger records to a sale",
        request_body=LinkRequestSerializer,
        responses={200: "Link result", 400: "Validation Error", 404: "Sale not found", 409: "Conflicts (strict only)"},
        tags=["Installments"]
    )
    def post(self, request):
        serializer = LinkRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        try:
            result = LinkingService(user=request.user).link_to_sale(
                data.get("customer_id"),
                data["sale_id"],
                checkout_session=data.get("checkout_session"),
            )
            if data.get("strict"):
                result.raise_for_conflicts()
        except LinkingConflictError as exc:
            return Response(
                {"status": "error", "message": exc.message, "code": exc.code, "data": exc.result.as_dict()},
                status=exc.http_status,
            )
        except LedgerError as exc:
            return ledger_error_response(exc)
        except Exception:
            logger.exception("[LinkRecordsAPI] Unexpected error linking records.")
            return server_error_response("Failed to link records.")

        return Response({"status": "success", "data": result.as_dict()}, status=status.HTTP_200_OK)


# ============================================================
# Records + summary
# ============================================================
class LedgerRecordsView(APIView):
    """
    Deposits, installments and the paid/remaining summary for one customer,
    sale or checkout session.
    """
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Ledger records with summary",
        manual_parameters=LEDGER_FILTER_PARAMS,
        responses={200: "Records and summary", 400: "Missing filter"},
        tags=["Installments"]
    )
    def get(self, request):
        config = CheckoutConfig.from_settings()
        ledger = PaymentLedger(config)
        try:
            sale_id = as_id(request.query_params.get('sale_id'), 'sale_id')
            customer_id = as_id(request.query_params.get('customer_id'), 'customer_id')
            session = as_session(request.query_params.get('checkout_session'))
            if sale_id is not None:
                records = ledger.get_by_sale(sale_id)
            elif customer_id is not None:
                records = ledger.get_by_customer(customer_id)
            elif session is not None:
                records = ledger.get_by_session(session)
            else:
                raise ValidationError("One of customer_id, sale_id or checkout_session is required")
        except LedgerError as exc:
            return ledger_error_response(exc)

        now = timezone.localdate()
        context = {"now": now, "config": config}
        return Response(
            {
                "status": "success",
                "data": {
                    "deposits": DepositSerializer(records.deposits, many=True).data,
                    "installments": InstallmentSerializer(records.installments, many=True, context=context).data,
                    "summary": aggregate(records, now).as_dict(),
                },
            },
            status=status.HTTP_200_OK,
        )


# ============================================================
# Reports
# ============================================================
class OverdueReportView(APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Overdue installments report",
        operation_description="Cached snapshot; pass refresh=true to recompute it now.",
        manual_parameters=[
            openapi.Parameter('refresh', openapi.IN_QUERY, type=openapi.TYPE_BOOLEAN, description="Recompute now"),
        ],
        responses={200: "Overdue report"},
        tags=["Installments"]
    )
    def get(self, request):
        config = CheckoutConfig.from_settings()
        try:
            if request.query_params.get('refresh', '').lower() in ('1', 'true', 'yes'):
                report = refresh_overdue_report(timeout=config.overdue_report_cache_timeout)
            else:
                report = get_overdue_report(timeout=config.overdue_report_cache_timeout)
        except Exception:
            logger.exception("[OverdueReportAPI] Error building overdue report.")
            return server_error_response("Failed to build overdue report.")
        return Response({"status": "success", "data": report}, status=status.HTTP_200_OK)
