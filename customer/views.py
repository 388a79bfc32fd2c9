# Django Imports
from django.db.models import Q

# Django REST Framework Imports
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.pagination import PageNumberPagination

# swagger settup
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

# Local  Imports
from .models import Customer
from .serializers import CustomerSerializer
from .permissions import IsAuthenticatedUser

import logging

logger = logging.getLogger(__name__)


# ============= Pagination Settings===============

class CustomerPagination(PageNumberPagination):
    """Custom pagination settings"""
    page_size = 10
    page_size_query_param = 'page_size'
    max_page_size = 100


# ============================================
#   Customer list / create
# ============================================

class CustomerListCreateView(APIView):
    permission_classes = [IsAuthenticatedUser]
    pagination_class = CustomerPagination

    @swagger_auto_schema(
        operation_summary="List customers",
        operation_description="Search by first name, last name, phone or document number (paginated).",
        tags=["customer"],
        manual_parameters=[
            openapi.Parameter(
                'search', openapi.IN_QUERY,
                description='Search term for name, phone or document number',
                type=openapi.TYPE_STRING
            ),
        ],
        responses={200: CustomerSerializer(many=True)},
    )
    def get(self, request):
        search_query = request.query_params.get('search', '').strip()
        queryset = Customer.objects.all().order_by('-created_at')

        if search_query:
            queryset = queryset.filter(
                Q(first_name__icontains=search_query) |
                Q(last_name__icontains=search_query) |
                Q(document_number__icontains=search_query) |
                Q(phone_number__icontains=search_query)
            )

        paginator = self.pagination_class()
        paginated_qs = paginator.paginate_queryset(queryset, request)
        serializer = CustomerSerializer(paginated_qs, many=True)
        return paginator.get_paginated_response(serializer.data)

    @swagger_auto_schema(
        operation_summary="Create a new customer",
        operation_description="The authenticated user is automatically set as the creator.",
        tags=["customer"],
        request_body=CustomerSerializer,
        responses={201: CustomerSerializer, 400: "Validation error"},
    )
    def post(self, request):
        serializer = CustomerSerializer(data=request.data, context={'request': request})
        if serializer.is_valid():
            customer = serializer.save()
            logger.info(f"[CustomerAPI] Customer {customer.id} created by {request.user}")
            return Response(CustomerSerializer(customer).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class CustomerDetailView(APIView):
    permission_classes = [IsAuthenticatedUser]

    @swagger_auto_schema(
        operation_summary="Retrieve a customer",
        tags=["customer"],
        responses={200: CustomerSerializer, 404: "Customer not found"},
    )
    def get(self, request, customer_id):
        try:
            customer = Customer.objects.get(id=customer_id)
        except Customer.DoesNotExist:
            return Response({'detail': 'Customer not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(CustomerSerializer(customer).data, status=status.HTTP_200_OK)
