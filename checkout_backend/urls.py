from django.contrib import admin
from django.urls import path, include
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi


# Swagger Configuration
schema_view = get_schema_view(
    openapi.Info(
        title="Retail Checkout API",
        default_version='v1',
        description="""
        # Retail Checkout & Installment Plan API

        ## Features
        - Installment plan templates and schedule previews
        - Deposit and installment ledger
        - Linking of checkout-time payments to completed sales
        - Overdue and reminder reporting

        ## Authentication
        This API uses JWT (JSON Web Tokens) for authentication.
        Use the access token in the Authorization header: Bearer <token>
        """,
    ),
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API Documentation
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
    path('swagger.json', schema_view.without_ui(cache_timeout=0), name='schema-json'),

    # API v1
    path('api/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/v1/customers/', include('customer.urls')),
    path('api/v1/sales/', include('sales.urls')),
    path('api/v1/installments/', include('installments.urls')),
]
