from django.urls import path
from . import views

urlpatterns = [
    path('checkout/', views.CheckoutView.as_view(), name='sale-checkout'),
    path('<int:sale_id>/', views.SaleDetailView.as_view(), name='sale-detail'),
]
