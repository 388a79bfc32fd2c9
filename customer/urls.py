from django.urls import path
from .import views

urlpatterns = [
    path('', views.CustomerListCreateView.as_view(), name='customer-list'),
    path('<int:customer_id>/', views.CustomerDetailView.as_view(), name='customer-detail'),
]
