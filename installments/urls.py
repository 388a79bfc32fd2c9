from django.urls import path
from . import views

urlpatterns = [
    path('plans/', views.InstallmentPlanListCreateView.as_view(), name='installment-plan-list'),
    path('plans/<int:plan_id>/', views.InstallmentPlanDetailView.as_view(), name='installment-plan-detail'),
    path('schedule/calculate/', views.ScheduleCalculateView.as_view(), name='schedule-calculate'),

    # Ledger records
    path('deposits/', views.DepositListCreateView.as_view(), name='deposit-list'),
    path('installments/', views.InstallmentListCreateView.as_view(), name='installment-list'),
    path('installments/upcoming/', views.UpcomingInstallmentsView.as_view(), name='installment-upcoming'),
    path('installments/<int:installment_id>/mark-paid/', views.InstallmentMarkPaidView.as_view(), name='installment-mark-paid'),
    path('installments/<int:installment_id>/late-fee/', views.InstallmentLateFeeView.as_view(), name='installment-late-fee'),

    path('link/', views.LinkRecordsView.as_view(), name='ledger-link'),
    path('records/', views.LedgerRecordsView.as_view(), name='ledger-records'),

    # Reports
    path('reports/overdue/', views.OverdueReportView.as_view(), name='overdue-report'),
]
