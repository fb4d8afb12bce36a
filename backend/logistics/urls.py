from django.urls import path
from .views import (
    CostEstimateView,
    CostHistoryView,
    DeliveryPlanLatestView,
    DeliveryPlanRecentView,
    DrivingTimeView,
    PlanDeliveryView,
    ReverseGeocodeView,
    TruckDetailView,
    TruckListView,
)

urlpatterns = [
    path('deliveries/plan/', PlanDeliveryView.as_view(), name='plan-delivery'),
    path('deliveries/plans/latest/', DeliveryPlanLatestView.as_view(), name='delivery-plan-latest'),
    path('deliveries/plans/recent/', DeliveryPlanRecentView.as_view(), name='delivery-plan-recent'),
    path('driving-time/', DrivingTimeView.as_view(), name='driving-time'),
    path('costs/estimate/', CostEstimateView.as_view(), name='cost-estimate'),
    path('costs/history/', CostHistoryView.as_view(), name='cost-history'),
    path('locations/reverse/', ReverseGeocodeView.as_view(), name='reverse-geocode'),
    path('trucks/', TruckListView.as_view(), name='truck-list'),
    path('trucks/<int:pk>/', TruckDetailView.as_view(), name='truck-detail'),
]
