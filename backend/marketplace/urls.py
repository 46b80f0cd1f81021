from django.urls import path

from .views import (
    BusyPeriodsView,
    CanAcceptOrderView,
    CapacityEventView,
    CapacityOverviewView,
    CapacitySettingsView,
    ManualStatusView,
    PriceCalculationView,
    RestaurantCapacityListView,
    RestaurantCapacityView,
    RiderAssignmentView,
    SurgeConfigView,
    SurgeStatusView,
)

urlpatterns = [
    path("pricing/calculate/", PriceCalculationView.as_view(), name="pricing-calculate"),
    path("admin/surge/status/", SurgeStatusView.as_view(), name="surge-status"),
    path("admin/surge/config/", SurgeConfigView.as_view(), name="surge-config"),
    path("orders/assign-rider/", RiderAssignmentView.as_view(), name="assign-rider"),
    path("restaurants/<str:restaurant_id>/capacity/", RestaurantCapacityView.as_view(), name="capacity-detail"),
    path("restaurants/<str:restaurant_id>/capacity/status/", ManualStatusView.as_view(), name="capacity-status"),
    path("restaurants/<str:restaurant_id>/capacity/settings/", CapacitySettingsView.as_view(), name="capacity-settings"),
    path("restaurants/<str:restaurant_id>/capacity/can-accept/", CanAcceptOrderView.as_view(), name="capacity-can-accept"),
    path("restaurants/<str:restaurant_id>/capacity/events/", CapacityEventView.as_view(), name="capacity-events"),
    path(
        "restaurants/<str:restaurant_id>/capacity/busy-periods/",
        BusyPeriodsView.as_view(),
        name="capacity-busy-periods",
    ),
    path("capacity/overview/", CapacityOverviewView.as_view(), name="capacity-overview"),
    path("capacity/restaurants/", RestaurantCapacityListView.as_view(), name="capacity-restaurants"),
]
