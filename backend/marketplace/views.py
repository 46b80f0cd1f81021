import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from . import services
from .serializers import (
    AnalyticsQuerySerializer,
    AutomaticAssignmentSerializer,
    CapacityEventSerializer,
    CapacitySettingsSerializer,
    ManualAssignmentSerializer,
    ManualStatusSerializer,
    PriceRequestSerializer,
)

logger = logging.getLogger(__name__)


def server_error(message):
    return Response({"error": message}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def admin_required():
    return Response({"error": "Admin access required"}, status=status.HTTP_403_FORBIDDEN)


# --- Pricing ---

class PriceCalculationView(APIView):
    """
    Checkout pricing. The engine already falls back to static pricing on
    failure, so a 500 here means something outside it broke.
    """

    def post(self, request):
        serializer = PriceRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            pricing = services.pricing_engine().calculate_dynamic_price(
                data["restaurant_id"], data["zone_id"], data["order_value"], data["delivery_type"]
            )
        except Exception:
            logger.exception("Dynamic pricing API error")
            return server_error("Pricing calculation failed")

        logger.info(
            "Dynamic pricing calculated for restaurant %s zone %s: x%.2f",
            data["restaurant_id"], data["zone_id"], pricing.surge_info.multiplier,
        )
        return Response(pricing.to_dict())


class SurgeStatusView(APIView):
    def get(self, request):
        try:
            zones = services.pricing_engine().current_surge_status()
        except Exception:
            logger.exception("Failed to get surge status")
            return server_error("Failed to fetch surge status")
        return Response([zone.to_dict() for zone in zones])


class SurgeConfigView(APIView):
    def get(self, request):
        try:
            return Response(services.pricing_engine().policy.to_dict())
        except Exception:
            logger.exception("Failed to get surge config")
            return server_error("Failed to fetch surge configuration")

    def put(self, request):
        if not isinstance(request.data, dict):
            return Response({"error": "Expected a JSON object"}, status=status.HTTP_400_BAD_REQUEST)

        try:
            policy = services.pricing_engine().update_configuration(**request.data)
        except (ValueError, TypeError) as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except Exception:
            logger.exception("Failed to update surge config")
            return server_error("Failed to update surge configuration")

        return Response({"success": True, "config": policy.to_dict()})


# --- Rider assignment ---

class RiderAssignmentView(APIView):
    """
    POST: automatic assignment. PUT: manual assignment by an admin.
    GET: assignment analytics (admin).
    """

    def post(self, request):
        serializer = AutomaticAssignmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        order_id = data["order_id"]

        try:
            restaurant_id = data.get("restaurant_id")
            if not restaurant_id:
                order = services.get_store().get_order(order_id)
                if order is None:
                    return Response({"error": "Order not found"}, status=status.HTTP_404_NOT_FOUND)
                restaurant_id = order.restaurant_id

            result = services.assignment_service().assign_rider_to_order(order_id, restaurant_id)
        except Exception:
            logger.exception("Exception in automatic rider assignment for order %s", order_id)
            return server_error("Internal server error")

        if result.success:
            return Response({
                "success": True,
                "message": result.message,
                "assigned_rider_id": result.assigned_rider_id,
                "assignment_type": "automatic",
            })

        logger.info("Automatic assignment failed for order %s: %s", order_id, result.message)
        return Response(result.to_dict())

    def put(self, request):
        serializer = ManualAssignmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            if not services.is_admin(data["admin_id"]):
                return admin_required()
            result = services.assignment_service().manual_assign_rider(
                data["order_id"], data["rider_id"], data["admin_id"]
            )
        except Exception:
            logger.exception("Exception in manual rider assignment for order %s", data["order_id"])
            return server_error("Internal server error")

        if not result.success:
            return Response({"success": False, "message": result.message}, status=status.HTTP_409_CONFLICT)

        return Response({
            "success": True,
            "message": result.message,
            "assigned_rider_id": data["rider_id"],
            "assignment_type": "manual",
        })

    def get(self, request):
        serializer = AnalyticsQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            if not services.is_admin(data["admin_id"]):
                return admin_required()
            analytics = services.assignment_service().assignment_analytics(data["time_range"])
        except Exception:
            logger.exception("Exception getting assignment analytics")
            return server_error("Internal server error")

        return Response({"success": True, "time_range": data["time_range"], "analytics": analytics.to_dict()})


# --- Capacity ---

class RestaurantCapacityView(APIView):
    def get(self, request, restaurant_id):
        record = services.capacity_service().get_capacity(restaurant_id)
        if record is None:
            return server_error("Capacity information not available")
        return Response(record.to_dict())


class ManualStatusView(APIView):
    def post(self, request, restaurant_id):
        serializer = ManualStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if not services.capacity_service().set_manual_status(
            restaurant_id, data["status"], data["reason"], data.get("duration_hours")
        ):
            return server_error("Failed to set manual status")
        return Response({"success": True})


class CapacitySettingsView(APIView):
    def put(self, request, restaurant_id):
        serializer = CapacitySettingsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            updated = services.capacity_service().update_capacity_settings(restaurant_id, **serializer.validated_data)
        except ValueError as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        if not updated:
            return server_error("Failed to update capacity settings")
        return Response({"success": True})


class CanAcceptOrderView(APIView):
    def get(self, request, restaurant_id):
        return Response(services.capacity_service().can_accept_order(restaurant_id).to_dict())


class CapacityEventView(APIView):
    def post(self, request, restaurant_id):
        serializer = CapacityEventSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.capacity_service().handle_order_event(restaurant_id, serializer.validated_data["event_type"])
        return Response({"success": True}, status=status.HTTP_202_ACCEPTED)


class BusyPeriodsView(APIView):
    def get(self, request, restaurant_id):
        periods = services.capacity_service().predict_busy_periods(restaurant_id)
        return Response([period.to_dict() for period in periods])


class CapacityOverviewView(APIView):
    def get(self, request):
        return Response(services.capacity_service().capacity_overview().to_dict())


class RestaurantCapacityListView(APIView):
    """
    Sorted by availability by default; ?view=summary returns the plain
    per-restaurant capacity listing.
    """

    def get(self, request):
        service = services.capacity_service()
        if request.query_params.get("view") == "summary":
            return Response(service.all_restaurants_capacity())
        return Response([item.to_dict() for item in service.restaurants_by_availability()])
