from rest_framework import serializers

from capacity import CapacityEventType, CapacityStatus
from dispatch import TimeRange
from pricing import DeliveryType


class PriceRequestSerializer(serializers.Serializer):
    restaurant_id = serializers.CharField()
    zone_id = serializers.CharField()
    order_value = serializers.FloatField()
    delivery_type = serializers.ChoiceField(
        choices=[t.value for t in DeliveryType], default=DeliveryType.DELIVERY.value
    )

    def validate_order_value(self, value):
        if value <= 0:
            raise serializers.ValidationError("order_value must be greater than 0")
        return value


class AutomaticAssignmentSerializer(serializers.Serializer):
    order_id = serializers.CharField()
    # looked up from the order when missing
    restaurant_id = serializers.CharField(required=False)
    admin_id = serializers.CharField(required=False)


class ManualAssignmentSerializer(serializers.Serializer):
    order_id = serializers.CharField()
    rider_id = serializers.CharField()
    admin_id = serializers.CharField()


class AnalyticsQuerySerializer(serializers.Serializer):
    time_range = serializers.ChoiceField(choices=[r.value for r in TimeRange], default=TimeRange.DAY.value)
    admin_id = serializers.CharField()


class ManualStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[s.value for s in CapacityStatus])
    reason = serializers.CharField(allow_blank=True, default="")
    duration_hours = serializers.FloatField(required=False, min_value=0.01)


class CapacitySettingsSerializer(serializers.Serializer):
    busy_threshold = serializers.IntegerField(required=False, min_value=1)
    auto_reject_threshold = serializers.IntegerField(required=False, min_value=1)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Provide busy_threshold and/or auto_reject_threshold")
        busy = attrs.get("busy_threshold")
        reject = attrs.get("auto_reject_threshold")
        if busy is not None and reject is not None and busy > reject:
            raise serializers.ValidationError("busy_threshold must not exceed auto_reject_threshold")
        return attrs


class CapacityEventSerializer(serializers.Serializer):
    event_type = serializers.ChoiceField(choices=[e.value for e in CapacityEventType])
