from rest_framework import serializers

from .costs import CostSettings, DEFAULT_EXCHANGE_RATE
from .driver_rules import MAX_PURE_DRIVING_HOURS, REDUCED_DAILY_REST_HOURS, REGULAR_DAILY_REST_HOURS
from .models import TruckProfile
from .road_types import InvalidSpeed, resolve_speeds

DAILY_REST_CHOICES = [REDUCED_DAILY_REST_HOURS, REGULAR_DAILY_REST_HOURS]
_COST_DEFAULTS = CostSettings()


def parse_coordinate_pair(raw_value: str, field_name: str):
    """
    Returns {'lat', 'lng', 'label'} when raw_value looks like 'lat,lng',
    otherwise None so the caller can geocode it as an address.
    """
    value = (raw_value or "").strip()
    parts = [p.strip() for p in value.split(",")]
    if len(parts) != 2:
        return None

    try:
        lat = float(parts[0])
        lng = float(parts[1])
    except (TypeError, ValueError):
        return None

    if lat < -90 or lat > 90 or lng < -180 or lng > 180:
        raise serializers.ValidationError(
            f"{field_name} coordinates out of range (lat -90..90, lng -180..180)."
        )

    return {"lat": lat, "lng": lng, "label": f"{lat:.4f}, {lng:.4f}"}


class DriverPolicySerializer(serializers.Serializer):
    allow_extended_driving = serializers.BooleanField(default=False)
    daily_rest_duration = serializers.FloatField(default=REGULAR_DAILY_REST_HOURS)

    def validate_daily_rest_duration(self, value):
        if value not in DAILY_REST_CHOICES:
            raise serializers.ValidationError(
                f"Must be one of: {', '.join(f'{choice:g}' for choice in DAILY_REST_CHOICES)} hours."
            )
        return value


class DeliveryPlanRequestSerializer(DriverPolicySerializer):
    start_location = serializers.CharField()
    end_location = serializers.CharField()
    speeds = serializers.DictField(
        child=serializers.FloatField(),
        required=False,
        default=dict,
    )

    def validate_start_location(self, value):
        parse_coordinate_pair(value, "start_location")
        return value.strip()

    def validate_end_location(self, value):
        parse_coordinate_pair(value, "end_location")
        return value.strip()

    def validate_speeds(self, value):
        try:
            return resolve_speeds(value)
        except InvalidSpeed as exc:
            raise serializers.ValidationError(str(exc)) from exc


class DrivingTimeRequestSerializer(DriverPolicySerializer):
    pure_driving_hours = serializers.FloatField(min_value=0, max_value=MAX_PURE_DRIVING_HOURS)


class CostEstimateRequestSerializer(serializers.Serializer):
    distance_km = serializers.FloatField(min_value=0)
    freight_value = serializers.FloatField(min_value=0)
    is_rate_per_km = serializers.BooleanField(default=False)
    is_eur = serializers.BooleanField(default=False)
    exchange_rate = serializers.FloatField(min_value=0, default=DEFAULT_EXCHANGE_RATE)
    fuel_price = serializers.FloatField(min_value=0, default=_COST_DEFAULTS.fuel_price)
    consumption = serializers.FloatField(min_value=0, default=_COST_DEFAULTS.consumption)
    toll_rate = serializers.FloatField(min_value=0, default=_COST_DEFAULTS.toll_rate)
    maintenance_rate = serializers.FloatField(min_value=0, default=_COST_DEFAULTS.maintenance_rate)
    cit_rate = serializers.FloatField(min_value=0, max_value=1, default=_COST_DEFAULTS.cit_rate)
    save_to_history = serializers.BooleanField(default=False)
    start_location = serializers.CharField(required=False, allow_blank=True, default="")
    end_location = serializers.CharField(required=False, allow_blank=True, default="")
    route_date = serializers.DateField(required=False, allow_null=True, default=None)
    truck_name = serializers.CharField(required=False, allow_blank=True, max_length=100, default="")
    truck_plate = serializers.CharField(required=False, allow_blank=True, max_length=20, default="")
    truck_id = serializers.IntegerField(required=False, allow_null=True, default=None)

    def validate(self, attrs):
        truck_id = attrs.pop("truck_id")
        attrs["truck"] = None
        if truck_id is not None:
            truck = TruckProfile.objects.filter(pk=truck_id).first()
            if truck is None:
                raise serializers.ValidationError({"truck_id": f"No truck profile with id {truck_id}."})
            # A selected truck supplies its own running costs and identity.
            attrs.update(
                truck=truck,
                consumption=truck.consumption,
                toll_rate=truck.toll_rate,
                maintenance_rate=truck.maintenance_rate,
                truck_name=truck.name,
                truck_plate=truck.plate,
            )
        if attrs["is_eur"] and attrs["exchange_rate"] <= 0:
            raise serializers.ValidationError(
                {"exchange_rate": "Must be greater than 0 when the freight is quoted in EUR."}
            )
        return attrs

    def cost_settings(self) -> CostSettings:
        data = self.validated_data
        return CostSettings(
            fuel_price=data["fuel_price"],
            consumption=data["consumption"],
            toll_rate=data["toll_rate"],
            maintenance_rate=data["maintenance_rate"],
            cit_rate=data["cit_rate"],
        )


class ReverseGeocodeRequestSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)


class TruckProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = TruckProfile
        fields = ["id", "name", "plate", "power", "consumption", "toll_rate", "maintenance_rate"]
