# api/serializers.py

from rest_framework import serializers

from .models import (
    BookingBlock, Customer, Location, Resource, Service, Staff, StaffAvailability,
)
from .utils.business_hours import parse_hhmm
from .models import DAY_KEYS


class LocationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Location
        fields = ['id', 'name', 'address', 'timezone', 'business_hours', 'is_active']

    def validate_business_hours(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Must be an object keyed by weekday.")
        for day, entry in value.items():
            if day not in DAY_KEYS:
                raise serializers.ValidationError(f"Unknown day '{day}'.")
            if entry.get("is_closed"):
                continue
            try:
                if parse_hhmm(entry["close"]) <= parse_hhmm(entry["open"]):
                    raise serializers.ValidationError(f"{day}: close must be after open.")
            except (KeyError, ValueError):
                raise serializers.ValidationError(f"{day}: open/close must be HH:MM.")
        return value


class CustomerSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ['id', 'first_name', 'last_name', 'email', 'phone']


class ServiceSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Service
        fields = ['id', 'name', 'duration_minutes', 'base_price', 'requires_dual_artist']


class StaffSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Staff
        fields = ['id', 'display_name', 'role', 'location_id']


class ResourceSerializer(serializers.ModelSerializer):
    priority = serializers.IntegerField(read_only=True)

    class Meta:
        model = Resource
        fields = ['id', 'name', 'type', 'capacity', 'location_id', 'priority']


class StaffAvailabilitySerializer(serializers.ModelSerializer):
    staff_id = serializers.PrimaryKeyRelatedField(
        source='staff', queryset=Staff.objects.filter(is_active=True)
    )

    class Meta:
        model = StaffAvailability
        fields = ['id', 'staff_id', 'date', 'start_time', 'end_time', 'is_available', 'reason', 'created_at']
        read_only_fields = ['id', 'is_available', 'created_at']

    def validate(self, attrs):
        if attrs['end_time'] <= attrs['start_time']:
            raise serializers.ValidationError({"end_time": "Must be after start_time."})
        overlapping = StaffAvailability.objects.filter(
            staff=attrs['staff'],
            date=attrs['date'],
            is_available=False,
            start_time__lt=attrs['end_time'],
            end_time__gt=attrs['start_time'],
        )
        if overlapping.exists():
            raise serializers.ValidationError("Staff member is already marked unavailable in this window.")
        return attrs


class BookingBlockSerializer(serializers.ModelSerializer):
    location_id = serializers.PrimaryKeyRelatedField(source='location', queryset=Location.objects.all())
    resource_id = serializers.PrimaryKeyRelatedField(
        source='resource', queryset=Resource.objects.all(), required=False, allow_null=True
    )

    class Meta:
        model = BookingBlock
        fields = ['id', 'location_id', 'resource_id', 'start_time', 'end_time', 'reason', 'created_at']
        read_only_fields = ['id', 'created_at']

    def validate(self, attrs):
        if attrs['end_time'] <= attrs['start_time']:
            raise serializers.ValidationError({"end_time": "Must be after start_time."})
        resource = attrs.get('resource')
        if resource is not None and resource.location_id != attrs['location'].id:
            raise serializers.ValidationError({"resource_id": "Resource belongs to another location."})
        return attrs


# ------------------------------------------------------------------
# Query parameter serializers
# ------------------------------------------------------------------

class CommaSeparatedIntegerField(serializers.Field):
    """'1,2,3' (or a repeated list) -> [1, 2, 3]"""

    def to_internal_value(self, data):
        if isinstance(data, (list, tuple)):
            parts = data
        else:
            parts = str(data).split(",")
        try:
            return [int(p) for p in parts if str(p).strip()]
        except ValueError:
            raise serializers.ValidationError("Must be a comma-separated list of ids.")

    def to_representation(self, value):
        return ",".join(str(v) for v in value)


class TimeSlotsQuerySerializer(serializers.Serializer):
    location_id = serializers.IntegerField()
    date = serializers.DateField()
    service_id = serializers.IntegerField(required=False)
    time_slot_duration_minutes = serializers.IntegerField(required=False, min_value=5, max_value=24 * 60)


class WindowQuerySerializer(serializers.Serializer):
    location_id = serializers.IntegerField()
    start_time_utc = serializers.DateTimeField()
    end_time_utc = serializers.DateTimeField()
    service_id = serializers.IntegerField(required=False)
    resource_type = serializers.ChoiceField(choices=Resource.TYPE_CHOICES, required=False)

    def validate(self, attrs):
        if attrs['end_time_utc'] <= attrs['start_time_utc']:
            raise serializers.ValidationError({"end_time_utc": "Must be after start_time_utc."})
        return attrs


class LocationDateQuerySerializer(serializers.Serializer):
    location_id = serializers.IntegerField()
    date = serializers.DateField(required=False)


class UnavailabilityQuerySerializer(serializers.Serializer):
    staff_id = serializers.IntegerField(required=False)
    location_id = serializers.IntegerField(required=False)
    date = serializers.DateField(required=False)

    def validate(self, attrs):
        if not attrs.get('staff_id') and not attrs.get('location_id'):
            raise serializers.ValidationError("Provide staff_id or location_id.")
        return attrs


class IdSerializer(serializers.Serializer):
    id = serializers.IntegerField()
