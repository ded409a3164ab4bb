# bookings/serializers.py

from rest_framework import serializers

from api.serializers import (
    CommaSeparatedIntegerField, CustomerSummarySerializer, ResourceSerializer,
    ServiceSummarySerializer, StaffSummarySerializer,
)
from api.utils.timezone_helpers import location_tz
from .models import AuditLog, Booking


class BookingSerializer(serializers.ModelSerializer):
    customer = CustomerSummarySerializer(read_only=True)
    service = ServiceSummarySerializer(read_only=True)
    staff = StaffSummarySerializer(read_only=True)
    secondary_staff = StaffSummarySerializer(read_only=True)
    resource = ResourceSerializer(read_only=True)
    local_start_time = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            'id', 'short_id', 'location_id', 'customer', 'service', 'staff', 'secondary_staff',
            'resource', 'start_time', 'end_time', 'local_start_time', 'status', 'source',
            'total_amount', 'deposit_amount', 'is_paid', 'no_show_penalty_amount',
            'check_in_time', 'notes', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_local_start_time(self, obj):
        return obj.start_time.astimezone(location_tz(obj.location)).isoformat()


class BookingCreatedSerializer(serializers.ModelSerializer):
    """Response of the booking creation flows."""
    booking_id = serializers.UUIDField(source='id', read_only=True)

    class Meta:
        model = Booking
        fields = [
            'booking_id', 'short_id', 'staff_id', 'secondary_staff_id', 'resource_id',
            'start_time', 'end_time', 'status', 'total_amount', 'deposit_amount',
        ]
        read_only_fields = fields


class CustomerFieldsMixin(serializers.Serializer):
    customer_email = serializers.EmailField()
    customer_first_name = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    customer_last_name = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    customer_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")


class BookingCreateSerializer(CustomerFieldsMixin):
    location_id = serializers.IntegerField()
    service_id = serializers.IntegerField()
    start_time = serializers.DateTimeField()
    staff_id = serializers.IntegerField(required=False, allow_null=True)
    resource_id = serializers.IntegerField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class KioskBookingSerializer(CustomerFieldsMixin):
    """The kiosk's own location is used; no location_id."""
    service_id = serializers.IntegerField()
    start_time = serializers.DateTimeField()
    staff_id = serializers.IntegerField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class WalkInSerializer(CustomerFieldsMixin):
    service_id = serializers.IntegerField()
    staff_id = serializers.IntegerField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Booking.STATUS_CHOICES)


class RescheduleSerializer(serializers.Serializer):
    new_start_time = serializers.DateTimeField()
    staff_id = serializers.IntegerField(required=False, allow_null=True)
    resource_id = serializers.IntegerField(required=False, allow_null=True)


class CheckInSerializer(serializers.Serializer):
    booking_id = serializers.UUIDField()
    staff_id = serializers.IntegerField()


class NoShowSerializer(serializers.Serializer):
    booking_id = serializers.UUIDField()
    override_by = serializers.IntegerField(required=False, allow_null=True)


class AutoAssignSerializer(serializers.Serializer):
    booking_id = serializers.UUIDField()
    exclude_staff_ids = CommaSeparatedIntegerField(required=False, default=list)


class KioskLookupSerializer(serializers.Serializer):
    short_id = serializers.CharField(max_length=6, required=False)
    date = serializers.DateField(required=False)

    def validate(self, attrs):
        if not attrs.get('short_id') and not attrs.get('date'):
            raise serializers.ValidationError("Provide short_id or date.")
        return attrs


class CalendarQuerySerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    location_ids = CommaSeparatedIntegerField(required=False, default=list)
    staff_ids = CommaSeparatedIntegerField(required=False, default=list)
    statuses = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_statuses(self, value):
        statuses = [s.strip() for s in value.split(",") if s.strip()]
        valid = dict(Booking.STATUS_CHOICES)
        unknown = [s for s in statuses if s not in valid]
        if unknown:
            raise serializers.ValidationError(f"Unknown status: {', '.join(unknown)}")
        return statuses

    def validate(self, attrs):
        if attrs['end_date'] < attrs['start_date']:
            raise serializers.ValidationError({"end_date": "Must not be before start_date."})
        if (attrs['end_date'] - attrs['start_date']).days > 62:
            raise serializers.ValidationError({"end_date": "Range is limited to 62 days."})
        return attrs


class AuditLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLog
        fields = ['id', 'entity_type', 'entity_id', 'action', 'old_values', 'new_values', 'actor', 'created_at']
        read_only_fields = fields
