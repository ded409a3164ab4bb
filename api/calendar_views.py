from rest_framework.views import APIView
from rest_framework.response import Response
from django.db.models import Q
import logging

from api.models import Location, Staff
from api.permissions import IsManagerRole
from api.serializers import LocationSerializer, ResourceSerializer, StaffSummarySerializer
from api.utils.assignment import get_available_resources_with_priority, get_staff_assignment_suggestions
from api.utils.availability import build_day_index
from api.utils.timezone_helpers import get_valid_iana_timezone, local_day_bounds_utc
from bookings.models import Booking
from bookings.serializers import AutoAssignSerializer, BookingSerializer, CalendarQuerySerializer
from bookings.utils.booking_flow import auto_assign_staff_to_booking, get_booking

logger = logging.getLogger(__name__)


class CalendarView(APIView):
    """
    GET /api/aperture/calendar/
    Query Params:
    - start_date, end_date (required, YYYY-MM-DD, inclusive, location-local)
    - location_ids, staff_ids (optional, comma separated)
    - statuses (optional, comma separated)

    Returns bookings with customer/service/staff/resource summaries, the staff
    list and the locations with their business hours.
    """
    permission_classes = [IsManagerRole]

    def get(self, request):
        serializer = CalendarQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        params = serializer.validated_data

        locations = Location.objects.filter(is_active=True)
        if params['location_ids']:
            locations = locations.filter(id__in=params['location_ids'])
        locations = list(locations)

        # Each location's date range is bounded in its own timezone
        window = Q(pk__in=[])
        for location in locations:
            tz_id = get_valid_iana_timezone(location.timezone)
            range_start, _ = local_day_bounds_utc(params['start_date'], tz_id)
            _, range_end = local_day_bounds_utc(params['end_date'], tz_id)
            window |= Q(location=location, start_time__lt=range_end, end_time__gt=range_start)

        bookings = Booking.objects.filter(window).select_related(
            'location', 'customer', 'service', 'staff', 'secondary_staff', 'resource'
        )
        if params['staff_ids']:
            bookings = bookings.filter(
                Q(staff_id__in=params['staff_ids']) | Q(secondary_staff_id__in=params['staff_ids'])
            )
        if params['statuses']:
            bookings = bookings.filter(status__in=params['statuses'])

        staff = Staff.objects.filter(location__in=locations, is_active=True)
        if params['staff_ids']:
            staff = staff.filter(id__in=params['staff_ids'])

        return Response({
            "success": True,
            "bookings": BookingSerializer(bookings.order_by('start_time'), many=True).data,
            "staff": StaffSummarySerializer(staff, many=True).data,
            "locations": LocationSerializer(locations, many=True).data,
        })


class AutoAssignView(APIView):
    """
    GET  ?booking_id=&exclude_staff_ids=  -> ranked staff and resource suggestions
    POST {booking_id, exclude_staff_ids}  -> assign the best candidates to the booking
    """
    permission_classes = [IsManagerRole]

    def get(self, request):
        serializer = AutoAssignSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        booking = get_booking(serializer.validated_data['booking_id'])

        location = booking.location
        index = build_day_index(location, booking.start_time, booking.end_time, exclude_booking_id=booking.id)
        suggestions = get_staff_assignment_suggestions(
            location, booking.service, booking.start_time, booking.end_time,
            exclude_staff_ids=serializer.validated_data['exclude_staff_ids'],
            index=index,
        )
        resource_types = ['room'] if booking.service.requires_dual_artist else None
        resources = get_available_resources_with_priority(
            location, booking.start_time, booking.end_time, types=resource_types, index=index,
        )
        return Response({
            "success": True,
            "booking_id": str(booking.id),
            "staff": [s.as_dict() for s in suggestions],
            "resources": ResourceSerializer(resources, many=True).data,
        })

    def post(self, request):
        serializer = AutoAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking, result = auto_assign_staff_to_booking(
            serializer.validated_data['booking_id'],
            exclude_staff_ids=serializer.validated_data['exclude_staff_ids'],
            user=request.user,
        )
        return Response({"success": True, "booking": BookingSerializer(booking).data, **result.as_dict()})
