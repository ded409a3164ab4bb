import logging

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from api.models import BookingBlock, Location, Service, StaffAvailability
from api.permissions import IsManagerRole, IsStaffMember
from api.serializers import (
    BookingBlockSerializer, IdSerializer, LocationDateQuerySerializer, ResourceSerializer,
    StaffAvailabilitySerializer, TimeSlotsQuerySerializer, UnavailabilityQuerySerializer,
    WindowQuerySerializer,
)
from api.utils.assignment import check_staff_availability, get_available_resources_with_priority
from api.utils.availability import get_detailed_availability
from api.utils.timezone_helpers import local_day_bounds_utc, location_tz, get_valid_iana_timezone, to_utc_iso

logger = logging.getLogger(__name__)


def _query(serializer_class, request):
    serializer = serializer_class(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


class TimeSlotsView(APIView):
    """
    Slot grid of a location for one local date.
    Query Params:
    - location_id (required)
    - date (required, YYYY-MM-DD, location-local)
    - service_id (optional; slot length follows the service duration)
    - time_slot_duration_minutes (optional; step between slot starts)
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request):
        params = _query(TimeSlotsQuerySerializer, request)
        location = get_object_or_404(Location, id=params['location_id'], is_active=True)
        service = None
        if params.get('service_id'):
            service = get_object_or_404(Service, id=params['service_id'], is_active=True)

        grid = get_detailed_availability(
            location, params['date'], service=service,
            slot_minutes=params.get('time_slot_duration_minutes'),
            not_before=timezone.now(),
        )
        tz = location_tz(location)
        slots = [
            {
                "start_time": to_utc_iso(slot.start),
                "end_time": to_utc_iso(slot.end),
                "local_time": slot.start.astimezone(tz).strftime("%H:%M"),
                "available_staff": slot.available_staff,
                "available_resources": slot.available_resources,
                "is_available": slot.is_available,
            }
            for slot in grid
        ]
        return Response({
            "success": True,
            "location_id": location.id,
            "date": params['date'].isoformat(),
            "timezone": get_valid_iana_timezone(location.timezone),
            "slots": slots,
        })


class AvailableStaffView(APIView):
    """
    Qualified staff that are on shift and free for [start_time_utc, end_time_utc),
    best match first.
    """
    permission_classes = [IsStaffMember]

    def get(self, request):
        params = _query(WindowQuerySerializer, request)
        location = get_object_or_404(Location, id=params['location_id'])
        service = None
        if params.get('service_id'):
            service = get_object_or_404(Service, id=params['service_id'])

        start, end = params['start_time_utc'], params['end_time_utc']
        ranked = check_staff_availability(location, start, end, service=service)
        return Response({
            "success": True,
            "start_time": to_utc_iso(start),
            "end_time": to_utc_iso(end),
            "staff": [s.as_dict() for s in ranked],
        })


class AvailableResourcesView(APIView):
    """Resources with spare capacity in the window, station > room > equipment."""
    permission_classes = [IsStaffMember]

    def get(self, request):
        params = _query(WindowQuerySerializer, request)
        location = get_object_or_404(Location, id=params['location_id'])
        types = [params['resource_type']] if params.get('resource_type') else None
        resources = get_available_resources_with_priority(
            location, params['start_time_utc'], params['end_time_utc'], types=types,
        )
        return Response({
            "success": True,
            "resources": ResourceSerializer(resources, many=True).data,
        })


class StaffUnavailableView(APIView):
    """
    GET  ?location_id=&date=  or  ?staff_id=   -> unavailability records
    POST {staff_id, date, start_time, end_time, reason}
    """
    permission_classes = [IsManagerRole]

    def get(self, request):
        params = _query(UnavailabilityQuerySerializer, request)
        qs = StaffAvailability.objects.filter(is_available=False).select_related('staff')
        if params.get('staff_id'):
            qs = qs.filter(staff_id=params['staff_id'])
        if params.get('location_id'):
            qs = qs.filter(staff__location_id=params['location_id'])
        if params.get('date'):
            qs = qs.filter(date=params['date'])
        return Response({"success": True, "results": StaffAvailabilitySerializer(qs, many=True).data})

    def post(self, request):
        serializer = StaffAvailabilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        record = serializer.save(is_available=False, created_by=request.user)
        logger.info(
            "Staff %s marked unavailable %s %s-%s by %s",
            record.staff_id, record.date, record.start_time, record.end_time, request.user.email,
        )
        return Response(
            {"success": True, "record": StaffAvailabilitySerializer(record).data},
            status=status.HTTP_201_CREATED,
        )


class BookingBlocksView(APIView):
    """
    GET    ?location_id=&date=   -> blocks touching that local date (all upcoming without date)
    POST   {location_id, resource_id?, start_time, end_time, reason}
    DELETE ?id=<block id>
    """
    permission_classes = [IsManagerRole]

    def get(self, request):
        params = _query(LocationDateQuerySerializer, request)
        location = get_object_or_404(Location, id=params['location_id'])
        qs = BookingBlock.objects.filter(location=location).select_related('resource')

        if params.get('date'):
            day_start, day_end = local_day_bounds_utc(params['date'], get_valid_iana_timezone(location.timezone))
            qs = qs.filter(start_time__lt=day_end, end_time__gt=day_start)
        else:
            qs = qs.filter(end_time__gt=timezone.now())
        return Response({"success": True, "results": BookingBlockSerializer(qs, many=True).data})

    def post(self, request):
        serializer = BookingBlockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        block = serializer.save(created_by=request.user)
        logger.info(
            "Block %s created at location %s (resource=%s) %s-%s",
            block.id, block.location_id, block.resource_id, block.start_time, block.end_time,
        )
        return Response(
            {"success": True, "block": BookingBlockSerializer(block).data},
            status=status.HTTP_201_CREATED,
        )

    def delete(self, request):
        serializer = IdSerializer(data={"id": request.query_params.get('id') or request.data.get('id')})
        serializer.is_valid(raise_exception=True)
        block_id = serializer.validated_data['id']
        block = get_object_or_404(BookingBlock, id=block_id)
        block.delete()
        logger.info("Block %s deleted by %s", block_id, request.user.email)
        return Response(status=status.HTTP_204_NO_CONTENT)
