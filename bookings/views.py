# bookings/views.py

import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from api.exceptions import NotFoundError
from api.models import Location, Resource, Service, Staff
from api.permissions import IsManagerRole, IsStaffMember, check_cron_secret
from .models import AuditLog
from .serializers import (
    AuditLogSerializer, BookingCreateSerializer, BookingCreatedSerializer, BookingSerializer,
    BookingStatusSerializer, CheckInSerializer, NoShowSerializer, RescheduleSerializer,
)
from .utils.booking_flow import create_booking, get_booking, update_booking_status, upsert_customer
from .utils.check_in import record_booking_checkin
from .utils.no_show import apply_no_show_penalty, detect_no_shows
from .utils.reschedule import RescheduleConflictError, reschedule_booking

logger = logging.getLogger(__name__)


def acting_user(request):
    user = request.user
    return user if user and user.is_authenticated else None


def optional_object(model, object_id, **filters):
    if object_id in (None, ""):
        return None
    try:
        return model.objects.get(id=object_id, **filters)
    except model.DoesNotExist:
        raise NotFoundError(f"{model._meta.verbose_name.capitalize()} not found.")


class BookingCreateView(APIView):
    """
    Public booking.
    The customer is matched by email (created if new); staff and resource are
    auto-assigned unless given. A deposit is computed from the service price.
    """
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        location = get_object_or_404(Location, id=data['location_id'])
        service = get_object_or_404(Service, id=data['service_id'])
        staff = optional_object(Staff, data.get('staff_id'))
        resource = optional_object(Resource, data.get('resource_id'))

        customer = upsert_customer(
            data['customer_email'], data['customer_first_name'],
            data['customer_last_name'], data['customer_phone'],
        )
        booking = create_booking(
            location=location,
            service=service,
            start_time=data['start_time'],
            customer=customer,
            staff=staff,
            resource=resource,
            source="online",
            notes=data['notes'],
            user=acting_user(request),
        )
        return Response(
            {"success": True, "booking": BookingCreatedSerializer(booking).data},
            status=status.HTTP_201_CREATED,
        )


class BookingDetailView(APIView):
    """
    GET   -> booking with its audit history (staff)
    PATCH -> {"status": "..."} lifecycle-checked status change (managers)
    """

    def get_permissions(self):
        if self.request.method == 'PATCH':
            return [IsManagerRole()]
        return [IsStaffMember()]

    def get(self, request, booking_id):
        booking = get_booking(booking_id)
        history = AuditLog.objects.filter(entity_type='booking', entity_id=str(booking.id))
        return Response({
            "success": True,
            "booking": BookingSerializer(booking).data,
            "history": AuditLogSerializer(history, many=True).data,
        })

    def patch(self, request, booking_id):
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = update_booking_status(booking_id, serializer.validated_data['status'], user=acting_user(request))
        return Response({"success": True, "booking": BookingSerializer(booking).data})


class RescheduleView(APIView):
    permission_classes = [IsManagerRole]

    def post(self, request, booking_id):
        serializer = RescheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            booking = reschedule_booking(
                booking_id,
                data['new_start_time'],
                staff_id=data.get('staff_id'),
                resource_id=data.get('resource_id'),
                user=acting_user(request),
            )
        except RescheduleConflictError as exc:
            return Response(
                {
                    "success": False,
                    "code": exc.code,
                    "detail": str(exc.detail),
                    "conflicts": [c.as_dict() for c in exc.conflicts],
                },
                status=exc.status_code,
            )
        return Response({"success": True, "booking": BookingSerializer(booking).data})


class CheckInView(APIView):
    permission_classes = [IsStaffMember]

    def post(self, request):
        serializer = CheckInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = record_booking_checkin(
            serializer.validated_data['booking_id'],
            serializer.validated_data['staff_id'],
            user=acting_user(request),
        )
        return Response({
            "success": True,
            "booking_id": str(booking.id),
            "status": booking.status,
            "check_in_time": booking.check_in_time,
        })


class NoShowView(APIView):
    """Mark a booking as no-show; `override_by` (admin/manager staff id) waives the penalty."""
    permission_classes = [IsManagerRole]

    def post(self, request):
        serializer = NoShowSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = apply_no_show_penalty(
            serializer.validated_data['booking_id'],
            override_by=serializer.validated_data.get('override_by'),
            user=acting_user(request),
        )
        return Response({
            "success": True,
            "booking_id": str(booking.id),
            "status": booking.status,
            "penalty_amount": booking.no_show_penalty_amount,
            "penalty_waived": booking.no_show_penalty_waived_by_id is not None,
        })


class CronDetectNoShowsView(APIView):
    """
    GET /api/cron/detect-no-shows/
    Authorization: Bearer <CRON_SECRET>
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request):
        check_cron_secret(request)
        result = detect_no_shows()
        return Response({"success": True, **result.as_dict()})
