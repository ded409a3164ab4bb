# api/kiosk_views.py
"""
Kiosk endpoints. A kiosk authenticates with its X-Kiosk-Api-Key header and
only ever books or looks up bookings at its own location.

    GET  /api/kiosk/bookings/   ?short_id=  or  ?date=   - look up bookings
    POST /api/kiosk/bookings/                            - book a later slot (pending, no deposit)
    POST /api/kiosk/walkin/                              - walk-in starting now (confirmed)
"""
import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from api.exceptions import NotFoundError
from api.models import Service, Staff
from api.permissions import IsKiosk, KioskAPIKeyAuthentication
from api.utils.timezone_helpers import get_valid_iana_timezone, local_day_bounds_utc
from bookings.models import Booking
from bookings.serializers import (
    BookingCreatedSerializer, BookingSerializer, KioskBookingSerializer, KioskLookupSerializer,
    WalkInSerializer,
)
from bookings.utils.booking_flow import create_booking, create_walk_in_booking, upsert_customer

logger = logging.getLogger(__name__)


def _kiosk_staff(kiosk, staff_id):
    if not staff_id:
        return None
    staff = Staff.objects.filter(id=staff_id, location=kiosk.location).first()
    if staff is None:
        raise NotFoundError("Staff member not found at this location.")
    return staff


def _customer_from(data):
    return upsert_customer(
        data['customer_email'], data['customer_first_name'],
        data['customer_last_name'], data['customer_phone'],
    )


class KioskBookingView(APIView):
    authentication_classes = [KioskAPIKeyAuthentication]
    permission_classes = [IsKiosk]

    def get(self, request):
        kiosk = request.user
        serializer = KioskLookupSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        params = serializer.validated_data

        qs = Booking.objects.filter(location=kiosk.location).select_related(
            'location', 'customer', 'service', 'staff', 'secondary_staff', 'resource'
        )
        if params.get('short_id'):
            qs = qs.filter(short_id=params['short_id'].upper())
        if params.get('date'):
            day_start, day_end = local_day_bounds_utc(
                params['date'], get_valid_iana_timezone(kiosk.location.timezone)
            )
            qs = qs.filter(start_time__gte=day_start, start_time__lt=day_end).exclude(status='cancelled')

        return Response({"success": True, "bookings": BookingSerializer(qs, many=True).data})

    def post(self, request):
        kiosk = request.user
        serializer = KioskBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        service = get_object_or_404(Service, id=data['service_id'])
        booking = create_booking(
            location=kiosk.location,
            service=service,
            start_time=data['start_time'],
            customer=_customer_from(data),
            staff=_kiosk_staff(kiosk, data.get('staff_id')),
            source="kiosk",
            status="pending",
            deposit_amount=0,
            notes=data['notes'],
            user=kiosk,
        )
        logger.info("Kiosk %s booked %s", kiosk.id, booking.short_id)
        return Response(
            {"success": True, "booking": BookingCreatedSerializer(booking).data},
            status=status.HTTP_201_CREATED,
        )


class KioskWalkInView(APIView):
    authentication_classes = [KioskAPIKeyAuthentication]
    permission_classes = [IsKiosk]

    def post(self, request):
        kiosk = request.user
        serializer = WalkInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        service = get_object_or_404(Service, id=data['service_id'])
        booking = create_walk_in_booking(
            location=kiosk.location,
            service=service,
            customer=_customer_from(data),
            staff=_kiosk_staff(kiosk, data.get('staff_id')),
            notes=data['notes'],
            user=kiosk,
        )
        logger.info("Kiosk %s registered walk-in %s", kiosk.id, booking.short_id)
        return Response(
            {"success": True, "booking": BookingCreatedSerializer(booking).data},
            status=status.HTTP_201_CREATED,
        )
