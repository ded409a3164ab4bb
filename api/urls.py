from django.urls import path

from .availability_views import (
    AvailableResourcesView,
    AvailableStaffView,
    BookingBlocksView,
    StaffUnavailableView,
    TimeSlotsView,
)
from .calendar_views import AutoAssignView, CalendarView
from .kiosk_views import KioskBookingView, KioskWalkInView

urlpatterns = [
    # Availability
    path('availability/time-slots/', TimeSlotsView.as_view(), name='availability-time-slots'),
    path('availability/staff/', AvailableStaffView.as_view(), name='availability-staff'),
    path('availability/resources/', AvailableResourcesView.as_view(), name='availability-resources'),
    path('availability/staff-unavailable/', StaffUnavailableView.as_view(), name='availability-staff-unavailable'),
    path('availability/blocks/', BookingBlocksView.as_view(), name='availability-blocks'),

    # Calendar
    path('aperture/calendar/auto-assign/', AutoAssignView.as_view(), name='calendar-auto-assign'),
    path('aperture/calendar/', CalendarView.as_view(), name='calendar'),

    # Kiosk
    path('kiosk/bookings/', KioskBookingView.as_view(), name='kiosk-bookings'),
    path('kiosk/walkin/', KioskWalkInView.as_view(), name='kiosk-walkin'),
]
