from django.urls import path

from .views import (
    BookingCreateView,
    BookingDetailView,
    CheckInView,
    CronDetectNoShowsView,
    NoShowView,
    RescheduleView,
)

urlpatterns = [
    path('bookings/', BookingCreateView.as_view(), name='booking-create'),
    path('bookings/<uuid:booking_id>/', BookingDetailView.as_view(), name='booking-detail'),
    path('aperture/bookings/<uuid:booking_id>/reschedule/', RescheduleView.as_view(), name='booking-reschedule'),
    path('aperture/bookings/check-in/', CheckInView.as_view(), name='booking-check-in'),
    path('aperture/bookings/no-show/', NoShowView.as_view(), name='booking-no-show'),
    path('cron/detect-no-shows/', CronDetectNoShowsView.as_view(), name='cron-detect-no-shows'),
]
