# api/models.py

import secrets

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.conf import settings
from django.db.models import Q, F
import logging
logger = logging.getLogger(__name__)


DAY_KEYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def default_business_hours():
    """10:00-19:00 Monday to Saturday, closed on Sunday."""
    hours = {day: {"open": "10:00", "close": "19:00", "is_closed": False} for day in DAY_KEYS}
    hours["sunday"]["is_closed"] = True
    return hours


def generate_kiosk_api_key():
    return secrets.token_hex(24)


class Location(models.Model):
    name = models.CharField(max_length=255)
    address = models.TextField(blank=True, default="")
    timezone = models.CharField(
        max_length=64,
        default="UTC",
        help_text="IANA timezone of the location (e.g. 'America/Mexico_City')"
    )
    # keys: monday..sunday -> {"open": "HH:MM", "close": "HH:MM", "is_closed": bool}
    business_hours = models.JSONField(default=default_business_hours, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class Customer(models.Model):
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100, blank=True, default="")
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.first_name} {self.last_name}".strip() or self.email


class Service(models.Model):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    duration_minutes = models.PositiveIntegerField(default=60, validators=[MinValueValidator(1)])
    base_price = models.DecimalField(max_digits=10, decimal_places=2)
    premium_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    premium_fee_enabled = models.BooleanField(default=False)
    requires_dual_artist = models.BooleanField(
        default=False,
        help_text="Needs two artists at the same time plus a room"
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.duration_minutes} min)"


class Staff(models.Model):
    ROLE_CHOICES = [
        ('admin', 'Admin'),
        ('manager', 'Manager'),
        ('staff', 'Staff'),
        ('artist', 'Artist'),
        ('kiosk', 'Kiosk'),
    ]
    # Roles that can be put on a booking
    BOOKABLE_ROLES = ('manager', 'staff', 'artist')

    location = models.ForeignKey(Location, on_delete=models.PROTECT, related_name='staff')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='staff_profiles'
    )
    display_name = models.CharField(max_length=150)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='artist')
    services = models.ManyToManyField(Service, through='StaffService', related_name='staff_members', blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['display_name', 'id']
        verbose_name_plural = 'Staff'
        indexes = [
            models.Index(fields=['location', 'is_active'], name='staff_location_active_idx'),
        ]

    def __str__(self):
        return f"{self.display_name} ({self.role})"

    @property
    def is_bookable(self):
        return self.is_active and self.role in self.BOOKABLE_ROLES


class StaffService(models.Model):
    """Qualification of a staff member for a service, with a 1-5 proficiency."""
    staff = models.ForeignKey(Staff, on_delete=models.CASCADE, related_name='qualifications')
    service = models.ForeignKey(Service, on_delete=models.CASCADE, related_name='qualifications')
    proficiency_level = models.PositiveSmallIntegerField(
        default=3,
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        unique_together = ('staff', 'service')
        constraints = [
            models.CheckConstraint(
                condition=Q(proficiency_level__gte=1) & Q(proficiency_level__lte=5),
                name='staffservice_proficiency_1_5'
            ),
        ]

    def __str__(self):
        return f"{self.staff_id} -> {self.service_id} (L{self.proficiency_level})"


class Resource(models.Model):
    TYPE_CHOICES = [
        ('station', 'Station'),
        ('room', 'Room'),
        ('equipment', 'Equipment'),
    ]
    # Assignment preference: lower wins
    TYPE_PRIORITY = {'station': 1, 'room': 2, 'equipment': 3}

    location = models.ForeignKey(Location, on_delete=models.PROTECT, related_name='resources')
    name = models.CharField(max_length=150)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='station')
    capacity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name', 'id']
        constraints = [
            models.CheckConstraint(condition=Q(capacity__gte=1), name='resource_capacity_gte_1'),
        ]

    def __str__(self):
        return f"{self.name} [{self.type}]"

    @property
    def priority(self):
        return self.TYPE_PRIORITY.get(self.type, 99)


class StaffAvailability(models.Model):
    """
    A staff member's declared window on a date, in the location's local wall time.
    is_available=True is a shift; is_available=False blocks the window out.
    """
    staff = models.ForeignKey(Staff, on_delete=models.CASCADE, related_name='availability')
    date = models.DateField(db_index=True)
    start_time = models.TimeField()
    end_time = models.TimeField()
    is_available = models.BooleanField(default=True)
    reason = models.CharField(max_length=255, blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['date', 'start_time']
        verbose_name_plural = 'Staff availability'
        indexes = [
            models.Index(fields=['staff', 'date'], name='staffavail_staff_date_idx'),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(end_time__gt=F('start_time')), name='staffavailability_end_after_start'),
        ]

    def __str__(self):
        kind = "available" if self.is_available else "unavailable"
        return f"{self.staff_id} {self.date} {self.start_time:%H:%M}-{self.end_time:%H:%M} ({kind})"


class BookingBlock(models.Model):
    """Reserves a resource (or, with no resource, the whole location) outside the booking flow."""
    location = models.ForeignKey(Location, on_delete=models.CASCADE, related_name='booking_blocks')
    resource = models.ForeignKey(
        Resource,
        on_delete=models.CASCADE,
        null=True, blank=True,
        related_name='booking_blocks'
    )
    start_time = models.DateTimeField(db_index=True)
    end_time = models.DateTimeField()
    reason = models.CharField(max_length=255, blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['start_time']
        indexes = [
            models.Index(fields=['location', 'start_time', 'end_time'], name='block_location_window_idx'),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(end_time__gt=F('start_time')), name='bookingblock_end_after_start'),
        ]

    def __str__(self):
        target = self.resource.name if self.resource_id else "whole location"
        return f"Block {target} {self.start_time:%Y-%m-%d %H:%M}-{self.end_time:%H:%M}"


class Kiosk(models.Model):
    location = models.ForeignKey(Location, on_delete=models.CASCADE, related_name='kiosks')
    name = models.CharField(max_length=150)
    api_key = models.CharField(max_length=64, unique=True, default=generate_kiosk_api_key)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} @ {self.location_id}"

    # DRF permission checks call these on request.user
    @property
    def is_authenticated(self):
        return True

    @property
    def is_anonymous(self):
        return False


class ScheduleLock(models.Model):
    """
    One row per location per local date. Writers take it with select_for_update
    so the conflict check and the booking write happen as one unit.
    """
    location = models.ForeignKey(Location, on_delete=models.CASCADE, related_name='schedule_locks')
    date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('location', 'date')

    def __str__(self):
        return f"Lock {self.location_id} {self.date}"
