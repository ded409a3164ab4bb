# bookings/models.py

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.db.models import Q, F
from django.utils import timezone

from api.models import Customer, Location, Resource, Service, Staff


class Booking(models.Model):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('no_show', 'No Show'),
    ]
    SOURCE_CHOICES = [
        ('online', 'Online'),
        ('kiosk', 'Kiosk'),
        ('walk_in', 'Walk-in'),
        ('staff', 'Staff'),
    ]
    # Statuses that occupy staff and resources
    ACTIVE_STATUSES = ('pending', 'confirmed', 'completed', 'no_show')
    TERMINAL_STATUSES = ('completed', 'cancelled', 'no_show')
    ALLOWED_TRANSITIONS = {
        'pending': ('confirmed', 'cancelled', 'completed', 'no_show'),
        'confirmed': ('completed', 'cancelled', 'no_show'),
        'completed': (),
        'cancelled': (),
        'no_show': (),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    short_id = models.CharField(max_length=6, unique=True, help_text="Public booking reference")

    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name='bookings')
    location = models.ForeignKey(Location, on_delete=models.PROTECT, related_name='bookings')
    service = models.ForeignKey(Service, on_delete=models.PROTECT, related_name='bookings')
    staff = models.ForeignKey(
        Staff, on_delete=models.PROTECT, null=True, blank=True, related_name='bookings'
    )
    secondary_staff = models.ForeignKey(
        Staff, on_delete=models.PROTECT, null=True, blank=True, related_name='secondary_bookings'
    )
    resource = models.ForeignKey(
        Resource, on_delete=models.PROTECT, null=True, blank=True, related_name='bookings'
    )

    start_time = models.DateTimeField(db_index=True)
    end_time = models.DateTimeField()
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default='pending')
    source = models.CharField(max_length=10, choices=SOURCE_CHOICES, default='online')

    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    deposit_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    is_paid = models.BooleanField(default=False)
    no_show_penalty_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    no_show_penalty_waived_by = models.ForeignKey(
        Staff, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )

    check_in_time = models.DateTimeField(null=True, blank=True)
    check_in_staff = models.ForeignKey(
        Staff, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['start_time']
        indexes = [
            models.Index(fields=['location', 'start_time', 'end_time'], name='booking_location_window_idx'),
            models.Index(fields=['staff', 'start_time'], name='booking_staff_start_idx'),
            models.Index(fields=['resource', 'start_time'], name='booking_resource_start_idx'),
            models.Index(fields=['status', 'start_time'], name='booking_status_start_idx'),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(end_time__gt=F('start_time')), name='booking_end_after_start'),
            models.CheckConstraint(
                condition=Q(secondary_staff__isnull=True) | ~Q(secondary_staff=F('staff')),
                name='booking_distinct_artists'
            ),
        ]

    def __str__(self):
        try:
            dt = timezone.localtime(self.start_time)
        except Exception:
            dt = self.start_time
        return f"Booking {self.short_id} @ {dt:%Y-%m-%d %H:%M} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def can_transition_to(self, new_status):
        return new_status in self.ALLOWED_TRANSITIONS.get(self.status, ())


class AuditLog(models.Model):
    """Append-only record of changes to scheduling entities."""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('reschedule', 'Reschedule'),
        ('check_in', 'Check-in'),
        ('no_show', 'No-show'),
        ('assign', 'Assign'),
        ('delete', 'Delete'),
    ]

    entity_type = models.CharField(max_length=50)
    entity_id = models.CharField(max_length=64, db_index=True)
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    old_values = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    new_values = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True, blank=True,
        related_name='audit_entries'
    )
    # "system", "cron", "kiosk:<id>" or the user's email
    actor = models.CharField(max_length=255, default="system")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id'], name='audit_entity_idx'),
        ]

    def __str__(self):
        return f"{self.entity_type}:{self.entity_id} {self.action} by {self.actor}"

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            raise ValidationError("Audit log entries are immutable.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Audit log entries are immutable.")
