import logging

from django.contrib.auth import get_user_model

from api.models import Kiosk
from bookings.models import AuditLog

logger = logging.getLogger(__name__)

BOOKING_AUDIT_FIELDS = (
    'status', 'start_time', 'end_time', 'staff_id', 'secondary_staff_id',
    'resource_id', 'check_in_time', 'no_show_penalty_amount',
)


def booking_snapshot(booking, fields=BOOKING_AUDIT_FIELDS):
    return {f: getattr(booking, f) for f in fields}


def actor_label(user=None, actor=None):
    if actor:
        return actor
    if isinstance(user, Kiosk):
        return f"kiosk:{user.pk}"
    if isinstance(user, get_user_model()):
        return user.email
    return "system"


def record_audit(entity_type, entity_id, action, old_values=None, new_values=None, user=None, actor=None):
    """Append an immutable audit entry. `user` may be a User, a Kiosk or None."""
    entry = AuditLog.objects.create(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        old_values=old_values,
        new_values=new_values,
        performed_by=user if isinstance(user, get_user_model()) else None,
        actor=actor_label(user, actor),
    )
    logger.debug("Audit %s:%s %s by %s", entity_type, entity_id, action, entry.actor)
    return entry
