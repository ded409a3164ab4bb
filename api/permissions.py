import hmac
import logging

from django.conf import settings
from rest_framework import authentication, exceptions, permissions

from .exceptions import ForbiddenError, UnauthorizedError
from .models import Kiosk

logger = logging.getLogger(__name__)

MANAGER_ROLES = ('admin', 'manager')
STAFF_ROLES = ('admin', 'manager', 'staff', 'artist')


class IsManagerRole(permissions.BasePermission):
    """Admins and managers (and Django superusers)."""
    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated) or isinstance(user, Kiosk):
            return False
        return user.is_superuser or getattr(user, 'role', None) in MANAGER_ROLES


class IsStaffMember(permissions.BasePermission):
    """Any salon staff role: admin, manager, staff, artist."""
    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated) or isinstance(user, Kiosk):
            return False
        return user.is_superuser or getattr(user, 'role', None) in STAFF_ROLES


class IsKiosk(permissions.BasePermission):
    def has_permission(self, request, view):
        return isinstance(request.user, Kiosk)


class KioskAPIKeyAuthentication(authentication.BaseAuthentication):
    """
    Authenticates a kiosk device by the X-Kiosk-Api-Key header.
    request.user becomes the Kiosk row; request.auth the key.
    """
    header = 'HTTP_X_KIOSK_API_KEY'

    def authenticate(self, request):
        api_key = request.META.get(self.header)
        if not api_key:
            return None
        kiosk = Kiosk.objects.select_related('location').filter(api_key=api_key, is_active=True).first()
        if kiosk is None:
            logger.warning("Rejected kiosk request with unknown or inactive API key")
            raise exceptions.AuthenticationFailed("Invalid kiosk API key.")
        return (kiosk, api_key)

    def authenticate_header(self, request):
        return 'X-Kiosk-Api-Key'


def check_cron_secret(request):
    """
    Shared-secret check for cron-triggered endpoints:
    'Authorization: Bearer <CRON_SECRET>'. 401 when missing, 403 when wrong.
    """
    header = request.META.get('HTTP_AUTHORIZATION', '')
    if not header.startswith('Bearer ') or not header[len('Bearer '):].strip():
        raise UnauthorizedError("Missing cron authorization.")
    token = header[len('Bearer '):].strip()
    expected = settings.CRON_SECRET
    if not expected or not hmac.compare_digest(token, expected):
        logger.warning("Rejected cron request with invalid secret")
        raise ForbiddenError("Invalid cron secret.")
