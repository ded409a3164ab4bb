import logging
import secrets
import string

from django.conf import settings

from api.exceptions import TransientInfrastructureError

logger = logging.getLogger(__name__)

SHORT_ID_ALPHABET = string.ascii_uppercase + string.digits
SHORT_ID_LENGTH = 6


def generate_short_id(max_attempts=None):
    """Random 6-char A-Z0-9 code not used by any booking yet."""
    from bookings.models import Booking

    attempts = max_attempts or settings.SHORT_ID_MAX_ATTEMPTS
    for _ in range(attempts):
        candidate = "".join(secrets.choice(SHORT_ID_ALPHABET) for _ in range(SHORT_ID_LENGTH))
        if not Booking.objects.filter(short_id=candidate).exists():
            return candidate
        logger.info("Short id collision on %s, retrying", candidate)

    logger.error("Could not generate a unique short id after %s attempts", attempts)
    raise TransientInfrastructureError("Could not generate a booking reference, please retry.")
