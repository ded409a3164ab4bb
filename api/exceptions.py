# api/exceptions.py
"""
Scheduling error taxonomy and the DRF exception handler that renders it.

Every user-facing failure is returned as
    {"success": false, "code": "<STABLE_CODE>", "detail": "<message>"}
"""
import logging

from django.core.exceptions import ObjectDoesNotExist
from django.db import DatabaseError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class SchedulingError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Scheduling request failed."
    default_code = "SCHEDULING_ERROR"

    @property
    def code(self):
        return self.default_code


class ValidationError(SchedulingError):
    """Missing or malformed input. Not retryable."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request."
    default_code = "VALIDATION_ERROR"


class NotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "NOT_FOUND"


class ConflictError(SchedulingError):
    """The requested time slot is taken. The caller may pick another slot."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Requested time slot is not available."
    default_code = "SLOT_UNAVAILABLE"


class AssignmentExhaustedError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "No eligible staff or resource is available."
    default_code = "NO_AVAILABILITY"


class TransientInfrastructureError(SchedulingError):
    """Data store failure. Nothing was committed, so the whole operation can be retried."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Temporary failure, please retry."
    default_code = "TRANSIENT_ERROR"


class UnauthorizedError(SchedulingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication credentials were not provided."
    default_code = "UNAUTHORIZED"


class ForbiddenError(SchedulingError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Invalid credentials."
    default_code = "FORBIDDEN"



def error_payload(code, detail):
    return {"success": False, "code": code, "detail": detail}


def scheduling_exception_handler(exc, context):
    view = context.get("view")
    view_name = view.__class__.__name__ if view is not None else "unknown"

    if isinstance(exc, SchedulingError):
        if isinstance(exc, TransientInfrastructureError):
            logger.warning("[%s] transient failure: %s", view_name, exc.detail)
        return Response(error_payload(exc.code, str(exc.detail)), status=exc.status_code)

    if isinstance(exc, ObjectDoesNotExist):
        return Response(error_payload("NOT_FOUND", "Not found."), status=status.HTTP_404_NOT_FOUND)

    if isinstance(exc, DatabaseError):
        logger.exception("[%s] database error", view_name)
        err = TransientInfrastructureError()
        return Response(error_payload(err.code, str(err.detail)), status=err.status_code)

    response = exception_handler(exc, context)
    if response is not None:
        if isinstance(exc, Http404):
            response.data = error_payload("NOT_FOUND", "Not found.")
        elif isinstance(response.data, dict) and "detail" in response.data:
            code = getattr(exc, "default_code", "error")
            response.data = error_payload(str(code).upper(), str(response.data["detail"]))
        else:
            # serializer field errors keep their per-field shape
            response.data = {"success": False, "code": "VALIDATION_ERROR", "errors": response.data}
        return response

    logger.exception("[%s] unhandled error", view_name)
    return Response(
        error_payload("INTERNAL_ERROR", "An unexpected error occurred."),
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
