# apps/core/exceptions.py
import logging

from rest_framework.views import exception_handler
from rest_framework import status
from rest_framework.exceptions import APIException

logger = logging.getLogger(__name__)

# DRF default messages ("This field is required.") get the field name prepended
GENERIC_PREFIX = "This field"
UNNAMED_KEYS = {'message', 'non_field_errors', 'detail'}


class InsufficientStockError(APIException):
    """Raised when a batch does not hold enough sub-units for an operation"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = {'message': 'Insufficient stock'}
    default_code = 'insufficient_stock'


class BusinessRuleViolationError(APIException):
    """Raised when a business rule is violated"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = {'message': 'Business rule violated'}
    default_code = 'business_rule_violation'


def _first_error_message(data, field=None):
    """
    Walk a DRF error structure and return the first message found.

    Dicts keep field declaration order, lists keep item order, so this is
    the message of the first failing field.
    """
    if isinstance(data, dict):
        for key, value in data.items():
            message = _first_error_message(value, None if key in UNNAMED_KEYS else key)
            if message:
                return message
        return None
    if isinstance(data, (list, tuple)):
        for value in data:
            message = _first_error_message(value, field)
            if message:
                return message
        return None
    if data is None:
        return None

    message = str(data)
    if field and message.startswith(GENERIC_PREFIX):
        return f"{field}: {message}"
    return message or None


def custom_exception_handler(exc, context):
    """Custom exception handler to return all errors in {message: ""} format"""
    response = exception_handler(exc, context)

    if response is None:
        return response

    if response.status_code == status.HTTP_400_BAD_REQUEST:
        message = _first_error_message(response.data) or "Invalid data"
    elif response.status_code == status.HTTP_401_UNAUTHORIZED:
        message = "Authentication required"
    elif response.status_code == status.HTTP_404_NOT_FOUND:
        message = "Not found"
    else:
        message = _first_error_message(response.data) or "Request failed"

    view = context.get('view')
    logger.info(
        f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: "
        f"{response.status_code} {message}"
    )
    response.data = {"message": message}
    return response
