"""
Error taxonomy shared by the card encoder and the request guard.

Rule violations are not exceptions: the guard reports them as verdicts.
The exceptions below are the faults that can interrupt a request, and
`api_exception_handler` turns the encoder ones into generic API responses
that never reveal whether a value was tampered with or corrupted.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Key material or guard policy is missing or invalid."""


class DecodeError(Exception):
    """An encoded field could not be decoded with the configured keys."""

    def __init__(self, message: str = "Encoded value could not be decoded."):
        super().__init__(message)


class GuardPersistenceError(Exception):
    """The guard state store could not be read or written."""


def api_exception_handler(exc, context):
    """
    DRF exception handler adding the encoder failures to the default mapping.

    Args:
        exc: Exception raised by the view
        context: DRF handler context (view, request, ...)

    Returns:
        Response or None when DRF should re-raise
    """
    view = context.get('view')
    view_name = type(view).__name__ if view is not None else 'unknown'

    if isinstance(exc, DecodeError):
        logger.error("Stored field could not be decoded in %s", view_name)
        return Response(
            {'detail': 'Could not process request.'},
            status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    if isinstance(exc, ConfigurationError):
        logger.error("Configuration error in %s: %s", view_name, exc)
        return Response(
            {'detail': 'Service temporarily unavailable.'},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return exception_handler(exc, context)
