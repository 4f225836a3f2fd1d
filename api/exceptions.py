"""Map domain errors onto DRF responses."""
from __future__ import annotations

import logging

from django.db import InterfaceError, OperationalError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from config.exceptions import CoursedeskError, DependencyError

logger = logging.getLogger(__name__)


def _view_name(context) -> str:
    return context.get("view").__class__.__name__


def coursedesk_exception_handler(exc, context):
    if isinstance(exc, (OperationalError, InterfaceError)):
        # Store failure that escaped every guard, e.g. while rendering a page
        logger.warning("Unguarded store failure in %s: %s", _view_name(context), exc)
        exc = DependencyError()
    if isinstance(exc, CoursedeskError):
        if isinstance(exc, DependencyError):
            logger.warning("Dependency failure in %s: %s", _view_name(context), exc.detail)
        return Response({"detail": exc.detail, "code": exc.code}, status=exc.status_code)
    # Django's PermissionDenied and Http404 are converted by DRF itself
    return exception_handler(exc, context)
