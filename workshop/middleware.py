import logging

from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

from .exceptions import WorkshopError

logger = logging.getLogger(__name__)


class WorkshopErrorMiddleware(MiddlewareMixin):
    """Render workflow errors raised inside views as JSON responses."""

    def process_exception(self, request, exception):
        if not isinstance(exception, WorkshopError):
            return None
        if exception.status_code >= 500:
            logger.error(f"{request.method} {request.path} failed: {exception.message}")
        else:
            logger.warning(f"{request.method} {request.path} rejected ({exception.code}): {exception.message}")
        return JsonResponse(exception.as_dict(), status=exception.status_code)
