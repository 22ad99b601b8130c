from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse

logger = logging.getLogger("payssd.request")


def handle_404(request: HttpRequest, exception=None) -> JsonResponse:
    return JsonResponse(
        {"success": False, "data": {}, "error": {"message": "Not found."}},
        status=404,
    )


def handle_500(request: HttpRequest) -> JsonResponse:
    logger.error(
        "server_error",
        extra={"status_code": 500, "error_code": "server_error", "path": request.path},
    )
    return JsonResponse(
        {"success": False, "data": {}, "error": {"message": "Something went wrong. Please try again."}},
        status=500,
    )
