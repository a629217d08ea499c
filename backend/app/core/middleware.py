"""
Request Middleware
Request id propagation, access logging and the JSON 500 fallback.
"""
import time
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.logging import (
    api_logger,
    clear_request_context,
    generate_request_id,
    get_request_id,
    request_start_var,
    set_request_id,
)

REQUEST_ID_HEADER = 'X-Request-ID'

# Probes are polled constantly; keep them out of the access log
_PROBE_PATHS = ('/health', '/healthz', '/readyz')


def internal_error_response(request_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={'detail': 'Internal server error', 'request_id': request_id},
        headers={REQUEST_ID_HEADER: request_id},
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id, time it and log one summary line."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        set_request_id(request_id)
        request_start_var.set(time.time())
        request.state.request_id = request_id

        route = f"{request.method} {request.url.path}"
        is_probe = request.url.path.endswith(_PROBE_PATHS)

        try:
            response = await call_next(request)
        except Exception as e:
            api_logger.error(f"{route} -> 500 (unhandled)", error=e)
            return internal_error_response(request_id)
        else:
            response.headers[REQUEST_ID_HEADER] = request_id
            if not is_probe:
                if response.status_code >= 400:
                    api_logger.warning(f"{route} -> {response.status_code}", status=response.status_code)
                else:
                    api_logger.info(f"{route} -> {response.status_code}", status=response.status_code)
            return response
        finally:
            clear_request_context()


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, 'request_id', None) or get_request_id() or 'unknown'
    api_logger.error(f"Unhandled exception in {request.method} {request.url.path}", error=exc)
    return internal_error_response(request_id)
