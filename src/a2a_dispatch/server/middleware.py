import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request


logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = 'X-Request-ID'
CORRELATION_ID_HEADER = 'X-Correlation-ID'


def get_request_id(request: Request) -> str | None:
    """Returns the request id assigned by `RequestIdMiddleware`, if any."""
    return getattr(request.state, 'request_id', None)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tags every request with an id and logs its outcome.

    An incoming `X-Request-ID` or `X-Correlation-ID` header is reused;
    otherwise a new uuid4 is generated. The id is stored on
    `request.state.request_id` and echoed in the response headers.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = (
            request.headers.get(REQUEST_ID_HEADER)
            or request.headers.get(CORRELATION_ID_HEADER)
            or str(uuid.uuid4())
        )
        request.state.request_id = request_id
        client_host = request.client.host if request.client else 'unknown'
        logger.info(
            f'[{request_id}] {request.method} {request.url.path} from {client_host}'
        )

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            f'[{request_id}] {request.method} {request.url.path} '
            f'{response.status_code} - {duration_ms:.1f}ms',
        )
        return response
