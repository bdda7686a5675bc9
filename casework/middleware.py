import uuid

import structlog


class RequestLogContextMiddleware:
    """Bind a request id, method and path to every log line of a request.

    An incoming ``X-Request-ID`` header is reused; otherwise a new id is
    generated.  The id is echoed back in the response header.
    """
    HEADER = 'HTTP_X_REQUEST_ID'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = (request.META.get(self.HEADER) or '').strip()[:64] or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, method=request.method, path=request.path)
        try:
            response = self.get_response(request)
        finally:
            structlog.contextvars.clear_contextvars()
        response['X-Request-ID'] = request_id
        return response
