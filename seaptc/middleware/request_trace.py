"""
seaptc/middleware/request_trace.py
Sets the logging trace for each request.
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from seaptc.log import trace_for_request, trace_var


class RequestTraceMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, project_id: str = "", structured: bool = False):
        super().__init__(app)
        self.project_id = project_id
        self.structured = structured

    async def dispatch(self, request: Request, call_next):
        trace = trace_for_request(
            request.headers.get("X-Cloud-Trace-Context"),
            self.project_id,
            self.structured,
        )
        token = trace_var.set(trace)
        try:
            return await call_next(request)
        finally:
            trace_var.reset(token)
