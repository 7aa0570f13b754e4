from .request_trace import RequestTraceMiddleware
