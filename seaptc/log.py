"""
seaptc/log.py
Logging setup with per-request trace prefixes.

Locally each request is numbered and the number prefixes its log lines. On App
Engine, records are written as one-line JSON understood by Cloud Logging, tied
to the request's trace from the X-Cloud-Trace-Context header.
"""
import itertools
import json
import logging
import sys
from contextvars import ContextVar
from typing import Optional

trace_var: ContextVar[str] = ContextVar("trace", default="")

_request_counter = itertools.count(1)


def trace_for_request(trace_header: Optional[str], project_id: str, structured: bool) -> str:
    if structured:
        if trace_header:
            i = trace_header.find("/")
            if i > 0:
                return f"projects/{project_id}/traces/{trace_header[:i]}"
        return ""
    return f"{next(_request_counter):08d}: "


class TraceFilter(logging.Filter):
    """Attach the current request trace to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace = trace_var.get()
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per line with message, severity and trace."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        entry = {
            "message": message,
            "severity": record.levelname,
        }
        trace = getattr(record, "trace", "")
        if trace:
            entry["logging.googleapis.com/trace"] = trace
        return json.dumps(entry)


def configure_logging(level: str = "INFO", structured: bool = False) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(TraceFilter())
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(trace)s%(message)s"
        ))
    logging.basicConfig(level=level, handlers=[handler], force=True)
