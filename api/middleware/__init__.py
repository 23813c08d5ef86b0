
from .request_id import RequestIDMiddleware, get_request_id, get_client_ip
from .logging import LoggingMiddleware
from .metrics import MetricsMiddleware

__all__ = [
    "RequestIDMiddleware",
    "LoggingMiddleware",
    "MetricsMiddleware",
    "get_request_id",
    "get_client_ip",
]
