"""
HTTP request duration metrics
"""
import time
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


def route_template(template: Optional[str], path: str) -> str:
    """Full route template for ``path``, e.g. ``/api/v1/users/{user_id}``.

    Routes of an included router may report their template relative to the
    router prefix; the missing leading segments are taken from the request
    path, which has one segment per template segment.
    """
    if not template:
        return "unmatched"
    if ":path}" in template:
        return template
    path_segments = [s for s in path.split("/") if s]
    template_segments = [s for s in template.split("/") if s]
    extra = len(path_segments) - len(template_segments)
    if extra <= 0:
        return template
    return "/" + "/".join(path_segments[:extra]) + template


class MetricsMiddleware(BaseHTTPMiddleware):
    """Observe request durations into ``app.state.metrics``.

    The route template (``/api/v1/users/{user_id}``) is used as label so
    label cardinality stays bounded.
    """

    SKIP_PATHS = {"/metrics"}

    async def dispatch(self, request: Request, call_next):
        metrics = getattr(request.app.state, "metrics", None)
        if metrics is None or request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        # Captured before routing, which may rewrite path and root_path
        path = request.scope["path"]
        root_path = request.scope.get("root_path") or ""
        if root_path and path.startswith(root_path):
            path = path[len(root_path):]

        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            route = request.scope.get("route")
            template = route_template(getattr(route, "path", None), path)
            metrics.observe_request(request.method, template, status_code, time.perf_counter() - start)
