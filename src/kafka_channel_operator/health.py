"""Liveness, readiness and metrics endpoints served from one port."""

import json
import threading
from typing import Any, Callable

from prometheus_client import make_wsgi_app
from werkzeug.serving import BaseWSGIServer, make_server
from werkzeug.wrappers import Response

ReadinessProbe = Callable[[], bool]


def _json_response(payload: dict[str, str], status: int) -> Response:
    return Response(json.dumps(payload, separators=(",", ":")), mimetype="application/json", status=status)


def create_combined_wsgi_app(is_ready: ReadinessProbe | None = None) -> Any:
    """Create a WSGI app that combines metrics and health check endpoints.

    Args:
        is_ready: Readiness probe, evaluated per request; /readyz answers 503
            while it returns False

    Returns:
        Combined WSGI application
    """
    metrics_app = make_wsgi_app()

    def combined_app(environ: dict[str, Any], start_response: Any) -> list[bytes]:
        path = environ.get("PATH_INFO", "")

        if path == "/healthz":
            return _json_response({"status": "ok"}, 200)(environ, start_response)
        if path == "/readyz":
            if is_ready is None or is_ready():
                response = _json_response({"status": "ready"}, 200)
            else:
                response = _json_response({"status": "not ready", "reason": "Kafka configuration not loaded"}, 503)
            return response(environ, start_response)
        # /metrics and anything else
        return metrics_app(environ, start_response)

    return combined_app


def start_health_server(port: int, is_ready: ReadinessProbe | None = None) -> BaseWSGIServer:
    """Serve the combined app on a daemon thread and return the server."""
    server = make_server("", port, create_combined_wsgi_app(is_ready), threaded=True)
    thread = threading.Thread(target=server.serve_forever, name="health-server", daemon=True)
    thread.start()
    return server
