"""
HTTP Server Module

Exposes the gauge registry on /metrics through prometheus_client's WSGI
app, plus a static landing page on /. The server runs in its own thread
on prometheus_client's ThreadingWSGIServer, one thread per request.
"""

import logging
import socket
import sys
import threading
from typing import Optional
from wsgiref.simple_server import WSGIRequestHandler, make_server

from prometheus_client import make_wsgi_app
from prometheus_client.exposition import ThreadingWSGIServer

from ..config.settings import settings
from ..metrics.gauges import GaugeRegistry

logger = logging.getLogger(__name__)

ROOT_DOC = b"""<html>
<head><title>katsubushi Exporter</title></head>
<body>
<h1>katsubushi Exporter</h1>
<p><a href="/metrics">Metrics</a></p>
</body>
</html>
"""


class _MetricsWSGIServer(ThreadingWSGIServer):
    """ThreadingWSGIServer reporting handler errors through `logging`."""

    def handle_error(self, request, client_address):
        exc = sys.exc_info()[1]
        if isinstance(exc, (TimeoutError, ConnectionError)):
            logger.debug(f"Dropped HTTP client {client_address}: {exc!r}")
            return
        logger.exception(f"Error handling HTTP client {client_address}")


class _RequestHandler(WSGIRequestHandler):
    """Request handler logging through `logging` instead of stderr."""

    def log_message(self, format, *args):
        logger.debug(f"{self.address_string()} {format % args}")


def _best_family(host: Optional[str], port: int):
    """Pick the address family for host, IPv4 when binding every interface."""
    if not host:
        return socket.AF_INET, ""
    infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    family, _, _, _, sockaddr = infos[0]
    return family, sockaddr[0]


class MetricsHTTPServer:
    """
    HTTP front end for the exporter.

    Binding is split from serving so the caller can treat a bind
    failure as fatal before any background work starts.

    Usage:
        server = MetricsHTTPServer(gauges, host=None, port=9298)
        server.bind()     # raises OSError if the port is taken
        server.start()    # serves in a daemon thread

    Attributes:
        gauges: The GaugeRegistry rendered on /metrics
        host: Bind address (None binds every interface)
        port: Port number (0 picks a free port)
    """

    def __init__(
            self,
            gauges: GaugeRegistry,
            host: Optional[str] = None,
            port: int = 9298,
            read_timeout: float = None,
    ):
        self.gauges = gauges
        self.host = host
        self.port = port
        self.read_timeout = (
            read_timeout if read_timeout is not None else settings.HTTP_READ_TIMEOUT
        )
        self.metrics_app = make_wsgi_app(gauges.registry)

        self._httpd: Optional[_MetricsWSGIServer] = None
        self._thread: Optional[threading.Thread] = None
        self._total_requests = 0

    def app(self, environ, start_response):
        """WSGI entry point routing / and /metrics."""
        self._total_requests += 1
        path = environ.get("PATH_INFO", "/")

        if environ.get("REQUEST_METHOD") != "GET":
            start_response(
                "405 Method Not Allowed", [("Content-Type", "text/plain; charset=utf-8")]
            )
            return [b"Method Not Allowed\n"]

        if path == "/metrics":
            return self.metrics_app(environ, start_response)

        if path == "/":
            start_response("200 OK", [("Content-Type", "text/html; charset=utf-8")])
            return [ROOT_DOC]

        start_response("404 Not Found", [("Content-Type", "text/plain; charset=utf-8")])
        return [b"Not Found\n"]

    def bind(self) -> None:
        """
        Bind the listening socket.

        Raises:
            OSError: if the address cannot be bound
        """
        if self._httpd is not None:
            return

        family, addr = _best_family(self.host, self.port)

        class _Server(_MetricsWSGIServer):
            address_family = family

        class _Handler(_RequestHandler):
            timeout = self.read_timeout

        self._httpd = make_server(addr, self.port, self.app, _Server, handler_class=_Handler)
        logger.info(f"Serving HTTP on {self._httpd.server_address}")

    def start(self) -> threading.Thread:
        """Serve in a daemon thread, binding first if needed."""
        self.bind()
        if self._thread is None:
            self._thread = threading.Thread(
                target=self._httpd.serve_forever,
                name="metrics-http",
                daemon=True,
            )
            self._thread.start()
        return self._thread

    @property
    def bound_port(self) -> Optional[int]:
        """The actual port, useful after binding port 0."""
        if self._httpd is None:
            return None
        return self._httpd.server_address[1]

    def stop(self) -> None:
        """Stop serving and close the listening socket."""
        if self._httpd is None:
            return

        if self._thread is not None:
            self._httpd.shutdown()
            self._thread.join()
            self._thread = None
        self._httpd.server_close()
        self._httpd = None

    def is_running(self) -> bool:
        """Check if the server is currently bound."""
        return self._httpd is not None

    def get_stats(self) -> dict:
        return {
            "running": self.is_running(),
            "host": self.host,
            "port": self.bound_port,
            "total_requests": self._total_requests,
        }
