#!/usr/bin/env python3

"""Threaded WSGI server exposing the collector to Prometheus."""

from __future__ import annotations

import logging
import signal
import socket
import threading
from socketserver import ThreadingMixIn
from typing import Any, Callable, Iterable, Optional, Tuple
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from prometheus_client import CollectorRegistry, make_wsgi_app

logger = logging.getLogger(__name__)

ROOT_PAGE = """<html>
    <head><title>AWS Instance Metadata Exporter</title></head>
    <body>
    <h1>AWS Instance Metadata Exporter</h1>
    <p><a href="{metrics_path}">Metrics</a></p>
    </body>
    </html>"""

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGQUIT)


def parse_bind_addr(bind_addr: str) -> Tuple[str, int]:
    """Split ``host:port``; an empty host means every interface.

    Args:
        bind_addr: ``:9189``, ``127.0.0.1:9189`` or ``[::1]:9189``.

    Returns:
        Tuple[str, int]: Host and port.

    Raises:
        ValueError: Port is missing or not a number.
    """
    host, sep, port = bind_addr.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid bind address: {bind_addr!r}")
    return host.strip("[]"), int(port)


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


class _ThreadingWSGIServerV6(_ThreadingWSGIServer):
    address_family = socket.AF_INET6


class _LoggingHandler(WSGIRequestHandler):
    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


def build_app(registry: CollectorRegistry, metrics_path: str = "/metrics") -> Callable:
    """WSGI app serving ``metrics_path`` and an index page on every other path.

    Args:
        registry: Registry holding the collector.
        metrics_path: Path of the exposition endpoint.

    Returns:
        Callable: WSGI application.
    """
    metrics_app = make_wsgi_app(registry)
    index = ROOT_PAGE.format(metrics_path=metrics_path).encode("utf-8")

    def app(environ: dict, start_response: Callable) -> Iterable[bytes]:
        path = environ.get("PATH_INFO") or "/"
        if path == metrics_path:
            return metrics_app(environ, start_response)
        start_response("200 OK", [("Content-Type", "text/html; charset=utf-8")])
        return [index]

    return app


class MetricsServer:
    """HTTP endpoint for one collector registry."""

    def __init__(
        self,
        registry: CollectorRegistry,
        bind_addr: str = ":9189",
        metrics_path: str = "/metrics",
    ) -> None:
        self.bind_addr = bind_addr
        self.metrics_path = metrics_path
        host, port = parse_bind_addr(bind_addr)
        server_class = _ThreadingWSGIServerV6 if ":" in host else _ThreadingWSGIServer
        self._httpd = make_server(
            host,
            port,
            build_app(registry, metrics_path),
            server_class=server_class,
            handler_class=_LoggingHandler,
        )
        self._thread: Optional[threading.Thread] = None

    @property
    def server_port(self) -> int:
        return self._httpd.server_port

    def start(self) -> None:
        logger.info("Starting metric http endpoint on %s", self.bind_addr)
        self._thread = threading.Thread(target=self._httpd.serve_forever, daemon=True)
        self._thread.start()

    def shutdown(self) -> None:
        if self._thread is not None:
            self._httpd.shutdown()
            self._thread.join()
        self._httpd.server_close()

    def serve_until_signal(self) -> int:
        """Serve until SIGINT, SIGTERM or SIGQUIT.

        Returns:
            int: Number of the signal that stopped the server.
        """
        stop = threading.Event()
        caught = {"signum": 0}

        def _handle(signum: int, _frame: Any) -> None:
            caught["signum"] = signum
            stop.set()

        for signum in STOP_SIGNALS:
            signal.signal(signum, _handle)

        self.start()
        while not stop.wait(1.0):
            pass
        name = signal.Signals(caught["signum"]).name
        logger.info("Caught %s signal, exiting", name)
        self.shutdown()
        return caught["signum"]
