"""Network module for katsubushi-exporter."""

from .http_server import ROOT_DOC, MetricsHTTPServer

__all__ = ["ROOT_DOC", "MetricsHTTPServer"]
