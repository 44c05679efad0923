"""
Gauge Registry Module

Owns the Prometheus gauges published by the exporter. The poller is the
only writer; the HTTP server only reads the registry.
"""

import logging

from prometheus_client import (
    CollectorRegistry,
    Gauge,
    PlatformCollector,
    ProcessCollector,
)

from ..protocol.stats import StatsSnapshot

logger = logging.getLogger(__name__)

INFO_LABELS = ("katsubushi_version", "katsubushi_pid")


class GaugeRegistry:
    """
    The set of katsubushi gauges.

    One labeled info gauge plus six unlabeled scalar gauges, all kept in
    a private CollectorRegistry so tests and multiple instances never
    collide with the prometheus_client global registry.

    Attributes:
        registry: The CollectorRegistry rendered on /metrics
    """

    def __init__(self, registry: CollectorRegistry = None, process_metrics: bool = False):
        """
        Create and register the gauges.

        Args:
            registry: Registry to register into (a new one if not provided)
            process_metrics: Also export the exporter's own process and
                platform metrics
        """
        self.registry = registry if registry is not None else CollectorRegistry()

        if process_metrics:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)

        self.info = Gauge(
            "katsubushi_info",
            "Information of katsubushi.",
            INFO_LABELS,
            registry=self.registry,
        )
        self.uptime = Gauge(
            "katsubushi_uptime",
            "Uptime of katsubushi process.",
            registry=self.registry,
        )
        self.curr_connections = Gauge(
            "katsubushi_curr_connections",
            "Current connection.",
            registry=self.registry,
        )
        self.total_connections = Gauge(
            "katsubushi_total_connections",
            "Total connection.",
            registry=self.registry,
        )
        self.cmd_get = Gauge(
            "katsubushi_get_cmd",
            "Number of GET command.",
            registry=self.registry,
        )
        self.get_hits = Gauge(
            "katsubushi_get_hits",
            "Number of Get command success.",
            registry=self.registry,
        )
        self.get_misses = Gauge(
            "katsubushi_get_misses",
            "Number of Get command miss.",
            registry=self.registry,
        )

    def set_info(self, version: str, pid: str) -> None:
        # Earlier version/pid combinations stay exported
        self.info.labels(katsubushi_version=version, katsubushi_pid=pid).set(1)

    def set_uptime(self, value: float) -> None:
        self.uptime.set(value)

    def set_curr_connections(self, value: float) -> None:
        self.curr_connections.set(value)

    def set_total_connections(self, value: float) -> None:
        self.total_connections.set(value)

    def set_cmd_get(self, value: float) -> None:
        self.cmd_get.set(value)

    def set_get_hits(self, value: float) -> None:
        self.get_hits.set(value)

    def set_get_misses(self, value: float) -> None:
        self.get_misses.set(value)

    def publish(self, snapshot: StatsSnapshot) -> None:
        """
        Update every gauge from one validated snapshot.

        Fields missing from the snapshot are published as 0, never as the
        previous cycle's value. Each gauge is internally locked, so a
        concurrent scrape never sees a torn value.
        """
        self.set_info(snapshot.version, snapshot.pid)
        self.set_uptime(snapshot.stat("uptime"))
        self.set_curr_connections(snapshot.stat("curr_connections"))
        self.set_total_connections(snapshot.stat("total_connections"))
        self.set_cmd_get(snapshot.stat("cmd_get"))
        self.set_get_hits(snapshot.stat("get_hits"))
        self.set_get_misses(snapshot.stat("get_misses"))
        logger.debug(
            f"Published stats for katsubushi {snapshot.version} (pid {snapshot.pid})"
        )

