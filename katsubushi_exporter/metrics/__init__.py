"""Metrics module for katsubushi-exporter."""

from .gauges import INFO_LABELS, GaugeRegistry

__all__ = ["INFO_LABELS", "GaugeRegistry"]
