"""
katsubushi-exporter: Prometheus exporter for katsubushi

Polls a katsubushi server with the STATS command and republishes
the results as Prometheus gauges over HTTP.
"""

__version__ = "1.0.0"
