"""Configuration module for katsubushi-exporter."""

from .settings import Settings, parse_listen_address, settings

__all__ = ["Settings", "parse_listen_address", "settings"]
