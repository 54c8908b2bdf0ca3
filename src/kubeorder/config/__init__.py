"""Configuration for kubeorder."""

from kubeorder.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
