"""Config package exporting loader helpers."""

from .loader import Settings, ShopConfig, load_settings

__all__ = ["Settings", "ShopConfig", "load_settings"]
