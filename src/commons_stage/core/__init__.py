"""Core configuration, security and error primitives."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
