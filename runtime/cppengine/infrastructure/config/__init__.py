"""
Configuration Module

Exports settings loading for the engine.
"""

from .config import Settings, load_settings

__all__ = ["Settings", "load_settings"]
