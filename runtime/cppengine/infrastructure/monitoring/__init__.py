"""
Monitoring Module

Exports memory telemetry for bounded processes.
"""

from .metrics import MemorySampler, tree_rss_kb

__all__ = ["MemorySampler", "tree_rss_kb"]
