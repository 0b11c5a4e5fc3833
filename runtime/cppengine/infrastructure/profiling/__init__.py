"""
Profiling Module

Hardware counters and hotspots via Linux perf.
"""

from .perf import PerfProfiler, check_perf_available, parse_report, parse_stat

__all__ = ["PerfProfiler", "check_perf_available", "parse_report", "parse_stat"]
