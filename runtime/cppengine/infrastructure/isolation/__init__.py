"""
Isolation Module

Bounded process execution with Bubblewrap confinement and kernel limits.
"""

from .bwrap import build_bwrap_prefix, check_bwrap_available, get_bwrap_version
from .limits import make_preexec
from .process_runner import BoundedProcessRunner, kill_process_tree, normalize_exit_code

__all__ = [
    "BoundedProcessRunner",
    "build_bwrap_prefix",
    "check_bwrap_available",
    "get_bwrap_version",
    "kill_process_tree",
    "make_preexec",
    "normalize_exit_code",
]
