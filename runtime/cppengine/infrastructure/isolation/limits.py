"""
Resource Limits

Kernel resource limits applied in the child between fork and exec.
"""

import math
import resource
from typing import Callable

from cppengine.domain.value_objects import ResourceLimit


def _lower(kind: int, value: int) -> None:
    _, hard = resource.getrlimit(kind)
    if hard != resource.RLIM_INFINITY:
        value = min(value, hard)
    resource.setrlimit(kind, (value, value))


def make_preexec(limits: ResourceLimit) -> Callable[[], None]:
    """
    Build a preexec function that applies limits in the child process.

    RLIMIT_CPU backs up the wall-clock timeout for CPU-bound programs.

    Args:
        limits: Ceilings for the process

    Returns:
        Callable suitable for the preexec_fn argument of subprocess creation
    """
    cpu_seconds = int(math.ceil(limits.timeout_seconds)) + 1
    file_bytes = limits.max_file_size_mb * 1024 * 1024
    memory_bytes = limits.max_memory_mb * 1024 * 1024 if limits.max_memory_mb else None
    processes = limits.max_processes

    def preexec() -> None:
        _lower(resource.RLIMIT_CPU, cpu_seconds)
        _lower(resource.RLIMIT_FSIZE, file_bytes)
        _lower(resource.RLIMIT_CORE, 0)
        if memory_bytes is not None:
            _lower(resource.RLIMIT_AS, memory_bytes)
        if processes is not None:
            _lower(resource.RLIMIT_NPROC, processes)

    return preexec
