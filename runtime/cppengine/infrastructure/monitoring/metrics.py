"""
Memory telemetry for bounded processes.

Samples the resident set size of a process tree with psutil while it runs,
tracking peak and average usage and signalling when a ceiling is crossed.
"""

import asyncio
from typing import Callable, Optional

import psutil

from cppengine.infrastructure.logging.logging_config import get_logger


logger = get_logger(__name__)


def tree_rss_kb(pid: int) -> Optional[int]:
    """
    Resident memory of a process and all its descendants.

    Returns:
        Total RSS in kilobytes, or None when the root process is gone
    """
    try:
        root = psutil.Process(pid)
        processes = [root] + root.children(recursive=True)
    except (psutil.NoSuchProcess, psutil.ZombieProcess):
        return None
    total = 0
    for process in processes:
        try:
            total += process.memory_info().rss
        except (psutil.NoSuchProcess, psutil.ZombieProcess, psutil.AccessDenied):
            continue
    return total // 1024


class MemorySampler:
    """
    Periodic RSS sampler for one process tree.

    Examples:
        >>> sampler = MemorySampler(pid, limit_kb=512 * 1024)
        >>> task = asyncio.create_task(sampler.watch(on_exceeded=kill))
        ... # process runs
        >>> sampler.peak_kb
        2048
    """

    def __init__(self, pid: int, limit_kb: Optional[int] = None, interval: float = 0.02):
        """
        Initialize the sampler.

        Args:
            pid: Root process of the tree to sample
            limit_kb: Ceiling that triggers on_exceeded, None for no ceiling
            interval: Seconds between samples
        """
        self.pid = pid
        self.limit_kb = limit_kb
        self.interval = interval
        self.exceeded = False
        self._samples = 0
        self._total_kb = 0
        self._peak_kb = 0

    def sample(self) -> Optional[int]:
        """Take one sample; returns None once the process is gone."""
        rss = tree_rss_kb(self.pid)
        if rss is None:
            return None
        self._samples += 1
        self._total_kb += rss
        self._peak_kb = max(self._peak_kb, rss)
        return rss

    async def watch(self, on_exceeded: Callable[[], None]) -> None:
        """
        Sample until the process exits or exceeds the ceiling.

        Args:
            on_exceeded: Called once, synchronously, when the ceiling is crossed
        """
        while True:
            rss = self.sample()
            if rss is None:
                return
            if self.limit_kb is not None and rss > self.limit_kb:
                self.exceeded = True
                logger.info("Memory ceiling exceeded", rss_kb=rss, limit_kb=self.limit_kb)
                on_exceeded()
                return
            await asyncio.sleep(self.interval)

    @property
    def peak_kb(self) -> int:
        return self._peak_kb

    @property
    def average_kb(self) -> int:
        if not self._samples:
            return 0
        return self._total_kb // self._samples
