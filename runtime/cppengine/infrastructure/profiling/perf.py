"""
perf profiler.

Wraps a program run with ``perf stat`` to collect hardware counters and,
optionally, samples a second run with ``perf record`` to find hotspots.
Sampling and reporting share the wall-clock budget handed to ``collect``.
Missing counters or an unsupported host yield an empty profile.
"""

import re
import subprocess
import time
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

from cppengine.domain.ports import IProcessRunnerPort, IProfilerPort
from cppengine.domain.value_objects import Hotspot, PerformanceProfile, ResourceLimit
from cppengine.infrastructure.logging.logging_config import get_logger


logger = get_logger(__name__)

STAT_FILE = "perf.stat"
DATA_FILE = "perf.data"
# below this there is no room for a useful sample
MIN_SAMPLE_SECONDS = 0.2
EVENTS = "instructions,cycles,cache-references,cache-misses,branches,branch-misses,task-clock"

_COUNTER_FIELDS = {
    "instructions": "instructions",
    "cycles": "cycles",
    "cache-references": "cache_references",
    "cache-misses": "cache_misses",
    "branches": "branches",
    "branch-misses": "branch_misses",
}
_REPORT_RE = re.compile(
    r"^\s*(?P<percentage>\d+(?:\.\d+)?)%\s+(?:(?P<samples>\d+)\s+)?"
    r"(?:\S+\s+)*?\[(?P<space>[.kgu])\]\s+(?P<symbol>.+?)\s*$"
)


def check_perf_available(perf_path: str) -> bool:
    """
    Check whether perf can read counters of an unprivileged process.

    perf is often installed but blocked by kernel.perf_event_paranoid or
    missing PMU access inside containers.
    """
    try:
        result = subprocess.run(
            [perf_path, "stat", "-x", ",", "-e", "task-clock", "--", "true"],
            capture_output=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("perf availability check failed", error=str(e))
        return False
    if result.returncode != 0:
        logger.warning(
            "perf cannot collect counters",
            stderr=result.stderr.decode("utf-8", errors="replace").strip()[:200],
        )
        return False
    return True

def parse_stat(text: str) -> PerformanceProfile:
    """
    Parse ``perf stat -x,`` output.

    Each line reads value,unit,event,... ; unsupported counters are left None.
    """
    values = {}
    for line in text.splitlines():
        if not line.strip() or line.startswith("#"):
            continue
        fields = line.split(",")
        if len(fields) < 3:
            continue
        raw, event = fields[0].strip(), fields[2].strip().split(":")[0]
        if raw.startswith("<"):
            continue
        try:
            number = float(raw)
        except ValueError:
            continue
        if event == "task-clock":
            values["task_clock_ms"] = round(number, 3)
        elif event in _COUNTER_FIELDS:
            values[_COUNTER_FIELDS[event]] = int(number)
    return PerformanceProfile(**values)


def parse_report(text: str, limit: int = 10) -> List[Hotspot]:
    """User-space symbols from ``perf report --stdio``, hottest first."""
    hotspots = []
    for line in text.splitlines():
        if line.lstrip().startswith("#"):
            continue
        match = _REPORT_RE.match(line)
        if match is None or match.group("space") != ".":
            continue
        hotspots.append(
            Hotspot(
                function=match.group("symbol"),
                percentage=float(match.group("percentage")),
                samples=int(match.group("samples") or 0),
            )
        )
    hotspots.sort(key=lambda h: (-h.percentage, h.function))
    return hotspots[:limit]


class PerfProfiler(IProfilerPort):
    """Linux perf behind the profiler port."""

    def __init__(
        self,
        perf_path: Optional[str],
        runner: IProcessRunnerPort,
        hotspots: bool = True,
        max_hotspots: int = 10,
    ):
        self.perf_path = perf_path
        self.runner = runner
        self.hotspots = hotspots
        self.max_hotspots = max_hotspots

    @property
    def available(self) -> bool:
        return self.perf_path is not None

    def wrap(self, argv: Sequence[str], directory: Path) -> List[str]:
        if not self.available:
            return list(argv)
        return [self.perf_path, "stat", "-x", ",", "-o", STAT_FILE, "-e", EVENTS, "--", *argv]

    async def collect(
        self, argv: Sequence[str], directory: Path, limits: ResourceLimit, stdin: str = ""
    ) -> PerformanceProfile:
        if not self.available:
            return PerformanceProfile()

        stat_path = directory / STAT_FILE
        try:
            profile = parse_stat(stat_path.read_text(encoding="utf-8", errors="replace"))
        except OSError:
            logger.debug("No perf counters recorded")
            profile = PerformanceProfile()

        if not self.hotspots:
            return profile
        hotspots = await self._sample(argv, directory, limits, stdin)
        return replace(profile, hotspots=tuple(hotspots))

    async def _sample(
        self, argv: Sequence[str], directory: Path, limits: ResourceLimit, stdin: str
    ) -> List[Hotspot]:
        deadline = time.monotonic() + limits.timeout_seconds
        if limits.timeout_seconds < MIN_SAMPLE_SECONDS:
            logger.debug("No time left for hotspot sampling", budget=limits.timeout_seconds)
            return []
        record = await self.runner.run(
            [self.perf_path, "record", "-q", "-F", "999", "-o", DATA_FILE, "--", *argv],
            directory,
            limits,
            stdin=stdin,
        )
        if record.killed or not (directory / DATA_FILE).exists():
            logger.debug("perf record produced no samples", exit_code=record.exit_code)
            return []
        remaining = deadline - time.monotonic()
        if remaining < MIN_SAMPLE_SECONDS:
            logger.debug("No time left for perf report", budget=remaining)
            return []
        report = await self.runner.run(
            [self.perf_path, "report", "--stdio", "-n", "--no-children", "--sort", "symbol", "-i", DATA_FILE],
            directory,
            replace(limits, timeout_seconds=remaining),
        )
        if report.exit_code != 0:
            return []
        return parse_report(report.stdout, self.max_hotspots)
