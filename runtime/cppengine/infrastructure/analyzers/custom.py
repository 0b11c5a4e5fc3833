"""
Built-in checks adapter.

Exposes the built-in rule families through the analyzer port so they run
alongside the external tools. The checks are CPU-bound, so they run in a
worker thread under the same per-analyzer timeout as the external tools.
"""

import asyncio
from typing import Iterable, List, Optional

from cppengine.domain.errors import ToolUnavailableError
from cppengine.domain.ports import AnalyzerContext, IAnalyzerPort
from cppengine.domain.rules import RuleConfig, run_rules, select_rules
from cppengine.domain.value_objects import Issue, RuleFamily
from cppengine.infrastructure.logging.logging_config import get_logger


logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0


class CustomRulesAnalyzer(IAnalyzerPort):
    """Runs one or more built-in rule families."""

    def __init__(
        self,
        name: str,
        families: Iterable[RuleFamily],
        config: Optional[RuleConfig] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.name = name
        self.families = tuple(families)
        self.config = config or RuleConfig()
        self.timeout_seconds = timeout_seconds

    @property
    def available(self) -> bool:
        return True

    async def analyze(self, context: AnalyzerContext) -> List[Issue]:
        """
        Run the selected rules without blocking the event loop.

        Raises:
            ToolUnavailableError: If the rules do not finish within the timeout
        """
        rules = select_rules(self.families, context.language)
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(run_rules, context.source, rules, self.config),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            # the worker thread cannot be interrupted; its result is discarded
            logger.warning("Built-in checks timed out", analyzer=self.name, timeout=self.timeout_seconds)
            raise ToolUnavailableError(self.name, f"timed out after {self.timeout_seconds:g}s")
