"""
Analyze Code Command

Static analysis use case. Runs the selected analyzers concurrently on a
staged copy of the source, merges their issues into one ranked list and
computes code metrics.
"""

import asyncio
import time
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import structlog

from cppengine.domain.entities import Session
from cppengine.domain.errors import ToolUnavailableError, TotalAnalysisFailure
from cppengine.domain.metrics import compute_metrics
from cppengine.domain.ports import AnalyzerContext, IAnalyzerPort, IWorkspacePort
from cppengine.domain.services import IssueMerger, count_by_severity, scrub_path
from cppengine.domain.source import SourceText
from cppengine.domain.value_objects import (
    AnalysisRequest,
    AnalysisResult,
    AnalysisType,
    Issue,
    Language,
)


logger = structlog.get_logger(__name__)

ANALYSIS_DIR = "analysis"
ANALYSIS_FILES = {Language.C: "main.c", Language.CPP: "main.cpp"}

# Analyzer names run for each analysis type
ANALYZER_SELECTION: Dict[AnalysisType, Tuple[str, ...]] = {
    AnalysisType.FULL: ("clang-tidy", "cppcheck", "custom", "security", "performance"),
    AnalysisType.CLANG_TIDY: ("clang-tidy",),
    AnalysisType.CPPCHECK: ("cppcheck",),
    AnalysisType.CUSTOM: ("custom",),
    AnalysisType.SECURITY: ("security",),
    AnalysisType.PERFORMANCE: ("performance",),
}


class AnalyzeCodeCommand:
    """
    Command handler for the static analysis use case.

    A failing analyzer contributes no issues and a note in the result
    metadata; only the failure of every selected analyzer fails the result.
    Metrics are computed in every case.
    """

    def __init__(
        self,
        analyzers: Mapping[str, IAnalyzerPort],
        workspace: IWorkspacePort,
        standards: Optional[Mapping[Language, str]] = None,
    ):
        """
        Initialize the analyze code command.

        Args:
            analyzers: Analyzer adapters keyed by name
            workspace: Port for staging files
            standards: Language standard handed to the tools per language
        """
        self._analyzers = dict(analyzers)
        self._workspace = workspace
        self._standards = dict(standards or {Language.CPP: "c++17", Language.C: "c11"})

    def select(self, analysis_type: AnalysisType) -> List[IAnalyzerPort]:
        """Configured analyzers for an analysis type, in a fixed order."""
        names = ANALYZER_SELECTION[analysis_type]
        return [self._analyzers[name] for name in names if name in self._analyzers]

    async def execute(self, request: AnalysisRequest, session: Session) -> AnalysisResult:
        """
        Analyze a submission inside a session.

        Args:
            request: Analysis request value object
            session: Session owning the workspace

        Returns:
            AnalysisResult with ordered issues, counts and metrics

        Raises:
            WorkspaceError: If the source cannot be staged
        """
        start_time = time.perf_counter()
        directory = session.subdir(ANALYSIS_DIR)
        filename = ANALYSIS_FILES[request.language]
        self._workspace.stage(directory, filename, request.code)

        source = SourceText(request.code)
        context = AnalyzerContext(
            source=source,
            directory=directory,
            filename=filename,
            language=request.language,
            standard=request.standard or self._standards[request.language],
        )
        selected = self.select(request.analysis_type)
        metrics = compute_metrics(source)

        def scrub(text: str) -> str:
            return scrub_path(text, str(directory), str(session.workspace))

        outcomes = await asyncio.gather(*(self._run_one(analyzer, context) for analyzer in selected))

        groups: List[List[Issue]] = []
        notes: Dict[str, str] = {}
        for analyzer, (issues, note) in zip(selected, outcomes):
            if note is None:
                groups.append(issues)
            else:
                notes[analyzer.name] = scrub(note)

        merger = IssueMerger(min_severity=request.min_severity, max_issues=request.max_issues)
        issues, total = merger.merge(groups, source.line_count)
        issues = [self._scrubbed(issue, scrub) for issue in issues]
        elapsed_ms = round((time.perf_counter() - start_time) * 1000, 2)

        metadata = {
            "analysis_type": request.analysis_type.value,
            "analyzers": [analyzer.name for analyzer in selected],
            "failed": sorted(notes),
            "notes": notes,
            "total_issues": total,
            "truncated": total > len(issues),
        }

        try:
            self._check_not_all_failed(selected, notes)
        except TotalAnalysisFailure as e:
            logger.error("All analyzers failed", request_id=session.request_id, analyzers=e.details["analyzers"])
            return AnalysisResult(
                success=False,
                metrics=metrics,
                counts=count_by_severity([]),
                analysis_time_ms=elapsed_ms,
                error=e.message,
                metadata=metadata,
            )

        logger.info(
            "Analysis finished",
            request_id=session.request_id,
            analysis_type=request.analysis_type.value,
            issues=len(issues),
            failed=metadata["failed"],
            duration_ms=elapsed_ms,
        )
        return AnalysisResult(
            success=True,
            issues=issues,
            metrics=metrics,
            counts=count_by_severity(issues),
            analysis_time_ms=elapsed_ms,
            metadata=metadata,
        )

    async def _run_one(self, analyzer: IAnalyzerPort, context: AnalyzerContext) -> Tuple[List[Issue], Optional[str]]:
        """Run one analyzer; returns (issues, None) or ([], failure note)."""
        try:
            return await analyzer.analyze(context), None
        except ToolUnavailableError as e:
            logger.warning("Analyzer unavailable", analyzer=analyzer.name, reason=e.reason)
            return [], e.message
        except Exception as e:
            logger.error("Analyzer failed", analyzer=analyzer.name, error=str(e), exc_info=True)
            return [], f"{analyzer.name} failed: {e}"

    @staticmethod
    def _check_not_all_failed(selected: Sequence[IAnalyzerPort], notes: Mapping[str, str]) -> None:
        if not selected:
            raise TotalAnalysisFailure("No analyzer is configured for this analysis type", {"analyzers": []})
        if len(notes) == len(selected):
            summary = "; ".join(notes[analyzer.name] for analyzer in selected)
            raise TotalAnalysisFailure(
                f"All analyzers failed: {summary}",
                {"analyzers": [analyzer.name for analyzer in selected]},
            )

    @staticmethod
    def _scrubbed(issue: Issue, scrub) -> Issue:
        message = scrub(issue.message)
        if message == issue.message:
            return issue
        return replace(issue, message=message)
