"""
Result formatting utilities for CLI output
"""

import json
import sys
from typing import Any, Dict, List

import yaml

from cppengine.domain.value_objects import AnalysisResult, CombinedResult, ExecutionResult


class ResultFormatter:
    """
    Format engine results for different output types
    """

    def __init__(self, format: str = "pretty", verbose: bool = False, use_colors: bool = True):
        self.format = format
        self.verbose = verbose
        self.use_colors = use_colors and self._supports_color()

        names = ["reset", "red", "green", "yellow", "blue", "magenta", "cyan", "dim", "bold"]
        if self.use_colors:
            codes = ["\033[0m", "\033[91m", "\033[92m", "\033[93m", "\033[94m", "\033[95m", "\033[96m", "\033[2m", "\033[1m"]
            self.colors = dict(zip(names, codes))
        else:
            self.colors = {name: "" for name in names}

    def _supports_color(self) -> bool:
        """Check if terminal supports colors"""
        return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()

    def _colorize(self, text: str, color: str) -> str:
        return f"{self.colors[color]}{text}{self.colors['reset']}"

    def format_result(self, result) -> str:
        """
        Format an execution, analysis or combined result

        Args:
            result: Result value object with to_dict()

        Returns:
            Formatted string
        """
        if self.format == "json":
            return json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str)
        if self.format == "yaml":
            return yaml.safe_dump(result.to_dict(), default_flow_style=False, allow_unicode=True, sort_keys=False)
        return "\n".join(self._pretty(result))

    def format_data(self, data: Dict[str, Any]) -> str:
        """Format a plain mapping such as the tool availability report"""
        if self.format == "json":
            return json.dumps(data, indent=2, ensure_ascii=False)
        if self.format == "yaml":
            return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
        lines = []
        for key, value in data.items():
            if isinstance(value, dict):
                lines.append(self._colorize(f"{key}:", "bold"))
                lines.extend(f"  {name}: {self._availability(ok)}" for name, ok in value.items())
            else:
                lines.append(f"{self._colorize(f'{key}:', 'bold')} {self._availability(value)}")
        return "\n".join(lines)

    def _availability(self, value: Any) -> str:
        if value is True:
            return self._colorize("available", "green")
        if value is False:
            return self._colorize("missing", "red")
        return str(value)

    def _pretty(self, result) -> List[str]:
        if isinstance(result, CombinedResult):
            return self._pretty_execution(result.execution) + [""] + self._pretty_analysis(result.analysis)
        if isinstance(result, AnalysisResult):
            return self._pretty_analysis(result)
        return self._pretty_execution(result)

    def _section(self, title: str, color: str) -> List[str]:
        return [self._colorize(title, color), self._colorize("-" * 40, "dim")]

    def _pretty_execution(self, result: ExecutionResult) -> List[str]:
        output = []
        if result.success:
            output.append(self._colorize("Execution succeeded", "green"))
        else:
            reason = result.error or result.state.value
            output.append(self._colorize(f"Execution failed [{result.state.value}]: {reason}", "red"))
        output.append("")

        if result.compilation_error:
            output += self._section("COMPILER OUTPUT:", "yellow")
            output += [result.compilation_error.rstrip(), ""]
        elif result.compiler_warnings:
            output += self._section("WARNINGS:", "yellow")
            output += result.compiler_warnings + [""]

        if result.stdout:
            output += self._section("STDOUT:", "blue")
            output += [result.stdout.rstrip() or "(empty)", ""]
        if result.stderr:
            output += self._section("STDERR:", "yellow")
            output += [result.stderr.rstrip() or "(empty)", ""]
        if result.output_truncated:
            output += [self._colorize("(output truncated)", "dim"), ""]

        output += self._section("METRICS:", "cyan")
        output.append(f"  Compile:      {result.compilation_time_ms:.2f} ms")
        output.append(f"  Run:          {result.execution_time_ms:.2f} ms")
        output.append(f"  Peak Memory:  {result.peak_memory_kb} KB")
        if result.exit_code is not None:
            output.append(f"  Exit Code:    {result.exit_code}")

        profile = result.performance_profile
        if profile is not None:
            output.append("")
            output += self._section("PROFILE:", "magenta")
            if profile.is_empty:
                output.append("  No counters available")
            for key, value in profile.to_dict().items():
                if key != "hotspots" and value is not None:
                    output.append(f"  {key.replace('_', ' ').title()}: {value}")
            for hotspot in profile.hotspots:
                output.append(f"  {hotspot.percentage:6.2f}%  {hotspot.function}")

        if result.memory_trace is not None and self.verbose:
            output.append("")
            output += self._section("MEMORY:", "magenta")
            trace = result.memory_trace
            for frame in trace.stack_frames:
                output.append(f"  {frame.function}() [{frame.size} bytes]")
                for variable in frame.variables:
                    output.append(f"    {variable.address}  {variable.type} {variable.name} ({variable.size})")
            for heap in trace.heap_objects:
                state = "allocated" if heap.allocated else "freed"
                output.append(f"  heap {heap.address}  {heap.type} ({heap.size}) {state}")
        return output

    def _pretty_analysis(self, result: AnalysisResult) -> List[str]:
        output = []
        if result.success:
            output.append(self._colorize(f"Analysis found {len(result.issues)} issue(s)", "green"))
        else:
            output.append(self._colorize(f"Analysis failed: {result.error}", "red"))
        for note in result.metadata.get("notes", {}).values():
            output.append(self._colorize(f"  note: {note}", "dim"))
        output.append("")

        colors = {"error": "red", "security": "red", "warning": "yellow", "performance": "magenta"}
        if result.issues:
            output += self._section("ISSUES:", "blue")
            for issue in result.issues:
                severity = self._colorize(f"{issue.severity.value:<11}", colors.get(issue.severity.value, "cyan"))
                output.append(f"  {issue.line:>4}:{issue.column:<3} {severity} {issue.message} [{issue.rule_id}]")
            if result.metadata.get("truncated"):
                output.append(self._colorize(f"  ... {result.metadata['total_issues']} issues in total", "dim"))
            output.append("")

        if result.metrics:
            output += self._section("METRICS:", "cyan")
            for key, value in result.metrics.items():
                output.append(f"  {key.replace('_', ' ').title():<26} {value}")
        return output
