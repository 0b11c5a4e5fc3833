"""
Request Schemas

Pydantic models accepting the platform's camelCase JSON and converting it
into domain requests.
"""
import re
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from cppengine.domain.value_objects import (
    MAX_SOURCE_LENGTH,
    MAX_STDIN_LENGTH,
    AnalysisRequest,
    AnalysisType,
    CompilerOptions,
    ExecutionRequest,
    Language,
    OptimizationLevel,
    Severity,
)


# "cpp17", "c++20", "c11", "gnu++17" ...
_LANGUAGE_RE = re.compile(r"^(?P<family>c\+\+|cpp|gnu\+\+|c|gnu)(?P<version>\d{2}|2a|2b|2c)?$")


def parse_language(value: str) -> Tuple[Language, Optional[str]]:
    """
    Split a platform language string into language and standard.

    Args:
        value: "c", "cpp", "cpp17", "c++20", "c11", "gnu++17", ...

    Returns:
        Tuple of (language, standard or None)

    Raises:
        ValueError: If the string names no supported language
    """
    match = _LANGUAGE_RE.match(value.strip().lower())
    if not match:
        raise ValueError(f"Unsupported language: {value}")
    family, version = match.group("family"), match.group("version")
    is_cpp = family in ("c++", "cpp", "gnu++")
    language = Language.CPP if is_cpp else Language.C
    if version is None:
        return language, None
    prefix = {"cpp": "c++"}.get(family, family)
    return language, f"{prefix}{version}"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class CompilerOptionsSchema(_CamelModel):
    """Compiler and instrumentation options."""
    optimization_level: OptimizationLevel = Field(OptimizationLevel.O2, description="-O level")
    standard: Optional[str] = Field(None, max_length=16, description="Language standard, e.g. c++17")
    debug_info: bool = False
    memory_visualization: bool = False
    performance_profiling: bool = False
    compiler: Optional[str] = Field(None, description="g++, clang++, gcc or clang")
    extra_flags: List[str] = Field(default_factory=list, max_length=32)
    defines: Dict[str, str] = Field(default_factory=dict, max_length=32)

    @field_validator("optimization_level", mode="before")
    @classmethod
    def strip_dash(cls, v):
        # accept "-O2" as well as "O2"
        return v.lstrip("-") if isinstance(v, str) else v

    @field_validator("compiler")
    @classmethod
    def validate_compiler(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ("g++", "clang++", "gcc", "clang"):
            raise ValueError(f"Unsupported compiler: {v}")
        return v

    @field_validator("standard")
    @classmethod
    def validate_standard(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not re.match(r"^[a-z+0-9]+$", v):
            raise ValueError("Invalid language standard")
        return v

    def to_domain(self, standard: Optional[str] = None) -> CompilerOptions:
        return CompilerOptions(
            optimization_level=self.optimization_level,
            standard=self.standard or standard,
            debug_info=self.debug_info,
            memory_visualization=self.memory_visualization,
            performance_profiling=self.performance_profiling,
            compiler=self.compiler,
            extra_flags=tuple(self.extra_flags),
            defines=tuple(sorted(self.defines.items())),
        )


class ExecuteRequestSchema(_CamelModel):
    """Compile-and-run request."""
    code: str = Field(..., min_length=1, max_length=MAX_SOURCE_LENGTH)
    language: str = Field("cpp", description="c, cpp or a dialect such as cpp17")
    input: Optional[str] = Field(None, max_length=MAX_STDIN_LENGTH, description="Program stdin")
    timeout: Optional[float] = Field(None, gt=0, le=3600, description="Run timeout in seconds")
    memory_limit: Optional[int] = Field(None, ge=1, description="Memory ceiling in MB")
    max_output_bytes: Optional[int] = Field(None, ge=1)
    compiler_options: CompilerOptionsSchema = Field(default_factory=CompilerOptionsSchema)

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        parse_language(v)
        return v

    def to_domain(self) -> ExecutionRequest:
        language, standard = parse_language(self.language)
        return ExecutionRequest(
            code=self.code,
            language=language,
            stdin=self.input,
            timeout_seconds=self.timeout,
            max_memory_mb=self.memory_limit,
            max_output_bytes=self.max_output_bytes,
            options=self.compiler_options.to_domain(standard),
        )


class AnalyzeRequestSchema(_CamelModel):
    """Static analysis request."""
    code: str = Field(..., min_length=1, max_length=MAX_SOURCE_LENGTH)
    language: str = Field("cpp", description="c, cpp or a dialect such as cpp17")
    analysis_type: AnalysisType = AnalysisType.FULL
    min_severity: Optional[Severity] = None
    max_issues: Optional[int] = Field(None, ge=0, le=10_000)

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        parse_language(v)
        return v

    def to_domain(self) -> AnalysisRequest:
        language, standard = parse_language(self.language)
        return AnalysisRequest(
            code=self.code,
            language=language,
            standard=standard,
            analysis_type=self.analysis_type,
            min_severity=self.min_severity,
            max_issues=self.max_issues,
        )
