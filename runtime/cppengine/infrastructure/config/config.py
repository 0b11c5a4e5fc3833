"""
Environment configuration for the C/C++ engine.

Loads configuration from environment variables (prefix ``CPPENGINE_``) and
an optional ``.env`` file using pydantic-settings.
"""

from typing import Literal, Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cppengine.domain.errors import ConfigurationError


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CPPENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    log_format: Literal["text", "json"] = Field(
        default="text", description="Logging format - text for human-readable, json for structured logs"
    )

    # Workspace
    workspace_root: Optional[str] = Field(
        default=None, description="Parent directory of session workspaces, system temp dir when unset"
    )

    # Compilers
    cpp_compiler: str = Field(default="/usr/bin/g++", description="Default C++ compiler")
    c_compiler: str = Field(default="/usr/bin/gcc", description="Default C compiler")
    clang_cpp_compiler: str = Field(default="/usr/bin/clang++", description="clang++ path")
    clang_c_compiler: str = Field(default="/usr/bin/clang", description="clang path")
    default_cpp_standard: str = Field(default="c++17")
    default_c_standard: str = Field(default="c11")
    compile_timeout: float = Field(default=30.0, gt=0, le=300, description="Compile timeout in seconds")
    compile_memory_mb: int = Field(default=2048, ge=64, description="Compiler memory ceiling")

    # Execution
    default_timeout: float = Field(default=10.0, gt=0, le=3600, description="Default run timeout in seconds")
    max_timeout: float = Field(default=30.0, gt=0, le=3600, description="Maximum run timeout in seconds")
    default_memory_mb: int = Field(default=512, ge=16, description="Default run memory ceiling")
    max_memory_mb: int = Field(default=1024, ge=16, description="Maximum run memory ceiling")
    max_output_bytes: int = Field(default=1024 * 1024, ge=1024, description="Captured bytes per stream")
    max_processes: int = Field(default=64, ge=1, description="Process limit for learner programs")
    max_file_size_mb: int = Field(default=64, ge=1, description="Largest file a process may write")
    memory_poll_interval: float = Field(default=0.02, gt=0, le=1.0, description="RSS sampling period")

    # Isolation
    use_bwrap: bool = Field(default=True, description="Wrap processes in Bubblewrap when available")
    bwrap_path: str = Field(default="bwrap")

    # Analysis
    clang_tidy_path: str = Field(default="/usr/bin/clang-tidy")
    clang_tidy_checks: str = Field(
        default="-*,bugprone-*,cert-*,clang-analyzer-*,cppcoreguidelines-*,modernize-*,"
        "performance-*,readability-*,-modernize-use-trailing-return-type,"
        "-readability-magic-numbers,-cppcoreguidelines-avoid-magic-numbers"
    )
    cppcheck_path: str = Field(default="/usr/bin/cppcheck")
    cppcheck_enable: str = Field(default="warning,style,performance,portability")
    analysis_timeout: float = Field(default=60.0, gt=0, le=600, description="Per-analyzer timeout in seconds")
    analysis_memory_mb: int = Field(default=2048, ge=64)
    max_cyclomatic_complexity: int = Field(default=10, ge=1)
    max_cognitive_complexity: int = Field(default=15, ge=1)
    max_function_lines: int = Field(default=80, ge=1)
    max_line_length: int = Field(default=120, ge=40)
    large_array_elements: int = Field(default=10_000, ge=1)

    # Profiling
    perf_path: str = Field(default="perf")
    profile_hotspots: bool = Field(default=True, description="Run perf record for hotspots")
    max_hotspots: int = Field(default=10, ge=1)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value

    @field_validator("log_format", mode="before")
    @classmethod
    def normalize_log_format(cls, value):
        return value.lower() if isinstance(value, str) else value

    @model_validator(mode="after")
    def check_defaults_within_maximums(self):
        if self.default_timeout > self.max_timeout:
            raise ValueError("default_timeout must not exceed max_timeout")
        if self.default_memory_mb > self.max_memory_mb:
            raise ValueError("default_memory_mb must not exceed max_memory_mb")
        return self


def load_settings(**overrides) -> Settings:
    """
    Load settings from the environment.

    Args:
        **overrides: Field values that take precedence over the environment

    Returns:
        A new Settings instance

    Raises:
        ConfigurationError: If a value is malformed or inconsistent
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        fields = [".".join(str(part) for part in error["loc"]) for error in e.errors()]
        raise ConfigurationError(f"Invalid engine settings: {e}", {"fields": [f for f in fields if f]}) from e
