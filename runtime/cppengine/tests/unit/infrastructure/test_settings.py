"""
Unit tests for settings and toolchain detection.
"""

import pytest

from cppengine.domain.errors import ConfigurationError
from cppengine.domain.value_objects import Language
from cppengine.infrastructure.config import load_settings
from cppengine.infrastructure.toolchain import ToolAvailability, detect_toolchain, resolve_executable


pytestmark = pytest.mark.unit


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        settings = load_settings()
        assert settings.default_timeout <= settings.max_timeout
        assert settings.default_memory_mb <= settings.max_memory_mb

    def test_log_level_normalized(self):
        assert load_settings(log_level="debug").log_level == "DEBUG"

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("CPPENGINE_MAX_TIMEOUT", "45")
        assert load_settings().max_timeout == 45.0

    def test_default_above_maximum_rejected(self):
        with pytest.raises(ConfigurationError, match="default_timeout"):
            load_settings(default_timeout=20, max_timeout=5)

    def test_memory_default_above_maximum_rejected(self):
        with pytest.raises(ConfigurationError, match="default_memory_mb"):
            load_settings(default_memory_mb=2048, max_memory_mb=1024)

    def test_invalid_field_named_in_details(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(log_level="verbose")
        assert exc_info.value.details["fields"] == ["log_level"]


class TestToolchain:
    """Tests for toolchain detection."""

    def test_resolve_missing_path(self, tmp_path):
        assert resolve_executable(str(tmp_path / "no-such-tool")) is None

    def test_resolve_non_executable_file(self, tmp_path):
        path = tmp_path / "tool"
        path.write_text("#!/bin/sh\n")
        path.chmod(0o644)
        assert resolve_executable(str(path)) is None

    def test_missing_tools_reported(self, tmp_path):
        missing = str(tmp_path / "missing")
        settings = load_settings(
            cpp_compiler=missing,
            c_compiler=missing,
            clang_cpp_compiler=missing,
            clang_c_compiler=missing,
            clang_tidy_path=missing,
            cppcheck_path=missing,
            perf_path=missing,
            use_bwrap=False,
        )
        toolchain = detect_toolchain(settings)
        assert toolchain.compiler_for(Language.CPP) is None
        assert toolchain.to_dict() == {
            "compilers": {"g++": False, "gcc": False, "clang++": False, "clang": False},
            "clang_tidy": False,
            "cppcheck": False,
            "perf": False,
            "bwrap": False,
        }

    def test_is_frozen(self):
        toolchain = ToolAvailability(compilers={}, clang_tidy=None, cppcheck=None, perf=None, bwrap=None)
        with pytest.raises(AttributeError):
            toolchain.perf = "/usr/bin/perf"
