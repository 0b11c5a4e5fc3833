"""
Unit tests for compile command construction.
"""

import pytest

from cppengine.domain.value_objects import CompilerOptions, Language, OptimizationLevel
from cppengine.infrastructure.compiler.gcc import (
    GccCompiler,
    build_compile_command,
    define_flags,
    extract_warnings,
    filter_flags,
    is_safe_flag,
    is_valid_standard,
)
from cppengine.infrastructure.toolchain import ToolAvailability


pytestmark = pytest.mark.unit


@pytest.fixture
def toolchain():
    return ToolAvailability(
        compilers={"g++": "/usr/bin/g++", "gcc": "/usr/bin/gcc", "clang++": None, "clang": "/usr/bin/clang"},
        clang_tidy=None,
        cppcheck=None,
        perf=None,
        bwrap=None,
    )


class TestStandards:
    """Tests for language standard validation."""

    @pytest.mark.parametrize("standard,language,valid", [
        ("c++17", Language.CPP, True),
        ("gnu++20", Language.CPP, True),
        ("c11", Language.C, True),
        ("c11", Language.CPP, False),
        ("c++17", Language.C, False),
        ("c++17 -o /tmp/x", Language.CPP, False),
    ])
    def test_is_valid_standard(self, standard, language, valid):
        assert is_valid_standard(standard, language) is valid


class TestFlagFiltering:
    """Tests for the user flag allow-list."""

    @pytest.mark.parametrize("flag", ["-O3", "-Wall", "-Wshadow", "-g", "-std=c++20", "-pedantic-errors", "-DNDEBUG"])
    def test_allowed(self, flag):
        assert is_safe_flag(flag)

    @pytest.mark.parametrize("flag", ["-I/etc", "-Wl,-rpath,/tmp", "-fplugin=evil.so", "-o", "-B/tmp", "--specs=x", "-include/etc/passwd"])
    def test_rejected(self, flag):
        assert not is_safe_flag(flag)

    def test_filter_flags_splits(self):
        allowed, rejected = filter_flags(["-Wall", "-L/tmp", "-O1"])
        assert allowed == ["-Wall", "-O1"]
        assert rejected == ["-L/tmp"]

    def test_define_flags_drop_malformed(self):
        flags = define_flags([("DEBUG", ""), ("N", "10"), ("BAD NAME", "1"), ("X", "$(rm -rf /)")])
        assert flags == ["-DDEBUG", "-DN=10"]


class TestBuildCompileCommand:
    """Tests for build_compile_command."""

    def test_cpp_command_layout(self):
        options = CompilerOptions(
            optimization_level=OptimizationLevel.O0,
            debug_info=True,
            extra_flags=("-Wshadow", "-I/etc"),
            defines=(("N", "3"),),
        )
        command = build_compile_command("/usr/bin/g++", Language.CPP, options, "c++17")
        assert command == [
            "/usr/bin/g++", "-std=c++17", "-O0", "-g", "-Wall", "-Wextra", "-pedantic",
            "-DN=3", "-Wshadow", "main.cpp", "-o", "main",
        ]

    def test_c_links_math_and_falls_back_to_default_standard(self):
        command = build_compile_command("/usr/bin/gcc", Language.C, CompilerOptions(standard="c++17"), "c11")
        assert "-std=c11" in command
        assert command[-4:] == ["main.c", "-o", "main", "-lm"]

    def test_memory_visualization_adds_debug_info(self):
        options = CompilerOptions(memory_visualization=True)
        assert "-g" in build_compile_command("g++", Language.CPP, options, "c++17")


class TestExtractWarnings:
    """Tests for extract_warnings."""

    def test_only_warning_lines(self):
        diagnostics = (
            "main.cpp: In function 'int main()':\n"
            "main.cpp:3:9: warning: unused variable 'x' [-Wunused-variable]\n"
            "    3 |     int x;\n"
            "main.cpp:5:1: error: expected ';'\n"
        )
        assert extract_warnings(diagnostics) == ["main.cpp:3:9: warning: unused variable 'x' [-Wunused-variable]"]


class TestGccCompiler:
    """Tests for the compiler port adapter."""

    def test_resolve_defaults(self, toolchain):
        compiler = GccCompiler(toolchain)
        assert compiler.resolve(Language.CPP) == "/usr/bin/g++"
        assert compiler.resolve(Language.C) == "/usr/bin/gcc"

    def test_resolve_maps_family_to_language(self, toolchain):
        compiler = GccCompiler(toolchain)
        assert compiler.resolve(Language.C, "clang++") == "/usr/bin/clang"
        assert compiler.resolve(Language.CPP, "clang") is None
        assert compiler.resolve(Language.CPP, "gcc") == "/usr/bin/g++"

    def test_build_command_uses_configured_default(self, toolchain):
        compiler = GccCompiler(toolchain, default_cpp_standard="c++20")
        command = compiler.build_command("/usr/bin/g++", Language.CPP, CompilerOptions())
        assert command[1] == "-std=c++20"
        assert compiler.source_name(Language.CPP) == "main.cpp"
        assert compiler.binary_name == "main"
