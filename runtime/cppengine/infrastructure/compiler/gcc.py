"""
GCC/Clang compile commands.

Builds compiler argument vectors from compiler options, filters user
supplied flags through an allow-list and extracts warnings from compiler
diagnostics.
"""

import re
from typing import Iterable, List, Optional, Tuple

from cppengine.domain.ports.compiler_port import ICompilerPort
from cppengine.domain.value_objects import CompilerOptions, Language
from cppengine.infrastructure.toolchain import ToolAvailability
from cppengine.infrastructure.logging.logging_config import get_logger


logger = get_logger(__name__)

SOURCE_NAMES = {Language.C: "main.c", Language.CPP: "main.cpp"}
BINARY_NAME = "main"

_STANDARD_RE = re.compile(r"^(?:c|gnu)(?:\+\+)?(?:89|90|98|99|03|11|14|17|18|20|23|26|2a|2b|2c|2x)$")
_SAFE_FLAG_RES = (
    re.compile(r"^-O[0-3sz]?$"),
    re.compile(r"^-g[0-3]?$"),
    re.compile(r"^-W(?!l,|a,|p,)[A-Za-z0-9][\w=+-]*$"),
    re.compile(r"^-w$"),
    re.compile(r"^-std=[\w+]+$"),
    re.compile(r"^-pedantic(?:-errors)?$"),
    re.compile(r"^-pthread$"),
    re.compile(r"^-D[A-Za-z_]\w*(?:=[\w.+-]*)?$"),
    re.compile(r"^-U[A-Za-z_]\w*$"),
    re.compile(r"^-f(?:no-)?(?:exceptions|rtti|strict-aliasing|inline-functions|unroll-loops)$"),
    re.compile(r"^-march=native$"),
)
_DEFINE_NAME_RE = re.compile(r"^[A-Za-z_]\w*$")
_DEFINE_VALUE_RE = re.compile(r"^[\w.+-]*$")
_WARNING_RE = re.compile(r"^[^:\n]+:\d+:\d+:\s+warning:\s+.+$", re.MULTILINE)


def is_valid_standard(standard: str, language: Language) -> bool:
    """Whether standard names a dialect of language."""
    if not _STANDARD_RE.match(standard):
        return False
    is_cpp_standard = "++" in standard
    return is_cpp_standard == (language == Language.CPP)


def is_safe_flag(flag: str) -> bool:
    """Whether a user supplied compiler flag is on the allow-list."""
    return any(pattern.match(flag) for pattern in _SAFE_FLAG_RES)


def filter_flags(flags: Iterable[str]) -> Tuple[List[str], List[str]]:
    """
    Split user flags into allowed and rejected ones.

    Returns:
        Tuple of (allowed flags, rejected flags)
    """
    allowed, rejected = [], []
    for flag in flags:
        (allowed if is_safe_flag(flag) else rejected).append(flag)
    return allowed, rejected


def define_flags(defines: Iterable[Tuple[str, str]]) -> List[str]:
    """-D flags for well-formed macro definitions; malformed ones are dropped."""
    flags = []
    for name, value in defines:
        if not _DEFINE_NAME_RE.match(name) or not _DEFINE_VALUE_RE.match(value or ""):
            logger.warning("Dropping malformed macro definition", name=name)
            continue
        flags.append(f"-D{name}={value}" if value else f"-D{name}")
    return flags


def build_compile_command(
    compiler: str,
    language: Language,
    options: CompilerOptions,
    default_standard: str,
    source_name: Optional[str] = None,
    output_name: str = BINARY_NAME,
) -> List[str]:
    """
    Build the compiler argument vector.

    Args:
        compiler: Resolved compiler executable
        language: Source language
        options: Optimization, standard, debug and user flags
        default_standard: Standard used when options.standard is unset or invalid
        source_name: Staged source file, defaults to main.c / main.cpp
        output_name: Binary to produce

    Returns:
        Argument vector: compiler, dialect, optimization, warnings, user flags, source, output
    """
    standard = options.standard or default_standard
    if not is_valid_standard(standard, language):
        logger.warning("Unsupported language standard, using default", standard=standard)
        standard = default_standard

    command = [
        compiler,
        f"-std={standard}",
        f"-{options.optimization_level.value}",
    ]
    if options.debug_info or options.memory_visualization:
        command.append("-g")
    command += ["-Wall", "-Wextra", "-pedantic"]
    command += define_flags(options.defines)

    allowed, rejected = filter_flags(options.extra_flags)
    if rejected:
        logger.warning("Dropping disallowed compiler flags", flags=rejected)
    command += allowed

    command += [source_name or SOURCE_NAMES[language], "-o", output_name]
    if language == Language.C:
        command.append("-lm")
    return command


def extract_warnings(diagnostics: str) -> List[str]:
    """Warning lines from compiler diagnostics, in order."""
    return [m.group(0).strip() for m in _WARNING_RE.finditer(diagnostics)]


class GccCompiler(ICompilerPort):
    """
    GCC and Clang driver.

    Both families accept the same dialect, optimization and warning flags,
    so one command layout serves g++, gcc, clang++ and clang.
    """

    binary_name = BINARY_NAME

    def __init__(self, toolchain: ToolAvailability, default_cpp_standard: str = "c++17", default_c_standard: str = "c11"):
        """
        Initialize the compiler driver.

        Args:
            toolchain: Resolved compiler paths
            default_cpp_standard: Dialect for C++ sources without an explicit standard
            default_c_standard: Dialect for C sources without an explicit standard
        """
        self._toolchain = toolchain
        self._default_standards = {Language.CPP: default_cpp_standard, Language.C: default_c_standard}

    def source_name(self, language: Language) -> str:
        return SOURCE_NAMES[language]

    def resolve(self, language: Language, name: Optional[str] = None) -> Optional[str]:
        return self._toolchain.compiler_for(language, name)

    def build_command(self, compiler: str, language: Language, options: CompilerOptions) -> List[str]:
        return build_compile_command(compiler, language, options, self._default_standards[language])

    def extract_warnings(self, diagnostics: str) -> List[str]:
        return extract_warnings(diagnostics)
