"""
Toolchain detection.

Resolves the configured compilers, analyzers, profiler and sandbox once at
startup into an immutable snapshot shared by every request.
"""

import os
import shutil
from dataclasses import dataclass
from typing import Dict, Optional

from cppengine.domain.value_objects import Language
from cppengine.infrastructure.config.config import Settings
from cppengine.infrastructure.isolation.bwrap import check_bwrap_available, get_bwrap_version
from cppengine.infrastructure.logging.logging_config import get_logger
from cppengine.infrastructure.profiling.perf import check_perf_available


logger = get_logger(__name__)

COMPILER_ALIASES = {
    "g++": (Language.CPP, "gcc"),
    "clang++": (Language.CPP, "clang"),
    "gcc": (Language.C, "gcc"),
    "clang": (Language.C, "clang"),
}


def resolve_executable(path: str) -> Optional[str]:
    """Absolute path of an executable given by name or path, None if unusable."""
    if os.sep in path:
        return path if os.path.isfile(path) and os.access(path, os.X_OK) else None
    return shutil.which(path)


@dataclass(frozen=True)
class ToolAvailability:
    """
    Resolved tool paths; None marks a missing tool.

    Attributes:
        compilers: Compiler name ("g++", "clang++", "gcc", "clang") to path
        clang_tidy: clang-tidy executable
        cppcheck: cppcheck executable
        perf: perf executable
        bwrap: Bubblewrap executable, only set when it can create sandboxes
    """

    compilers: Dict[str, Optional[str]]
    clang_tidy: Optional[str]
    cppcheck: Optional[str]
    perf: Optional[str]
    bwrap: Optional[str]

    def compiler_for(self, language: Language, name: Optional[str] = None) -> Optional[str]:
        """
        Pick the compiler for a language, honouring an explicit choice.

        An explicit name for the wrong language is mapped to the matching
        compiler of the same family (clang++ for C becomes clang).
        """
        if name in COMPILER_ALIASES:
            alias_language, family = COMPILER_ALIASES[name]
            if alias_language != language:
                name = {("gcc", Language.CPP): "g++", ("clang", Language.CPP): "clang++",
                        ("gcc", Language.C): "gcc", ("clang", Language.C): "clang"}[(family, language)]
            return self.compilers.get(name)
        return self.compilers.get("g++" if language == Language.CPP else "gcc")

    def to_dict(self) -> Dict[str, object]:
        return {
            "compilers": {name: path is not None for name, path in self.compilers.items()},
            "clang_tidy": self.clang_tidy is not None,
            "cppcheck": self.cppcheck is not None,
            "perf": self.perf is not None,
            "bwrap": self.bwrap is not None,
        }


def detect_toolchain(settings: Settings) -> ToolAvailability:
    """
    Resolve every configured tool.

    Args:
        settings: Engine settings with tool paths

    Returns:
        Immutable availability snapshot
    """
    compilers = {
        "g++": resolve_executable(settings.cpp_compiler),
        "gcc": resolve_executable(settings.c_compiler),
        "clang++": resolve_executable(settings.clang_cpp_compiler),
        "clang": resolve_executable(settings.clang_c_compiler),
    }
    bwrap = None
    if settings.use_bwrap:
        candidate = resolve_executable(settings.bwrap_path)
        if candidate and check_bwrap_available(candidate):
            bwrap = candidate

    perf = resolve_executable(settings.perf_path)
    if perf and not check_perf_available(perf):
        perf = None

    availability = ToolAvailability(
        compilers=compilers,
        clang_tidy=resolve_executable(settings.clang_tidy_path),
        cppcheck=resolve_executable(settings.cppcheck_path),
        perf=perf,
        bwrap=bwrap,
    )
    logger.info(
        "Toolchain detected",
        bwrap_version=get_bwrap_version(bwrap) if bwrap else None,
        **availability.to_dict(),
    )
    for name, path in compilers.items():
        if path is None:
            logger.warning("Compiler not available", compiler=name)
    if availability.clang_tidy is None:
        logger.warning("clang-tidy not available", path=settings.clang_tidy_path)
    if availability.cppcheck is None:
        logger.warning("cppcheck not available", path=settings.cppcheck_path)
    return availability
