"""
Bubblewrap Isolation

Builds the Bubblewrap argument prefix that confines a process to its
session workspace: read-only system directories, a private /tmp, no
network, no capabilities and a cleared environment.
"""

import subprocess
import shutil
from pathlib import Path
from typing import List, Mapping, Optional

import structlog


logger = structlog.get_logger(__name__)

SANDBOX_WORKSPACE = "/workspace"
SANDBOX_PATH = "/usr/local/bin:/usr/bin:/bin"

_READONLY_DIRS = ("/usr", "/lib", "/lib64", "/lib32", "/bin", "/sbin")
_READONLY_FILES = ("/etc/alternatives", "/etc/ld.so.cache", "/etc/ld.so.conf", "/etc/ld.so.conf.d")


def check_bwrap_available(bwrap_path: str = "bwrap") -> bool:
    """
    Check whether Bubblewrap is installed and can create a sandbox.

    Args:
        bwrap_path: Executable name or path

    Returns:
        True if a trivial sandbox starts successfully, False otherwise
    """
    resolved = shutil.which(bwrap_path)
    if not resolved:
        return False
    try:
        result = subprocess.run(
            [resolved, "--ro-bind", "/", "/", "--unshare-all", "--die-with-parent", "true"],
            capture_output=True,
            timeout=5,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("Bubblewrap availability check failed", error=str(e))
        return False
    if result.returncode != 0:
        logger.warning(
            "Bubblewrap cannot create namespaces",
            stderr=result.stderr.decode("utf-8", errors="replace").strip(),
        )
        return False
    return True


def get_bwrap_version(bwrap_path: str = "bwrap") -> Optional[str]:
    """
    Get the Bubblewrap version.

    Returns:
        Version string (e.g., "0.8.0"), or None when it cannot be determined
    """
    try:
        result = subprocess.run([bwrap_path, "--version"], capture_output=True, text=True, timeout=5)
    except (OSError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0 or not result.stdout.strip():
        return None
    # Output looks like "bubblewrap 0.8.0"
    return result.stdout.strip().split()[-1]


def build_bwrap_prefix(
    bwrap_path: str,
    workspace: Path,
    env: Optional[Mapping[str, str]] = None,
    allow_network: bool = False,
) -> List[str]:
    """
    Build the Bubblewrap arguments placed before the confined program.

    The workspace is mounted read-write at /workspace and becomes the
    working directory; nothing else on the host is writable.

    Args:
        bwrap_path: Resolved Bubblewrap executable
        workspace: Host directory exposed to the program
        env: Environment variables set inside the sandbox
        allow_network: Keep the host network namespace

    Returns:
        List of bwrap command arguments ending with "--"
    """
    args = [bwrap_path]
    for directory in _READONLY_DIRS:
        args += ["--ro-bind-try", directory, directory]
    for path in _READONLY_FILES:
        args += ["--ro-bind-try", path, path]
    args += [
        # Workspace (writable)
        "--bind", str(workspace), SANDBOX_WORKSPACE,
        "--chdir", SANDBOX_WORKSPACE,
        "--tmpfs", "/tmp",
        "--proc", "/proc",
        "--dev", "/dev",
        # Namespace isolation
        "--unshare-all",
    ]
    if allow_network:
        args.append("--share-net")
    args += [
        # Process management
        "--die-with-parent",
        "--new-session",
        # Environment
        "--clearenv",
        "--setenv", "PATH", SANDBOX_PATH,
        "--setenv", "HOME", SANDBOX_WORKSPACE,
        "--setenv", "TMPDIR", "/tmp",
        "--setenv", "LANG", "C.UTF-8",
    ]
    for key, value in (env or {}).items():
        args += ["--setenv", key, value]
    args += [
        # Security
        "--cap-drop", "ALL",
        "--",
    ]
    return args
