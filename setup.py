"""
Setup script for cppengine
"""

from setuptools import setup, find_packages
import pathlib

# Read the README file
HERE = pathlib.Path(__file__).parent
README = (HERE / "README.md").read_text(encoding="utf-8")

# Basic setup configuration
setup(
    name="cppengine",
    version="1.0.0",
    description="Sandboxed compile, run and static analysis engine for C/C++ submissions",
    long_description=README,
    long_description_content_type="text/markdown",
    package_dir={"": "runtime"},
    packages=find_packages(where="runtime", exclude=["*.tests", "*.tests.*"]),
    include_package_data=True,
    python_requires=">=3.10",
    install_requires=[
        "psutil>=7.1.3",
        "pydantic>=2.11.5",
        "pydantic-settings>=2.12.0",
        "pyyaml>=6.0.1",
        "structlog>=24.1.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0.0",
            "pytest-asyncio>=0.23.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "cppengine=cppengine.interfaces.cli.main:entry_point",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: C",
        "Programming Language :: C++",
        "Operating System :: POSIX :: Linux",
    ],
    keywords="sandbox compiler static-analysis clang-tidy cppcheck education",
)
