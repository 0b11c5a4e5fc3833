"""
Pytest configuration and shared fixtures for the engine tests.
"""
import shutil
from pathlib import Path

import pytest

from cppengine.domain.entities import Session


def pytest_configure(config):
    """Register the markers used by the suite."""
    config.addinivalue_line("markers", "unit: fast tests without external processes")
    config.addinivalue_line("markers", "integration: tests that spawn real compilers or programs")


GXX = shutil.which("g++")
GCC = shutil.which("gcc")

requires_gxx = pytest.mark.skipif(GXX is None, reason="g++ is not installed")
requires_gcc = pytest.mark.skipif(GCC is None, reason="gcc is not installed")


@pytest.fixture
def session(tmp_path: Path) -> Session:
    """A session whose workspace lives under pytest's tmp_path."""
    workspace = tmp_path / "cppengine-test"
    workspace.mkdir()
    return Session(session_id="0" * 32, workspace=workspace, request_id="req-test")


HELLO_CPP = """#include <iostream>
int main() {
    std::cout << "Hello" << std::endl;
    return 0;
}
"""

ECHO_SUM_CPP = """#include <iostream>
int main() {
    int a, b;
    std::cin >> a >> b;
    std::cout << a + b << "\\n";
    return 0;
}
"""

INFINITE_LOOP_CPP = """int main() {
    volatile unsigned long counter = 0;
    while (true) { counter++; }
    return 0;
}
"""

SEGFAULT_C = """#include <stdio.h>
int main(void) {
    int *p = 0;
    *p = 42;
    printf("%d\\n", *p);
    return 0;
}
"""

MISSING_SEMICOLON_CPP = """#include <iostream>
int main() {
    std::cout << "oops" << std::endl
    return 0;
}
"""

BUFFER_OVERFLOW_C = """#include <stdio.h>
#include <string.h>
void copy(const char *input) {
    char buf[10];
    strcpy(buf, input);
    printf("%s\\n", buf);
}
int main(void) {
    copy("this string is far too long for the buffer");
    return 0;
}
"""
