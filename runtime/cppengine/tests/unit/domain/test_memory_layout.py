"""
Unit tests for the memory trace builder.
"""

import pytest

from cppengine.domain.memory_layout import build_memory_trace, type_size
from cppengine.domain.source import SourceText
from cppengine.domain.value_objects import PointerEdge


pytestmark = pytest.mark.unit


PROGRAM = """int main() {
    int count = 3;
    int *values = new int[4];
    int *alias = &count;
    delete[] values;
    return 0;
}
"""


class TestTypeSize:
    """Tests for type_size."""

    @pytest.mark.parametrize("type_name,size", [
        ("char", 1),
        ("const int", 4),
        ("unsigned long", 8),
        ("double", 8),
        ("std::string", 32),
        ("Widget", 8),
    ])
    def test_sizes(self, type_name, size):
        assert type_size(type_name) == size


class TestBuildMemoryTrace:
    """Tests for build_memory_trace."""

    def test_stack_frame_variables(self):
        trace = build_memory_trace(SourceText(PROGRAM))
        assert len(trace.stack_frames) == 1
        frame = trace.stack_frames[0]
        assert frame.function == "main"
        assert [v.name for v in frame.variables] == ["count", "values", "alias"]
        assert [v.size for v in frame.variables] == [4, 8, 8]
        assert frame.variables[0].line == 2

    def test_released_heap_object(self):
        trace = build_memory_trace(SourceText(PROGRAM))
        assert len(trace.heap_objects) == 1
        heap = trace.heap_objects[0]
        assert heap.type == "int[4]"
        assert heap.size == 16
        assert heap.owner == "values"
        assert heap.allocated is False
        assert trace.heap_size == 0

    def test_leaked_heap_object_counts(self):
        code = "int main() {\n    double *d = new double[2];\n    return 0;\n}\n"
        trace = build_memory_trace(SourceText(code))
        assert trace.heap_objects[0].allocated is True
        assert trace.heap_size == 16

    def test_pointer_edges(self):
        trace = build_memory_trace(SourceText(PROGRAM))
        heap_address = trace.heap_objects[0].address
        assert PointerEdge(source="values", target=heap_address, kind="heap") in trace.pointers
        assert PointerEdge(source="alias", target="count", kind="stack") in trace.pointers

    def test_malloc_size_from_sizeof(self):
        code = "int main(void) {\n    int *p = malloc(10 * sizeof(int));\n    free(p);\n    return 0;\n}\n"
        trace = build_memory_trace(SourceText(code))
        assert trace.heap_objects[0].size == 40

    def test_addresses_stable(self):
        assert build_memory_trace(SourceText(PROGRAM)) == build_memory_trace(SourceText(PROGRAM))
