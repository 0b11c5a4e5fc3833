"""
Memory Layout

Builds a memory trace of a program from its declarations: one stack frame
per function with typed local variables, heap objects for every tracked
allocation and pointer edges between them. Sizes follow the LP64 data
model; addresses are synthetic but stable for a given source.
"""

import re
from typing import Dict, List, Optional, Tuple

from cppengine.domain.source import SourceText
from cppengine.domain.value_objects import (
    HeapObject,
    MemoryTrace,
    PointerEdge,
    StackFrame,
    Variable,
)


TYPE_SIZES: Dict[str, int] = {
    "char": 1,
    "bool": 1,
    "short": 2,
    "int": 4,
    "unsigned": 4,
    "float": 4,
    "long": 8,
    "long long": 8,
    "double": 8,
    "size_t": 8,
    "std::string": 32,
    "string": 32,
}
POINTER_SIZE = 8
DEFAULT_OBJECT_SIZE = 8
STACK_BASE = 0x7FFC_0000_0000
HEAP_BASE = 0x5555_0000_0000
HEAP_ALIGNMENT = 16

_TYPE_PATTERN = r"(?:unsigned\s+|signed\s+|const\s+)*(?:long\s+long|std::string|[A-Za-z_]\w*)"
_DECL_RE = re.compile(
    rf"(?:^|[;{{}}(,])\s*(?P<type>{_TYPE_PATTERN})\s*(?P<ptr>\*+|&)?\s*"
    r"(?P<name>[A-Za-z_]\w*)\s*(?:\[\s*(?P<count>\d+)\s*\])?\s*(?P<init>=[^;]*)?(?=[;,)])"
)
_NEW_RE = re.compile(r"new\s*(?P<type>[\w:]+)\s*(?:\[\s*(?P<count>[^\]]+)\s*\])?")
_MALLOC_RE = re.compile(r"(?:malloc|calloc)\s*\((?P<args>[^;]*)\)")
_SIZEOF_RE = re.compile(r"sizeof\s*\(\s*([\w:\s]+?)\s*\)")
_NOT_TYPES = frozenset({"return", "delete", "goto", "else", "case", "using", "typedef", "throw", "new"})


def type_size(type_name: str) -> int:
    """Estimated size in bytes of a scalar or library type."""
    cleaned = re.sub(r"\b(?:const|signed|static|volatile)\s+", "", type_name).strip()
    if cleaned.startswith("unsigned "):
        cleaned = cleaned[len("unsigned "):] or "unsigned"
    return TYPE_SIZES.get(cleaned, DEFAULT_OBJECT_SIZE)


def _evaluate_count(expression: Optional[str]) -> int:
    if not expression:
        return 1
    numbers = [int(n) for n in re.findall(r"\d+", expression)]
    if not numbers:
        return 1
    product = 1
    for n in numbers:
        product *= n
    return product


def _malloc_size(args: str) -> Tuple[str, int]:
    sizeof = _SIZEOF_RE.search(args)
    element_type = sizeof.group(1).strip() if sizeof else "char"
    rest = _SIZEOF_RE.sub("", args)
    count = _evaluate_count(rest)
    element = type_size(element_type) if sizeof else 1
    return element_type, element * count


class _AddressSpace:
    def __init__(self):
        self._stack = STACK_BASE
        self._heap = HEAP_BASE

    def push(self, size: int) -> str:
        self._stack -= max(size, 1)
        self._stack -= self._stack % 8
        return hex(self._stack)

    def allocate(self, size: int) -> str:
        address = self._heap
        self._heap += max(size, 1) + (-max(size, 1) % HEAP_ALIGNMENT)
        return hex(address)


def build_memory_trace(source: SourceText) -> MemoryTrace:
    """
    Derive the memory trace of a program from its declarations.

    Args:
        source: Parsed source text

    Returns:
        MemoryTrace with one frame per function definition
    """
    space = _AddressSpace()
    frames: List[StackFrame] = []
    heap: List[HeapObject] = []
    pointers: List[PointerEdge] = []

    for span in source.functions:
        body = source.code[span.body_start + 1:span.body_end]
        variables: List[Variable] = []
        for match in _DECL_RE.finditer(body):
            type_name = re.sub(r"\s+", " ", match.group("type")).strip()
            if type_name.split(" ")[-1] in _NOT_TYPES:
                continue
            name = match.group("name")
            pointer = match.group("ptr")
            count = int(match.group("count") or 1)
            size = POINTER_SIZE if pointer else type_size(type_name) * count
            line = source.line_of(span.body_start + 1 + match.start("name"))
            shown_type = f"{type_name}{pointer or ''}" + (f"[{count}]" if match.group("count") else "")
            address = space.push(size)
            variables.append(Variable(name=name, type=shown_type, size=size, line=line, address=address))

            init = match.group("init") or ""
            target = _heap_target(init)
            if target is not None and pointer and pointer.startswith("*"):
                heap_type, heap_size = target
                released = re.search(
                    rf"\bdelete\s*(?:\[\s*\])?\s*{re.escape(name)}\b|\bfree\s*\(\s*{re.escape(name)}\s*\)",
                    body[match.end():],
                )
                heap_address = space.allocate(heap_size)
                heap.append(
                    HeapObject(
                        address=heap_address,
                        type=heap_type,
                        size=heap_size,
                        line=line,
                        allocated=released is None,
                        owner=name,
                    )
                )
                pointers.append(PointerEdge(source=name, target=heap_address, kind="heap"))
            elif pointer == "*":
                referenced = re.match(r"=\s*&\s*([A-Za-z_]\w*)", init)
                if referenced:
                    pointers.append(PointerEdge(source=name, target=referenced.group(1), kind="stack"))
        frames.append(StackFrame(function=span.short_name, line=span.line, variables=tuple(variables)))

    return MemoryTrace(stack_frames=tuple(frames), heap_objects=tuple(heap), pointers=tuple(pointers))


def _heap_target(init: str) -> Optional[Tuple[str, int]]:
    allocation = _NEW_RE.search(init)
    if allocation:
        heap_type = allocation.group("type")
        count = _evaluate_count(allocation.group("count")) if allocation.group("count") else 1
        shown = f"{heap_type}[{count}]" if allocation.group("count") else heap_type
        return shown, type_size(heap_type) * count
    allocation = _MALLOC_RE.search(init)
    if allocation:
        return _malloc_size(allocation.group("args"))
    return None
