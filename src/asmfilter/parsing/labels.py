"""
Label reachability: which labels are defined, and which are referenced from
lines that survive every other filter.

Labels are keyed by name only. A later definition of the same name replaces
the earlier one; scoping of reused local names is not modelled.
"""
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Optional, Set

from .lexer import ClassifiedLine, LineKind

RE_GLOBAL = re.compile(r"^\s*\.(globl|global)\s+(?P<names>(?:\"[^\"]*\"|[^#;@\"])+)")


@dataclass
class LabelNode:
    defined: bool = False
    defined_at: Optional[int] = None
    referenced_by: Set[int] = field(default_factory=set)


class LabelGraph:
    def __init__(self, pinned: Iterable[str] = ()):
        self.nodes: Dict[str, LabelNode] = {}
        self.pinned = frozenset(pinned)

    def _node(self, name: str) -> LabelNode:
        node = self.nodes.get(name)
        if node is None:
            node = self.nodes[name] = LabelNode()
        return node

    def define(self, name: str, position: int):
        node = self._node(name)
        node.defined = True
        node.defined_at = position

    def reference(self, name: str, position: int):
        self._node(name).referenced_by.add(position)

    def is_defined(self, name: str) -> bool:
        node = self.nodes.get(name)
        return node is not None and node.defined

    def is_referenced(self, name: str) -> bool:
        node = self.nodes.get(name)
        return node is not None and bool(node.referenced_by)

    def is_removable(self, name: str) -> bool:
        return not self.is_referenced(name) and name not in self.pinned

    def __contains__(self, name: str) -> bool:
        return name in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)


def build_label_graph(
    lines: Iterable[ClassifiedLine],
    survives: Callable[[ClassifiedLine], bool] = lambda line: True,
    pinned: Iterable[str] = (),
) -> LabelGraph:
    """
    One pass over the full classified sequence. Reference edges are only
    recorded from Code/Directive lines that `survives` keeps.
    """
    graph = LabelGraph(pinned)
    for line in lines:
        if line.kind == LineKind.LABEL:
            graph.define(line.label_name, line.position)
        elif line.referenced_labels and line.kind in (LineKind.CODE, LineKind.DIRECTIVE, LineKind.DATA_DIRECTIVE):
            if not survives(line):
                continue
            for name in line.referenced_names:
                graph.reference(name, line.position)
    return graph


def collect_global_symbols(raw_asm: str) -> Set[str]:
    """Names exported with .globl/.global; callers may pin these."""
    symbols = set()
    for raw in raw_asm.splitlines():
        m = RE_GLOBAL.match(raw)
        if m:
            for name in m.group("names").split(","):
                name = name.strip().strip("\"")
                if name:
                    symbols.add(name)
    return symbols
