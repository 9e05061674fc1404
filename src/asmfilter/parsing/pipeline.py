"""
Filter pipeline: classify and resolve the whole listing first, then apply the
drop rules in a single pass. A label is never dropped before every reference
to it has been seen.
"""
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from . import binary
from .dialects import Dialect, get_dialect
from .labels import LabelGraph, build_label_graph
from .lexer import ClassifiedLine, LineKind, SourceRef, classify_lines
from .options import FilterOptions
from .sources import SourceResolver, UserFiles


@dataclass
class LabelRef:
    name: str
    start_col: int
    end_col: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "range": {"startCol": self.start_col, "endCol": self.end_col}}


@dataclass
class OutputLine:
    text: str
    source: Optional[SourceRef] = None
    labels: List[LabelRef] = field(default_factory=list)
    address: Optional[int] = None
    opcodes: Optional[List[str]] = None
    position: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "text": self.text,
            "source": {"file": self.source.file, "line": self.source.line} if self.source else None,
            "labels": [ref.to_dict() for ref in self.labels],
        }
        if self.opcodes is not None:
            data["address"] = self.address
            data["opcodes"] = list(self.opcodes)
        return data


@dataclass
class FilterResult:
    asm: List[OutputLine] = field(default_factory=list)
    label_definitions: Dict[str, int] = field(default_factory=dict)
    filtered_line_count: int = 0
    # Advisory only; excluded from equality checks
    parsing_duration_hint: float = field(default=0.0, compare=False)

    @property
    def texts(self) -> List[str]:
        return [line.text for line in self.asm]

    @property
    def positions(self) -> List[int]:
        return [line.position for line in self.asm]

    def to_text(self) -> str:
        return "\n".join(self.texts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asm": [line.to_dict() for line in self.asm],
            "labelDefinitions": dict(self.label_definitions),
            "filteredCount": self.filtered_line_count,
            "parsingTime": self.parsing_duration_hint,
        }


def split_lines(raw_asm: Union[str, bytes]) -> List[str]:
    """Split on newlines only. Undecodable bytes survive via surrogateescape."""
    if isinstance(raw_asm, (bytes, bytearray)):
        raw_asm = bytes(raw_asm).decode("utf-8", errors="surrogateescape")
    if not raw_asm:
        return []
    lines = raw_asm.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


def is_dropped(line: ClassifiedLine, options: FilterOptions) -> bool:
    """Every drop rule except label reachability."""
    kind = line.kind
    if kind == LineKind.BLANK:
        return True
    if kind == LineKind.COMMENT:
        return options.comment_only
    if options.library_code and line.is_library_code:
        return True
    if kind == LineKind.DIRECTIVE:
        return options.directives
    return False


def _is_retained(line: ClassifiedLine, options: FilterOptions, graph: LabelGraph) -> bool:
    if is_dropped(line, options):
        return False
    if line.kind == LineKind.LABEL and options.labels:
        return not graph.is_removable(line.label_name)
    return True


def filter_asm(
    raw_asm: Union[str, bytes],
    options: Optional[FilterOptions] = None,
    user_files: UserFiles = None,
    dialect: Union[str, Dialect] = "gnu",
    pinned_labels: Iterable[str] = (),
) -> FilterResult:
    """
    Filter a raw compiler listing. Same inputs always give the same result,
    apart from `parsing_duration_hint`.
    """
    started = time.perf_counter()
    options = options or FilterOptions()
    if not isinstance(options, FilterOptions):
        raise TypeError(f"options must be FilterOptions, got {type(options).__name__}")
    if not isinstance(dialect, Dialect):
        dialect = get_dialect(dialect)

    raw_lines = split_lines(raw_asm)

    # Phase 1: classify, resolve and graph the complete sequence
    classified = classify_lines(raw_lines, dialect)
    resolved = SourceResolver(user_files, mask_paths=options.mask_filenames).resolve(classified)
    graph = build_label_graph(resolved, lambda line: not is_dropped(line, options), pinned_labels)

    # Phase 2: drop decisions
    retained = [line for line in resolved if _is_retained(line, options, graph)]

    label_definitions: Dict[str, int] = {}
    for out_idx, line in enumerate(retained, start=1):
        if line.kind == LineKind.LABEL:
            label_definitions[line.label_name] = out_idx

    asm: List[OutputLine] = []
    for line in retained:
        rendered = options.binary and line.has_payload
        shift = binary.column_shift(line) if rendered else 0
        refs = [
            LabelRef(tok.name, tok.start + shift + 1, tok.end + shift + 1)
            for tok in line.referenced_labels
            if tok.name in label_definitions
        ]
        asm.append(OutputLine(
            text=binary.render(line) if rendered else line.text,
            source=line.source,
            labels=refs,
            address=line.address if rendered else None,
            opcodes=list(line.opcodes) if rendered else None,
            position=line.position,
        ))

    return FilterResult(
        asm=asm,
        label_definitions=label_definitions,
        filtered_line_count=len(raw_lines) - len(asm),
        parsing_duration_hint=time.perf_counter() - started,
    )
