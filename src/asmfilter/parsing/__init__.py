from typing import Iterable, Optional, Union

from .dialects import Dialect, get_dialect, SUPPORTED_DIALECTS
from .lexer import ClassifiedLine, LineKind, SourceRef, classify, classify_lines
from .labels import LabelGraph, build_label_graph, collect_global_symbols
from .options import FilterOptions
from .pipeline import FilterResult, OutputLine, LabelRef, filter_asm
from .sources import FileTable, SourceResolver, infer_user_files
from .mapper import demangle_result
from .snapshot import canonical_json, OPTION_SUITES


def process_assembly(
    raw_asm: Union[str, bytes],
    options: Optional[FilterOptions] = None,
    user_files=None,
    dialect: Union[str, Dialect] = "gnu",
    pinned_labels: Iterable[str] = (),
    demangle: bool = False,
) -> FilterResult:
    """
    Pipeline: Raw listing -> Filtered -> (optionally) Demangled
    """
    result = filter_asm(raw_asm, options, user_files, dialect, pinned_labels)
    if demangle:
        result = demangle_result(result)
    return result
