from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..parsing.options import FilterOptions
from ..parsing.pipeline import FilterResult


@dataclass
class FilterViewState:
    """
    The single source of truth for what the viewer displays.
    """
    asm_path: str = ""
    raw_asm: str = ""
    options: FilterOptions = field(default_factory=FilterOptions)
    dialect: str = "gnu"
    user_files: List[str] = field(default_factory=list)

    # Filter Output
    result: Optional[FilterResult] = None

    # Errors
    error_output: str = ""
    last_update: float = 0.0

    @property
    def has_errors(self) -> bool:
        return bool(self.error_output)

    @property
    def asm_lines(self) -> List[str]:
        return self.result.texts if self.result else []

    @property
    def filtered_count(self) -> int:
        return self.result.filtered_line_count if self.result else 0

    def get_source_line_for_asm(self, asm_idx: int) -> Optional[int]:
        if not self.result or not 0 <= asm_idx < len(self.result.asm):
            return None
        source = self.result.asm[asm_idx].source
        return source.line if source else None

    def source_mapping(self) -> Dict[int, int]:
        """asm output index -> source line, for lines that have one."""
        mapping = {}
        for idx, line in enumerate(self.result.asm if self.result else []):
            if line.source:
                mapping[idx] = line.source.line
        return mapping

    def update_result(self, raw_asm: str, result: FilterResult, timestamp: float):
        self.raw_asm = raw_asm
        self.result = result
        self.error_output = ""
        self.last_update = timestamp
