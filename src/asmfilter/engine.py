import time
from typing import Callable, Iterable, List, Optional

from .parsing import FilterOptions, process_assembly, infer_user_files, collect_global_symbols
from .parsing.dialects import get_dialect, is_supported
from .parsing.mapper import has_demangler
from .utils.config import ConfigManager
from .utils.state import FilterViewState
from .utils.watcher import FileWatcher


class FilterEngine:
    def __init__(
        self,
        asm_file: str,
        config_manager: Optional[ConfigManager] = None,
        options: Optional[FilterOptions] = None,
        dialect: Optional[str] = None,
        user_files: Optional[Iterable[str]] = None,
        pinned_labels: Optional[Iterable[str]] = None,
    ):
        # Use provided config or load default
        self.config = config_manager if config_manager else ConfigManager()
        self.state = FilterViewState(
            asm_path=asm_file,
            options=options if options is not None else self.config.filter_options(),
            dialect=dialect or self.config.get("dialect", "gnu"),
            user_files=list(user_files if user_files is not None else self.config.get("user_files", [])),
        )
        self.extra_pins: List[str] = list(pinned_labels or [])
        self.demangle = bool(self.config.get("demangle", False))
        self.watcher = FileWatcher()
        self.on_update_callback: Optional[Callable[[FilterViewState], None]] = None
        self.log_file = self.config.get("log_file", "/tmp/asmfilter_engine.log")

        if not is_supported(self.state.dialect):
            self._log(f"Unknown dialect '{self.state.dialect}', using gnu")
        if self.demangle and not has_demangler():
            self._log("c++filt not found, symbols stay mangled")

    def _log(self, msg: str):
        try:
            with open(self.log_file, "a") as f:
                f.write(f"[{time.time()}] {msg}\n")
        except OSError:
            pass

    def start(self):
        self.refresh()
        self.watch()

    def watch(self):
        self.watcher.start_watching(self.state.asm_path, self._on_file_saved)

    def stop(self):
        self.watcher.stop_watching()

    def _on_file_saved(self, path: str):
        self.refresh()

    def set_options(self, options: FilterOptions):
        self.state.options = options
        self.refresh()

    def toggle(self, flag: str):
        """Flip one flag (camelCase or snake_case name) and re-filter."""
        self.set_options(self.state.options.toggled(flag))

    def _pinned_labels(self, raw_asm: str) -> set:
        pins = set(self.extra_pins)
        if self.config.get("pin_globals", True):
            pins |= collect_global_symbols(raw_asm)
        return pins

    def refresh(self):
        self._log(f"Refreshing {self.state.asm_path} with filters {self.state.options.enabled()}")
        try:
            with open(self.state.asm_path, "rb") as f:
                raw = f.read()
            raw_asm = raw.decode("utf-8", errors="surrogateescape")

            user_files = self.state.user_files or infer_user_files(raw_asm, get_dialect(self.state.dialect))
            if not self.state.user_files:
                self._log(f"Inferred user files: {sorted(user_files)}")

            result = process_assembly(
                raw_asm,
                self.state.options,
                user_files=user_files,
                dialect=self.state.dialect,
                pinned_labels=self._pinned_labels(raw_asm),
                demangle=self.demangle,
            )
            self.state.update_result(raw_asm, result, time.time())
            self._log(
                f"Filtered {result.filtered_line_count} lines, kept {len(result.asm)} "
                f"in {result.parsing_duration_hint:.4f}s"
            )

        except Exception as e:
            self._log(f"Refresh Error: {str(e)}")
            self.state.error_output = f"Internal Engine Error: {str(e)}"

        if self.on_update_callback:
            self.on_update_callback(self.state)
