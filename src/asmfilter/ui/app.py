from textual.app import App, ComposeResult
from textual.widgets import Footer, Static, TextArea
from textual.containers import VerticalScroll, Vertical
from textual.binding import Binding
from textual.message import Message
from rich.text import Text
from ..engine import FilterEngine
from ..utils.state import FilterViewState
from ..utils.highlighter import highlight_asm_line, build_status

# User Palette
C_BG = "#1e1e1e"
C_TEXT = "#d4d4d4"
C_ACCENT1 = "#45d3ee" # Cyan
C_ACCENT2 = "#264f78" # Selection Blue
C_ACCENT4 = "#fecd91" # Orange

class AsmLine(Static): pass
class AsmScroll(VerticalScroll): BINDINGS = []

class FilterApp(App):
    """Filtered assembly viewer with per-flag toggles."""

    CSS = f"""
    Screen {{
        background: {C_BG};
        color: {C_TEXT};
    }}

    #main-layout {{ height: 1fr; width: 100%; }}
    #status {{ height: 1; padding: 0 1; }}
    #asm-container {{ height: 1fr; width: 1fr; }}
    #error-view {{ color: #f14c4c; display: none; margin: 1 2; }}

    AsmLine {{ width: 100%; height: 1; }}
    AsmLine.sibling {{ background: #252526; }}
    AsmLine.cursor  {{ background: {C_ACCENT2}; }}

    Footer {{ background: {C_BG}; color: {C_ACCENT1}; }}
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
        Binding("r", "refresh", "Reload", show=True),
        Binding("d", "toggle('directives')", "Directives", show=True),
        Binding("l", "toggle('labels')", "Labels", show=True),
        Binding("c", "toggle('commentOnly')", "Comments", show=True),
        Binding("b", "toggle('binary')", "Binary", show=True),
        Binding("y", "toggle('libraryCode')", "Library", show=True),
        Binding("m", "toggle('dontMaskFilenames')", "Paths", show=True),
        Binding("up", "cursor_up", "Up", show=False, priority=True),
        Binding("down", "cursor_down", "Down", show=False, priority=True),
        Binding("k", "cursor_up", show=False, priority=True),
        Binding("j", "cursor_down", show=False, priority=True),
    ]

    class StateUpdated(Message):
        def __init__(self, state: FilterViewState) -> None:
            super().__init__()
            self.state = state

    def __init__(self, asm_file: str, engine: FilterEngine = None):
        super().__init__()
        self.engine = engine if engine is not None else FilterEngine(asm_file)
        self.engine.on_update_callback = lambda state: self.post_message(self.StateUpdated(state))
        self._cursor = 0
        self._asm_lines: list[str] = []
        self._asm_mapping: dict[int, int] = {}  # asm_line_idx -> source_line_number
        self._sibling_lines: set[int] = set()   # asm indices sharing the cursor's source line
        self._generation = 0

    def compose(self) -> ComposeResult:
        with Vertical(id="main-layout"):
            yield Static(id="status")
            yield TextArea(id="error-view", read_only=True)
            yield AsmScroll(id="asm-container")
        yield Footer()

    def on_mount(self) -> None:
        self.engine.start()

    def on_unmount(self) -> None:
        self.engine.stop()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _render_line(self, idx: int) -> Text:
        if idx >= len(self._asm_lines): return Text("")
        row = Text()
        # Gutter indicator: cursor ▶, sibling │, or blank
        if idx == self._cursor:
            row.append("▶ ", style=f"bold {C_ACCENT4}")
        elif idx in self._sibling_lines:
            row.append("│ ", style=f"bold {C_ACCENT1}")
        else:
            row.append("  ")
        row.append_text(highlight_asm_line(self._asm_lines[idx], ""))
        src = self._asm_mapping.get(idx)
        if src is not None:
            row.append(f"  :{src}", style="dim")
        return row

    def _populate_asm_lines(self) -> None:
        scroll = self.query_one("#asm-container", AsmScroll)
        scroll.query(AsmLine).remove()
        self._generation += 1
        widgets = []
        for i in range(len(self._asm_lines)):
            widget = AsmLine(self._render_line(i), id=f"asm-line-{self._generation}-{i}")
            if i == self._cursor: widget.add_class("cursor")
            elif i in self._sibling_lines: widget.add_class("sibling")
            widgets.append(widget)
        if widgets: scroll.mount(*widgets)

    def _compute_siblings(self) -> set[int]:
        """Find all asm line indices that map to the same source line as the cursor."""
        cursor_src = self._asm_mapping.get(self._cursor)
        if cursor_src is None:
            return set()
        return {
            idx for idx, src in self._asm_mapping.items()
            if src == cursor_src and idx != self._cursor
        }

    # ------------------------------------------------------------------
    # Cursor movement
    # ------------------------------------------------------------------

    def _move_cursor(self, new: int) -> None:
        if new < 0 or new >= len(self._asm_lines): return
        old, self._cursor = self._cursor, new

        old_siblings = self._sibling_lines
        self._sibling_lines = self._compute_siblings()
        dirty = {old} | old_siblings | {new} | self._sibling_lines

        for idx in dirty:
            matches = self.query(f"#asm-line-{self._generation}-{idx}")
            if not matches:
                continue
            w = matches.first(AsmLine)
            w.set_class(idx == new, "cursor")
            w.set_class(idx in self._sibling_lines, "sibling")
            w.update(self._render_line(idx))
            if idx == new:
                w.scroll_visible()

    def action_cursor_up(self) -> None: self._move_cursor(self._cursor - 1)
    def action_cursor_down(self) -> None: self._move_cursor(self._cursor + 1)

    def action_refresh(self) -> None:
        self.engine.refresh()

    def action_toggle(self, flag: str) -> None:
        self.engine.toggle(flag)

    def on_filter_app_state_updated(self, message: StateUpdated) -> None:
        state = message.state
        error_view, scroll = self.query_one("#error-view", TextArea), self.query_one("#asm-container", AsmScroll)
        self.query_one("#status", Static).update(build_status(state.result, state.options))
        if state.has_errors:
            scroll.display, error_view.display = False, True
            error_view.text = state.error_output
            return

        scroll.display, error_view.display = True, False
        self._asm_lines = state.asm_lines
        self._asm_mapping = state.source_mapping()
        if self._cursor >= len(self._asm_lines):
            self._cursor = max(0, len(self._asm_lines) - 1)
        self._sibling_lines = self._compute_siblings()
        self._populate_asm_lines()

    def get_line(self) -> str:
        """Return the text of the currently selected line."""
        if self._asm_lines:
            return self._asm_lines[self._cursor]
        return ""

def run_tui(asm_file: str, engine: FilterEngine = None):
    app = FilterApp(asm_file, engine)
    app.run()
