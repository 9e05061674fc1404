"""
Tests for the FilterApp TUI wiring (ui/app.py).

The engine is replaced by a small fake that filters an in-memory listing,
so these tests exercise the widget tree, the state-update message handling
and the flag toggle bindings without touching the filesystem watcher.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from textual.widgets import Footer, Static, TextArea

from asmfilter.engine import FilterEngine
from asmfilter.parsing import filter_asm
from asmfilter.parsing.options import FilterOptions
from asmfilter.ui.app import FilterApp, AsmLine
from asmfilter.utils.config import ConfigManager
from asmfilter.utils.state import FilterViewState

LISTING = (
    '\t.file 1 "/src/square.c"\n'
    "\t.text\n"
    "\t.globl\tsquare\n"
    "square:\n"
    "\t.loc 1 2 0\n"
    "\tmov\teax, edi\n"
    "\timul\teax, edi\n"
    "\t.loc 1 3 0\n"
    "\tret\n"
)


# ────────────────────────────────────────────────────────────
# Fake engine with the FilterEngine interface
# ────────────────────────────────────────────────────────────
class FakeEngine:
    def __init__(self, raw_asm: str = LISTING, options: FilterOptions = FilterOptions()):
        self.raw_asm = raw_asm
        self.state = FilterViewState(asm_path="/tmp/square.s", options=options)
        self.on_update_callback = None
        self._started = False
        self._stopped = False
        self._refreshed = False
        self.toggled = []

    def _emit(self):
        self.state.update_result(self.raw_asm, filter_asm(self.raw_asm, self.state.options), 0.0)
        if self.on_update_callback:
            self.on_update_callback(self.state)

    def start(self):
        self._started = True
        self._emit()

    def stop(self):
        self._stopped = True

    def refresh(self):
        self._refreshed = True
        self._emit()

    def toggle(self, flag: str):
        self.toggled.append(flag)
        self.state.options = self.state.options.toggled(flag)
        self._emit()


# ────────────────────────────────────────────────────────────
# App composition tests
# ────────────────────────────────────────────────────────────
class TestAppComposition:
    """Verify the widget tree is assembled correctly."""

    @pytest.mark.asyncio
    async def test_app_has_asm_lines(self):
        engine = FakeEngine()
        app = FilterApp("/tmp/square.s", engine)
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            assert len(pilot.app.query(AsmLine)) == 9

    @pytest.mark.asyncio
    async def test_app_has_error_view(self):
        app = FilterApp("/tmp/square.s", FakeEngine())
        async with app.run_test(size=(120, 40)) as pilot:
            ev = pilot.app.query_one("#error-view", TextArea)
            assert ev.read_only is True

    @pytest.mark.asyncio
    async def test_app_has_footer_and_status(self):
        app = FilterApp("/tmp/square.s", FakeEngine())
        async with app.run_test(size=(120, 40)) as pilot:
            assert pilot.app.query_one(Footer) is not None
            assert pilot.app.query_one("#status", Static) is not None


class TestAppInit:
    def test_engine_callback_is_set(self):
        engine = FakeEngine()
        FilterApp("/tmp/square.s", engine)
        assert engine.on_update_callback is not None

    def test_engine_created_when_missing(self, tmp_path):
        path = tmp_path / "square.s"
        path.write_text(LISTING)
        with patch.object(ConfigManager, "__init__", lambda self: None), \
                patch.object(ConfigManager, "get", lambda self, key, default=None: default), \
                patch.object(ConfigManager, "filter_options", lambda self: FilterOptions()):
            app = FilterApp(str(path))
        assert isinstance(app.engine, FilterEngine)


# ────────────────────────────────────────────────────────────
# Engine integration
# ────────────────────────────────────────────────────────────
class TestEngineIntegration:
    @pytest.mark.asyncio
    async def test_engine_started_on_mount(self):
        engine = FakeEngine()
        app = FilterApp("/tmp/square.s", engine)
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            assert engine._started

    @pytest.mark.asyncio
    async def test_refresh_key(self):
        engine = FakeEngine()
        app = FilterApp("/tmp/square.s", engine)
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            await pilot.press("r")
            await pilot.pause()
            assert engine._refreshed

    @pytest.mark.asyncio
    async def test_directive_toggle_refilters(self):
        engine = FakeEngine()
        app = FilterApp("/tmp/square.s", engine)
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            await pilot.press("d")
            await pilot.pause()
            assert engine.toggled == ["directives"]
            assert pilot.app._asm_lines == ["square:", "\tmov\teax, edi", "\timul\teax, edi", "\tret"]

    @pytest.mark.asyncio
    async def test_flag_bindings(self):
        engine = FakeEngine()
        app = FilterApp("/tmp/square.s", engine)
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            for key in ("l", "c", "b", "y", "m"):
                await pilot.press(key)
            await pilot.pause()
            assert engine.toggled == ["labels", "commentOnly", "binary", "libraryCode", "dontMaskFilenames"]

    @pytest.mark.asyncio
    async def test_error_mode(self):
        engine = FakeEngine()
        app = FilterApp("/tmp/square.s", engine)
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            engine.state.error_output = "Internal Engine Error: boom"
            pilot.app.post_message(FilterApp.StateUpdated(engine.state))
            await pilot.pause()
            ev = pilot.app.query_one("#error-view", TextArea)
            assert ev.display is True
            assert "boom" in ev.text


# ────────────────────────────────────────────────────────────
# Cursor and source-line siblings
# ────────────────────────────────────────────────────────────
class TestCursor:
    @pytest.mark.asyncio
    async def test_cursor_moves(self):
        app = FilterApp("/tmp/square.s", FakeEngine())
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            assert pilot.app.get_line() == '\t.file 1 "/src/square.c"'
            await pilot.press("down")
            await pilot.pause()
            assert pilot.app.get_line() == "\t.text"

    @pytest.mark.asyncio
    async def test_cursor_stops_at_top(self):
        app = FilterApp("/tmp/square.s", FakeEngine())
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            await pilot.press("up")
            await pilot.pause()
            assert pilot.app._cursor == 0

    @pytest.mark.asyncio
    async def test_siblings_share_source_line(self):
        engine = FakeEngine(options=FilterOptions(directives=True))
        app = FilterApp("/tmp/square.s", engine)
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            # square:, mov, imul, ret; mov and imul come from line 2
            await pilot.press("down")
            await pilot.pause()
            assert pilot.app._sibling_lines == {2}
