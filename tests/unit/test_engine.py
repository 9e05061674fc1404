"""
Tests for FilterEngine: refresh, flag toggling, user-file inference and
error reporting. The watchdog observer is mocked out.
"""
from unittest.mock import patch, MagicMock

import pytest
from asmfilter.engine import FilterEngine
from asmfilter.parsing import process_assembly
from asmfilter.parsing.options import FilterOptions
from asmfilter.utils.config import ConfigManager

LISTING = (
    '\t.file\t"example.cpp"\n'
    '\t.file 1 "/tmp/build/example.cpp"\n'
    '\t.file 2 "/usr/include/c++/13/iostream"\n'
    "\t.globl\tsquare\n"
    "square:\n"
    "\t.loc 1 2 0\n"
    "\timul\tedi, edi\n"
    "\t.loc 2 10 0\n"
    "\tnop\n"
    "\t.loc 1 3 0\n"
    "\tret\n"
)


@pytest.fixture
def config(tmp_path):
    with patch.object(ConfigManager, "__init__", lambda self: None):
        mgr = ConfigManager()
        mgr.config_dir = tmp_path / ".asmfilter"
        mgr.config_file = mgr.config_dir / "config.json"
        mgr.config = mgr.load_config()
    mgr.config["log_file"] = str(tmp_path / "engine.log")
    return mgr


@pytest.fixture
def listing(tmp_path):
    path = tmp_path / "example.s"
    path.write_text(LISTING)
    return path


def _engine(listing, config, **kwargs):
    with patch("asmfilter.engine.FileWatcher"):
        return FilterEngine(str(listing), config_manager=config, **kwargs)


class TestRefresh:
    def test_uses_config_filters(self, listing, config):
        engine = _engine(listing, config)
        engine.refresh()
        assert engine.state.options == config.filter_options()
        assert not any(text.lstrip().startswith(".") for text in engine.state.asm_lines)

    def test_globals_pinned_by_default(self, listing, config):
        engine = _engine(listing, config)
        engine.refresh()
        assert "square:" in engine.state.asm_lines

    def test_globals_not_pinned_when_disabled(self, listing, config):
        config.config["pin_globals"] = False
        engine = _engine(listing, config)
        engine.refresh()
        assert "square:" not in engine.state.asm_lines

    def test_extra_pins(self, tmp_path, config):
        path = tmp_path / "pins.s"
        path.write_text("entry:\n\tret\n")
        engine = _engine(path, config, options=FilterOptions(labels=True), pinned_labels=["entry"])
        engine.refresh()
        assert engine.state.asm_lines == ["entry:", "\tret"]

    def test_infers_user_files(self, listing, config):
        engine = _engine(listing, config, options=FilterOptions(directives=True, library_code=True))
        engine.refresh()
        assert "\tnop" not in engine.state.asm_lines
        assert "\timul\tedi, edi" in engine.state.asm_lines

    def test_explicit_user_files(self, listing, config):
        engine = _engine(
            listing, config,
            options=FilterOptions(directives=True, library_code=True),
            user_files=["/usr/include/c++/13/iostream", "/tmp/build/example.cpp"],
        )
        engine.refresh()
        # system headers stay library code even when listed
        assert "\tnop" not in engine.state.asm_lines

    def test_callback_fires(self, listing, config):
        engine = _engine(listing, config)
        engine.on_update_callback = MagicMock()
        engine.refresh()
        engine.on_update_callback.assert_called_once_with(engine.state)

    def test_missing_file_reports_error(self, tmp_path, config):
        engine = _engine(tmp_path / "gone.s", config)
        engine.on_update_callback = MagicMock()
        engine.refresh()
        assert engine.state.has_errors
        assert "Internal Engine Error" in engine.state.error_output
        engine.on_update_callback.assert_called_once()

    def test_undecodable_bytes(self, tmp_path, config):
        path = tmp_path / "bin.s"
        path.write_bytes(b"\t.byte\t\xff\n")
        engine = _engine(path, config, options=FilterOptions())
        engine.refresh()
        assert not engine.state.has_errors
        assert engine.state.asm_lines[0].encode("utf-8", "surrogateescape") == b"\t.byte\t\xff"

    def test_logs_to_file(self, listing, config, tmp_path):
        _engine(listing, config).refresh()
        assert "Refreshing" in (tmp_path / "engine.log").read_text()


class TestToggle:
    def test_toggle_refilters(self, listing, config):
        engine = _engine(listing, config, options=FilterOptions())
        engine.refresh()
        before = len(engine.state.asm_lines)
        engine.toggle("directives")
        assert engine.state.options.directives
        assert len(engine.state.asm_lines) < before

    def test_toggle_unknown_flag(self, listing, config):
        engine = _engine(listing, config)
        with pytest.raises(KeyError):
            engine.toggle("bogus")

    def test_set_options(self, listing, config):
        engine = _engine(listing, config)
        engine.set_options(FilterOptions())
        assert len(engine.state.asm_lines) == 11


class TestDialect:
    def test_dialect_from_config(self, listing, config):
        config.config["dialect"] = "arm"
        assert _engine(listing, config).state.dialect == "arm"

    def test_unknown_dialect_logged(self, listing, config, tmp_path):
        _engine(listing, config, dialect="pdp11")
        assert "Unknown dialect" in (tmp_path / "engine.log").read_text()


class TestDemangle:
    def test_missing_demangler_logged(self, listing, config, tmp_path):
        config.config["demangle"] = True
        with patch("shutil.which", return_value=None):
            engine = _engine(listing, config)
            engine.refresh()
        assert "c++filt not found" in (tmp_path / "engine.log").read_text()
        assert not engine.state.has_errors

    def test_demangle_passed_through(self, listing, config):
        config.config["demangle"] = True
        with patch("asmfilter.engine.has_demangler", return_value=True), \
                patch("asmfilter.engine.process_assembly", wraps=process_assembly) as mock_process:
            _engine(listing, config).refresh()
        assert mock_process.call_args.kwargs["demangle"] is True


class TestWatching:
    def test_start_refreshes_and_watches(self, listing, config):
        engine = _engine(listing, config)
        engine.start()
        assert engine.state.result is not None
        engine.watcher.start_watching.assert_called_once()
        path, callback = engine.watcher.start_watching.call_args[0]
        assert path == str(listing)

    def test_file_saved_refreshes(self, listing, config):
        engine = _engine(listing, config)
        engine.on_update_callback = MagicMock()
        engine._on_file_saved(str(listing))
        engine.on_update_callback.assert_called_once()

    def test_stop(self, listing, config):
        engine = _engine(listing, config)
        engine.stop()
        engine.watcher.stop_watching.assert_called_once()
