import sys
import os
import time
import argparse
from rich.console import Console
from .engine import FilterEngine
from .parsing import FilterOptions, canonical_json
from .parsing.dialects import SUPPORTED_DIALECTS, is_supported
from .ui.app import run_tui
from .utils.config import ConfigManager
from .utils.highlighter import highlight_result, build_status

# CLI switch -> FilterOptions field
FLAG_SWITCHES = {
    "directives": "directives",
    "labels": "labels",
    "comments": "comment_only",
    "binary": "binary",
    "library": "library_code",
    "dont_mask_filenames": "dont_mask_filenames",
}


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser."""
    parser = argparse.ArgumentParser(description="asmfilter: compiler assembly output filter")
    parser.add_argument("file", nargs="?", help="Assembly listing (.s/.asm) or objdump output")
    parser.add_argument("--directives", action="store_true", help="Drop non-data directives")
    parser.add_argument("--labels", action="store_true", help="Drop unreferenced labels")
    parser.add_argument("--comments", action="store_true", help="Drop full-line comments")
    parser.add_argument("--binary", action="store_true", help="Show address and opcode columns")
    parser.add_argument("--library", action="store_true", help="Drop lines from non-user source files")
    parser.add_argument("--dont-mask-filenames", action="store_true", help="Keep absolute paths verbatim")
    parser.add_argument("--no-filters", action="store_true", help="Ignore configured filters")
    parser.add_argument("--dialect", help=f"Assembly dialect ({', '.join(SUPPORTED_DIALECTS)})")
    parser.add_argument("--user-file", action="append", default=None, dest="user_files",
                        help="Source path that counts as user code (repeatable)")
    parser.add_argument("--pin", action="append", default=[], help="Label that is never dropped (repeatable)")
    parser.add_argument("--json", action="store_true", help="Print the canonical JSON result")
    parser.add_argument("--demangle", action="store_true", help="Demangle C++ symbols with c++filt")
    parser.add_argument("--watch", action="store_true", help="Re-filter whenever the file changes")
    parser.add_argument("--tui", action="store_true", help="Open the interactive viewer")
    return parser


def _options_from_args(args, config: ConfigManager) -> FilterOptions:
    requested = {field: getattr(args, switch) for switch, field in FLAG_SWITCHES.items()}
    if args.no_filters:
        return FilterOptions(**requested)
    if any(requested.values()):
        return FilterOptions(**requested)
    return config.filter_options()


def _print_state(console: Console, state, as_json: bool):
    if state.has_errors:
        console.print(state.error_output, style="bold red")
        return
    if as_json:
        console.out(canonical_json(state.result), end="")
        return
    console.print(highlight_result(state.result, line_numbers=True))
    console.print(build_status(state.result, state.options))


def run():
    parser = _build_parser()
    args = parser.parse_args()

    if not args.file:
        print("Error: No assembly file specified.")
        print("Usage: asmfilter <listing.s> [--directives] [--labels] [--comments] ...")
        sys.exit(1)

    # Resolve to absolute path immediately
    abs_path = os.path.abspath(args.file)

    if not os.path.exists(abs_path):
        print(f"Error: File not found: {abs_path}")
        sys.exit(1)

    if args.dialect and not is_supported(args.dialect):
        print(f"Warning: Unknown dialect '{args.dialect}', using gnu")

    config = ConfigManager()
    if args.demangle:
        config.config["demangle"] = True

    engine = FilterEngine(
        abs_path,
        config_manager=config,
        options=_options_from_args(args, config),
        dialect=args.dialect,
        user_files=args.user_files,
        pinned_labels=args.pin,
    )

    try:
        if args.tui:
            run_tui(abs_path, engine)
            return

        console = Console(highlight=False)
        engine.refresh()
        _print_state(console, engine.state, args.json)
        if engine.state.has_errors:
            sys.exit(1)

        if args.watch:
            engine.on_update_callback = lambda state: _print_state(console, state, args.json)
            engine.watch()
            try:
                while True:
                    time.sleep(0.5)
            finally:
                engine.stop()
    except KeyboardInterrupt:
        pass
    except Exception as e:
        print(f"Fatal Error: {e}")
        sys.exit(1)

if __name__ == "__main__":
    run()
