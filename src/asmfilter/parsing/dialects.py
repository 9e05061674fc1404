"""
Assembly dialect descriptors: comment, label and directive syntax per target.
Selected once per filtering call; the classifier never branches on target names.
"""
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Dialect:
    name: str
    comment_starts: Tuple[str, ...]
    label_suffix: str = ":"
    directive_prefix: str = "."

    def starts_comment(self, text: str) -> bool:
        return text.startswith(self.comment_starts)

    def strip_comment(self, text: str) -> str:
        """Cut a trailing comment, ignoring markers inside double quotes."""
        in_quotes = False
        i = 0
        while i < len(text):
            ch = text[i]
            if ch == '"' and (i == 0 or text[i - 1] != "\\"):
                in_quotes = not in_quotes
            elif not in_quotes and text.startswith(self.comment_starts, i):
                return text[:i]
            i += 1
        return text


GNU = Dialect("gnu", ("#", ";", "//"))
ARM = Dialect("arm", ("@", "//"))
AARCH64 = Dialect("aarch64", ("//",))
RISCV = Dialect("riscv", ("#",))
MIPS = Dialect("mips", ("#",))
AVR = Dialect("avr", (";",))
PTX = Dialect("ptx", ("//",))

_DIALECTS = {d.name: d for d in (GNU, ARM, AARCH64, RISCV, MIPS, AVR, PTX)}

SUPPORTED_DIALECTS = tuple(sorted(_DIALECTS))


def get_dialect(name: str) -> Dialect:
    """Look up a dialect by name, falling back to GNU syntax."""
    return _DIALECTS.get((name or "").lower(), GNU)


def is_supported(name: str) -> bool:
    return (name or "").lower() in _DIALECTS
