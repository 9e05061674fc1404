"""
Binary mode rendering: address and opcode-byte columns in front of the mnemonic.
Display only; never consulted for drop decisions.
"""
from .lexer import ClassifiedLine

ADDRESS_WIDTH = 8
HEX_COLUMN_WIDTH = 24


def format_opcodes(opcodes) -> str:
    return " ".join(opcodes).ljust(HEX_COLUMN_WIDTH)


def column_prefix(line: ClassifiedLine) -> str:
    return f"{line.address:>{ADDRESS_WIDTH}x}:\t{format_opcodes(line.opcodes)}\t"


def render(line: ClassifiedLine) -> str:
    """Lines without byte payload come back unchanged."""
    if not line.has_payload:
        return line.text
    return column_prefix(line) + line.text[line.mnemonic_start:]


def column_shift(line: ClassifiedLine) -> int:
    """How far `render` moves the mnemonic text to the right (may be negative)."""
    if not line.has_payload:
        return 0
    return len(column_prefix(line)) - line.mnemonic_start
