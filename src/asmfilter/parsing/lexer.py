import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import List, NamedTuple, Optional, Set, Tuple

from .dialects import Dialect, GNU

# --- UNIVERSAL REGEX REGISTRY ---

# 1. LABELS
# ELF/Mach-O: main:, .LBB0_1:, _main:, "?foo@@YAHXZ":
# GAS local:  1:, 2: (referenced as 1b, 2f)
# objdump:    0000000000401126 <main>:
RE_OBJDUMP_LABEL = re.compile(r"^[0-9a-fA-F]+ <(?P<name>[^>]+)>:\s*$")

# 2. OBJDUMP
# Code:    "  401126:\t55                   \tpush   %rbp"
# Source:  "/tmp/build/example.cpp:12 (discriminator 1)"
RE_OBJDUMP_CODE = re.compile(
    r"^\s*(?P<address>[0-9a-fA-F]+):\s+"
    r"(?P<opcodes>[0-9a-fA-F]{2}(?: [0-9a-fA-F]{2})*) *"
    r"(?:\t(?P<mnemonic>.*))?$"
)
RE_OBJDUMP_SOURCE = re.compile(r"^(?P<path>(?:/|<path>/|[A-Za-z]:\\)[^:]+):(?P<line>\d+)(?: \(discriminator \d+\))?\s*$")
RE_OBJDUMP_HEADER = re.compile(r"^(Disassembly of section .*:|\S+:\s+file format \S+)\s*$")

# 3. DATA DIRECTIVES (carry payload bytes)
DATA_DIRECTIVES = frozenset({
    "byte", "short", "word", "hword", "half", "long", "int", "quad", "octa", "value",
    "2byte", "4byte", "8byte", "dword", "xword",
    "ascii", "asciz", "string", "string8", "string16", "string32", "string64",
    "zero", "zerofill", "skip", "space", "fill",
    "float", "single", "double", "sleb128", "uleb128", "inst", "incbin",
    "b8", "b16", "b32", "b64", "u8", "u16", "u32", "u64",
})
RE_DC = re.compile(r"^dc(\.[a-z])?$", re.IGNORECASE)

# 4. DWARF / CodeView / verbose-asm mapping
RE_FILE_ARGS = re.compile(r"^\s+(?P<id>\d+)\s+\"(?P<first>[^\"]*)\"(?:\s+\"(?P<second>[^\"]*)\")?")
RE_LOC_ARGS = re.compile(r"^\s+(?P<id>\d+)\s+(?P<line>\d+)")
RE_CV_LOC_ARGS = re.compile(r"^\s+\d+\s+(?P<id>\d+)\s+(?P<line>\d+)")
RE_ANNOTATION = re.compile(r"^\s*(?P<path>[^\s:\"]+\.[A-Za-z0-9+]+):(?P<line>\d+):")

# 5. REFERENCES
RE_IDENTIFIER = re.compile(r"(?<![\w.@])[A-Za-z_.][\w.$]*")
RE_QUOTED = re.compile(r"\"((?:[^\"\\]|\\.)*)\"")
RE_OBJDUMP_TARGET = re.compile(r"<(?P<name>[^>+\s]+)(?:\+0x[0-9a-fA-F]+)?>")
RE_NUMERIC_REF = re.compile(r"(?<![\w.$])(?P<name>\d+)[bf](?![\w.$])")
RE_MNEMONIC = re.compile(r"^\s*\S+")


class LineKind(str, Enum):
    LABEL = "label"
    DIRECTIVE = "directive"
    DATA_DIRECTIVE = "data_directive"
    COMMENT = "comment"
    BLANK = "blank"
    CODE = "code"


class LabelToken(NamedTuple):
    """An identifier-shaped operand token; offsets index into the line text."""
    name: str
    start: int
    end: int


class SourceRef(NamedTuple):
    file_id: Optional[int]
    file: Optional[str]
    line: int


class SourceBinding(NamedTuple):
    """A file/line binding carried by the line itself (.loc, annotations)."""
    file_id: Optional[int]
    path: Optional[str]
    line: int


@dataclass(frozen=True)
class ClassifiedLine:
    position: int
    text: str
    kind: LineKind
    label_name: Optional[str] = None
    directive: Optional[str] = None
    referenced_labels: Tuple[LabelToken, ...] = ()
    declared_file: Optional[Tuple[int, str]] = None
    binding: Optional[SourceBinding] = None
    source: Optional[SourceRef] = None
    is_library_code: bool = False
    address: Optional[int] = None
    opcodes: Optional[Tuple[str, ...]] = None
    mnemonic_start: int = 0

    @property
    def referenced_names(self) -> Set[str]:
        return {tok.name for tok in self.referenced_labels}

    @property
    def has_payload(self) -> bool:
        return self.opcodes is not None


@lru_cache(maxsize=None)
def _label_pattern(suffix: str) -> "re.Pattern[str]":
    return re.compile(
        r"^(?:\"(?P<quoted>[^\"]+)\"|(?P<name>[A-Za-z_.$][\w.$]*|\d+))" + re.escape(suffix) + r"(?P<rest>.*)$"
    )


@lru_cache(maxsize=None)
def _directive_pattern(prefix: str) -> "re.Pattern[str]":
    return re.compile(r"^\s*" + re.escape(prefix) + r"(?P<name>[A-Za-z_0-9][\w.]*)?(?P<args>.*)$")


def is_data_directive(name: str) -> bool:
    name = name.lower()
    return name in DATA_DIRECTIVES or bool(RE_DC.match(name))


def _scan_identifiers(text: str, start: int, end: int, skip_quoted: bool) -> List[LabelToken]:
    """Collect identifier tokens in text[start:end], offsets relative to text."""
    segment = text[start:end]
    tokens: List[LabelToken] = []
    quoted_spans = list(RE_QUOTED.finditer(segment))
    if not skip_quoted:
        for m in quoted_spans:
            if m.group(1):
                tokens.append(LabelToken(m.group(1), start + m.start(1), start + m.end(1)))
    # Blank quoted spans so identifiers inside strings are not scanned
    for m in quoted_spans:
        segment = segment[:m.start()] + " " * (m.end() - m.start()) + segment[m.end():]
    for m in RE_IDENTIFIER.finditer(segment):
        if m.group() == ".":
            continue
        tokens.append(LabelToken(m.group(), start + m.start(), start + m.end()))
    # Numeric local labels: the b/f suffix picks the direction, not the name
    for m in RE_NUMERIC_REF.finditer(segment):
        tokens.append(LabelToken(m.group("name"), start + m.start("name"), start + m.end("name")))
    tokens.sort(key=lambda t: t.start)
    return tokens


def _parse_directive_source(name: str, args: str):
    """Extract (declared_file, binding) from file/line directives."""
    if name in ("file", "cv_file"):
        m = RE_FILE_ARGS.match(args)
        if m:
            path = m.group("first")
            if name == "file" and m.group("second") is not None:
                second = m.group("second")
                if not path or second.startswith("/") or re.match(r"^[A-Za-z]:\\", second):
                    path = second
                else:
                    path = path.rstrip("/\\") + "/" + second
            return (int(m.group("id")), path), None
    elif name == "loc":
        m = RE_LOC_ARGS.match(args)
        if m:
            return None, SourceBinding(int(m.group("id")), None, int(m.group("line")))
    elif name == "cv_loc":
        m = RE_CV_LOC_ARGS.match(args)
        if m:
            return None, SourceBinding(int(m.group("id")), None, int(m.group("line")))
    return None, None


def classify(raw_line: str, position: int = 0, dialect: Dialect = GNU) -> ClassifiedLine:
    """
    Tag one line of raw assembly with its kind and extracted sub-fields.
    Never fails: anything unrecognised is Code.
    """
    line = raw_line.rstrip("\r\n")
    stripped = line.strip()

    if not stripped:
        return ClassifiedLine(position, line, LineKind.BLANK)

    # --- COMMENTS (full-line only) ---
    if dialect.starts_comment(stripped):
        body = stripped
        for marker in dialect.comment_starts:
            if body.startswith(marker):
                body = body[len(marker):]
                break
        binding = None
        m = RE_ANNOTATION.match(body)
        if m:
            binding = SourceBinding(None, m.group("path"), int(m.group("line")))
        return ClassifiedLine(position, line, LineKind.COMMENT, binding=binding)

    if RE_OBJDUMP_HEADER.match(line):
        return ClassifiedLine(position, line, LineKind.COMMENT)

    m = RE_OBJDUMP_SOURCE.match(line)
    if m:
        binding = SourceBinding(None, m.group("path"), int(m.group("line")))
        return ClassifiedLine(position, line, LineKind.COMMENT, binding=binding)

    # --- LABELS (column 0) ---
    m = RE_OBJDUMP_LABEL.match(line)
    if m:
        return ClassifiedLine(position, line, LineKind.LABEL, label_name=m.group("name"))

    m = _label_pattern(dialect.label_suffix).match(line)
    if m:
        rest = m.group("rest").strip()
        if not rest or dialect.starts_comment(rest):
            name = m.group("quoted") or m.group("name")
            return ClassifiedLine(position, line, LineKind.LABEL, label_name=name)

    # --- OBJDUMP CODE (address + opcode bytes) ---
    m = RE_OBJDUMP_CODE.match(line)
    if m:
        mnemonic = m.group("mnemonic") or ""
        start = m.start("mnemonic") if m.group("mnemonic") is not None else len(line)
        refs = tuple(
            LabelToken(t.group("name"), start + t.start("name"), start + t.end("name"))
            for t in RE_OBJDUMP_TARGET.finditer(mnemonic)
        )
        return ClassifiedLine(
            position, line, LineKind.CODE,
            referenced_labels=refs,
            address=int(m.group("address"), 16),
            opcodes=tuple(m.group("opcodes").split(" ")),
            mnemonic_start=start,
        )

    # --- DIRECTIVES ---
    if stripped.startswith(dialect.directive_prefix):
        m = _directive_pattern(dialect.directive_prefix).match(line)
        name = (m.group("name") or "").lower()
        args = m.group("args")
        kind = LineKind.DATA_DIRECTIVE if name and is_data_directive(name) else LineKind.DIRECTIVE
        declared_file, binding = _parse_directive_source(name, args)
        args_start = m.start("args")
        args_end = args_start + len(dialect.strip_comment(args))
        refs = () if declared_file else tuple(_scan_identifiers(line, args_start, args_end, skip_quoted=True))
        return ClassifiedLine(
            position, line, kind,
            directive=name,
            referenced_labels=refs,
            declared_file=declared_file,
            binding=binding,
        )

    # --- CODE ---
    mnemonic_end = RE_MNEMONIC.match(line).end()
    operand_end = mnemonic_end + len(dialect.strip_comment(line[mnemonic_end:]))
    refs = tuple(_scan_identifiers(line, mnemonic_end, operand_end, skip_quoted=False))
    return ClassifiedLine(position, line, LineKind.CODE, referenced_labels=refs)


def classify_lines(lines: List[str], dialect: Dialect = GNU) -> List[ClassifiedLine]:
    return [classify(line, idx, dialect) for idx, line in enumerate(lines)]
