import re
from typing import List, Optional

from rich.text import Text

from ..parsing.options import FilterOptions
from ..parsing.pipeline import FilterResult

REGISTERS = re.compile(
    r"%?\b("
    r"r[abcd]x|r[sd]i|r[bs]p|r(?:8|9|1[0-5])[dwb]?"
    r"|e[abcd]x|e[sd]i|e[bs]p"
    r"|[abcd][hl]|[abcd]x|[sd]il?|[bs]pl?"
    r"|[xyz]mm[0-9]+"
    r"|[xw](?:[12]?[0-9]|3[01])|sp|lr|pc"
    r")\b",
    re.IGNORECASE,
)

SIZE_KEYWORDS = re.compile(
    r"\b(DWORD|QWORD|WORD|BYTE|PTR)\b",
)

NUMBERS = re.compile(
    r"\b(0x[0-9a-fA-F]+|0b[01]+|[0-9]+)\b",
)

DIRECTIVE = re.compile(r"^\s*\.[A-Za-z_][\w.]*")
LABEL = re.compile(r"^(\"[^\"]+\"|[A-Za-z_.$][\w.$]*)\s*:|^[0-9a-fA-F]+ <[^>]+>:")
BINARY_COLUMNS = re.compile(r"^\s*[0-9a-fA-F]+:\t[0-9a-fA-F ]*\t")
COMMENT_STARTS = ("#", ";", "//", "@")


def printable(line: str) -> str:
    """Undecodable input bytes are carried as lone surrogates; show them as U+FFFD."""
    return line.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def highlight_asm_line(line: str, bg: str = "") -> Text:
    """
    Syntax-highlight a single filtered line.

      - Comments -> DIM / GREY
      - Labels -> YELLOW / bold
      - Directives -> GREEN
      - Binary address/opcode columns -> DIM
      - Size keywords -> MAGENTA
      - Numeric literals -> CYAN
      - Registers -> RED / bold
    """
    line = printable(line)
    if line.lstrip().startswith(COMMENT_STARTS):
        return Text(line, style=f"dim grey {bg}".strip())

    token_styles: List[Optional[str]] = [None] * len(line)

    def paint(start: int, end: int, style: str):
        for j in range(start, end):
            token_styles[j] = style

    body_start = 0
    columns = BINARY_COLUMNS.match(line)
    if columns:
        paint(0, columns.end(), "dim")
        body_start = columns.end()

    label_match = LABEL.match(line)
    if label_match:
        paint(0, label_match.end(), "bold yellow")

    directive_match = DIRECTIVE.match(line)
    if directive_match:
        paint(directive_match.start(), directive_match.end(), "green")

    body = line[body_start:]
    for m in SIZE_KEYWORDS.finditer(body):
        paint(body_start + m.start(), body_start + m.end(), "magenta")
    for m in NUMBERS.finditer(body):
        paint(body_start + m.start(), body_start + m.end(), "cyan")
    for m in REGISTERS.finditer(body):
        paint(body_start + m.start(), body_start + m.end(), "bold red")

    # Emit characters, grouping consecutive runs of the same style
    segment = Text()
    i = 0
    while i < len(line):
        cur_style = token_styles[i]
        j = i
        while j < len(line) and token_styles[j] == cur_style:
            j += 1
        full_style = f"{cur_style} {bg}" if cur_style else bg
        segment.append(line[i:j], style=full_style.strip() or None)
        i = j
    return segment


def highlight_result(result: FilterResult, line_numbers: bool = False) -> Text:
    """Render a whole FilterResult as one Rich Text block."""
    text = Text()
    width = len(str(len(result.asm)))
    for idx, line in enumerate(result.asm):
        if idx:
            text.append("\n")
        if line_numbers:
            text.append(f"{idx + 1:>{width}} ", style="dim")
        text.append_text(highlight_asm_line(line.text))
    return text


def build_status(result: Optional[FilterResult], options: FilterOptions) -> Text:
    """One-line summary: active flags and how many lines were filtered."""
    status = Text()
    flags = options.enabled() or ["none"]
    status.append("filters: ", style="bold")
    status.append(", ".join(flags), style="cyan")
    if result is not None:
        status.append(f"  |  {len(result.asm)} lines shown, {result.filtered_line_count} filtered", style="dim")
    return status
