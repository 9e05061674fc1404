import re
import shutil
import subprocess
from dataclasses import replace

from .pipeline import FilterResult

# --- AESTHETIC CLEANUP PATTERNS ---
RE_STL_VERSIONING = re.compile(r"std::__[1-9]::")
RE_ABI_TAGS = re.compile(r"\[abi:[a-zA-Z0-9]+\]")


def simplify_symbols(text: str) -> str:
    text = RE_STL_VERSIONING.sub("std::", text)
    text = RE_ABI_TAGS.sub("", text)
    return text


def demangle_stream(asm_content: str) -> str:
    """
    Pipes the text through the system's c++filt command.
    This converts _Z7addNumsii -> addNums(int, int). Returns the input
    unchanged when c++filt is missing or fails.
    """
    cxxfilt = shutil.which("c++filt")
    if not cxxfilt:
        return asm_content

    try:
        process = subprocess.Popen(
            [cxxfilt],
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding="utf-8",
            errors="surrogateescape",
        )
        stdout, _ = process.communicate(input=asm_content)
    except (OSError, UnicodeError):
        return asm_content

    if process.returncode != 0:
        return asm_content
    return stdout


def has_demangler() -> bool:
    return shutil.which("c++filt") is not None


def demangle_result(result: FilterResult) -> FilterResult:
    """
    Demangle and simplify every output line. Label metadata keeps the mangled
    names; if the demangler changes the line count the result is returned as is.
    """
    if not result.asm:
        return result
    demangled = demangle_stream("\n".join(result.texts) + "\n")
    new_texts = demangled.split("\n")
    if new_texts and new_texts[-1] == "":
        new_texts.pop()
    if len(new_texts) != len(result.asm):
        return result
    asm = [replace(line, text=simplify_symbols(text)) for line, text in zip(result.asm, new_texts)]
    return replace(result, asm=asm)
