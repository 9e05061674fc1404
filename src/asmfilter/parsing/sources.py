"""
Source-reference resolution: tracks the running file/line binding across a
listing and decides which lines belong to user sources versus headers and
libraries.
"""
import re
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Union

from .dialects import Dialect, GNU
from .lexer import RE_OBJDUMP_SOURCE, ClassifiedLine, LineKind, SourceRef, classify

UserFiles = Union[Iterable[str], Callable[[str], bool], None]

MASK_TOKEN = "<path>"

# Headers and runtime libraries are library code regardless of the user set
RE_SYSTEM_PATH = re.compile(
    r"^(/usr/(include|lib|lib64|local/include|local/lib|share)/"
    r"|/opt/|/nix/store/|/Library/|/Applications/Xcode"
    r"|<built-in>|<command-line>"
    r"|[A-Za-z]:\\Program Files)"
)
RE_PRIMARY_FILE = re.compile(r"^\s*\.file\s+\"([^\"]+)\"\s*$")
RE_QUOTED_ABS_PATH = re.compile(r"\"((?:/|[A-Za-z]:\\)[^\"]*)\"")
# objdump headers and source positions: "/tmp/a.out:  file format ...", "/tmp/x.c:12"
RE_LEADING_ABS_PATH = re.compile(r"^((?:/|[A-Za-z]:\\)[^:\s]+)(?=:)")

# Kinds whose text may carry build paths; code text is never rewritten
MASKED_KINDS = (LineKind.COMMENT, LineKind.DIRECTIVE, LineKind.DATA_DIRECTIVE)


def is_absolute(path: str) -> bool:
    return path.startswith("/") or bool(re.match(r"^[A-Za-z]:\\", path))


def basename(path: str) -> str:
    return re.split(r"[/\\]", path.rstrip("/\\"))[-1]


def mask_path(path: str) -> str:
    """Replace the directory part of an absolute path with a placeholder."""
    if not is_absolute(path):
        return path
    return f"{MASK_TOKEN}/{basename(path)}"


def mask_line(text: str, path: Optional[str] = None) -> str:
    text = RE_QUOTED_ABS_PATH.sub(lambda m: f"\"{mask_path(m.group(1))}\"", text)
    text = RE_LEADING_ABS_PATH.sub(lambda m: mask_path(m.group(1)), text)
    if path and is_absolute(path):
        text = text.replace(path, mask_path(path))
    return text


def make_user_file_oracle(user_files: UserFiles) -> Callable[[str], bool]:
    """
    Build a path -> is-user-file predicate.
    Two absolute paths must match exactly; when either side is relative
    only the basenames are compared.
    """
    if callable(user_files):
        return user_files

    exact = set()
    basenames = set()
    relative_basenames = set()
    for path in user_files or ():
        exact.add(path)
        basenames.add(basename(path))
        if not is_absolute(path):
            relative_basenames.add(basename(path))

    def is_user_file(path: str) -> bool:
        if path in exact:
            return True
        if not is_absolute(path):
            return basename(path) in basenames
        return basename(path) in relative_basenames

    return is_user_file


class FileTable:
    """File index -> path, as declared by the listing. Entries are never removed."""

    def __init__(self):
        self._entries: Dict[int, str] = {}
        self._next_interned = -1

    def declare(self, file_id: int, path: str):
        self._entries[file_id] = path

    def get(self, file_id: Optional[int]) -> Optional[str]:
        if file_id is None:
            return None
        return self._entries.get(file_id)

    def intern(self, path: str) -> int:
        """Index for a path named by an inline annotation; negative ids never clash with directives."""
        for file_id, known in self._entries.items():
            if known == path and file_id < 0:
                return file_id
        file_id = self._next_interned
        self._next_interned -= 1
        self._entries[file_id] = path
        return file_id

    def __contains__(self, file_id: int) -> bool:
        return file_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def items(self):
        return self._entries.items()


class SourceResolver:
    """Single forward pass filling in source references and library flags."""

    def __init__(self, user_files: UserFiles = None, mask_paths: bool = False):
        self.files = FileTable()
        self.is_user_file = make_user_file_oracle(user_files)
        self.mask_paths = mask_paths
        self.current_file_id: Optional[int] = None
        self.current_line: Optional[int] = None
        self._library_cache: Dict[int, bool] = {}

    def is_library(self, file_id: Optional[int]) -> bool:
        path = self.files.get(file_id)
        if path is None:
            # Undeclared index: never hide code we cannot attribute
            return False
        if file_id not in self._library_cache:
            self._library_cache[file_id] = bool(RE_SYSTEM_PATH.match(path)) or not self.is_user_file(path)
        return self._library_cache[file_id]

    def _display_path(self, file_id: Optional[int]) -> Optional[str]:
        path = self.files.get(file_id)
        if path is not None and self.mask_paths:
            return mask_path(path)
        return path

    def advance(self, line: ClassifiedLine) -> ClassifiedLine:
        if line.declared_file is not None:
            file_id, path = line.declared_file
            self.files.declare(file_id, path)
            self._library_cache.pop(file_id, None)

        binding = line.binding
        if binding is not None:
            file_id = binding.file_id
            if file_id is None:
                file_id = self.files.intern(binding.path)
            self.current_file_id = file_id
            self.current_line = binding.line

        source = None
        if self.current_line:
            source = SourceRef(self.current_file_id, self._display_path(self.current_file_id), self.current_line)

        text = line.text
        if self.mask_paths and line.kind in MASKED_KINDS:
            text = mask_line(text, binding.path if binding is not None else None)

        return replace(
            line,
            text=text,
            source=source,
            is_library_code=self.is_library(self.current_file_id),
        )

    def resolve(self, lines: Iterable[ClassifiedLine]) -> List[ClassifiedLine]:
        return [self.advance(line) for line in lines]


def infer_user_files(raw_asm: str, dialect: Dialect = GNU) -> frozenset:
    """
    Guess the primary source file when the caller has no explicit user set:
    the GCC `.file "x.c"` declaration, else the lowest DWARF file index >= 1,
    else index 0. objdump listings fall back to the first non-system source
    position.
    """
    declared: Dict[int, str] = {}
    first_marker: Optional[str] = None
    for idx, raw in enumerate(raw_asm.splitlines()):
        m = RE_PRIMARY_FILE.match(raw)
        if m:
            return frozenset({m.group(1)})
        if first_marker is None:
            m = RE_OBJDUMP_SOURCE.match(raw)
            if m and not RE_SYSTEM_PATH.match(m.group("path")):
                first_marker = m.group("path")
        if ".file" not in raw:
            continue
        line = classify(raw, idx, dialect)
        if line.declared_file is not None and line.directive == "file":
            file_id, path = line.declared_file
            declared.setdefault(file_id, path)

    positive = sorted(fid for fid in declared if fid >= 1)
    if positive:
        return frozenset({declared[positive[0]]})
    if 0 in declared:
        return frozenset({declared[0]})
    if first_marker is not None:
        return frozenset({first_marker})
    return frozenset()
