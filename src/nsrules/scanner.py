from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)

CLOJURE_EXTENSIONS = (".clj", ".cljs", ".cljc")

# Skip patterns for directory exclusion
SKIP_DIRS = {".git", ".cpcache", ".clj-kondo", ".lsp", ".shadow-cljs", "node_modules", "target"}


def split_lines(text: str) -> list[str]:
    """Split on \\n only, the way the lexer counts lines. A trailing \\r is dropped."""
    # str.splitlines() also breaks on form feeds and Unicode line separators
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


@dataclass(frozen=True)
class SourceFile:
    path: Path
    text: str
    lines: list[str]

    @classmethod
    def from_text(cls, path: Path | str, text: str) -> SourceFile:
        return cls(path=Path(path), text=text, lines=split_lines(text))

    @property
    def display_path(self) -> str:
        return self.path.as_posix()


@dataclass
class ScanResult:
    files: list[Path] = field(default_factory=list)
    # (path, reason) for everything found under a source root that is not checked
    skipped: list[tuple[Path, str]] = field(default_factory=list)


def is_clojure_source(path: Path) -> bool:
    return path.suffix in CLOJURE_EXTENSIONS


def load_source(path: Path) -> SourceFile:
    """Load a single source file. Tolerates a UTF-8 BOM; raises on undecodable bytes."""
    text = path.read_text(encoding="utf-8-sig")
    return SourceFile.from_text(path, text)


def _walk_files(root: Path) -> Iterator[Path]:
    """Walk directory tree in sorted order, skipping excluded dirs."""
    for item in sorted(root.iterdir()):
        if item.is_dir():
            if item.name in SKIP_DIRS:
                continue
            yield from _walk_files(item)
        elif item.is_file():
            yield item


def find_source_files(source_dirs: Iterable[Path | str]) -> ScanResult:
    """Collect Clojure sources under each source root."""
    result = ScanResult()
    seen: set[Path] = set()
    for source_dir in source_dirs:
        root = Path(source_dir)
        if not root.is_dir():
            result.skipped.append((root, f"source directory {root.as_posix()} does not exist, skipping"))
            continue
        for path in _walk_files(root):
            if path in seen:
                continue
            seen.add(path)
            if is_clojure_source(path):
                result.files.append(path)
            else:
                result.skipped.append((path, f"{path.as_posix()} is not a Clojure source file, skipping"))

    logger.info("found %d Clojure source files (%d skipped)", len(result.files), len(result.skipped))
    return result
