"""Entry management utilities."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from .errors import AlreadyExistsError, NotFoundError
from .utils import log_debug, log_warning

ENTRY_SUFFIX = ".md"
SECTION_MARKER = "#"


@dataclass
class Entry:
    """Representation of a changelog entry file.

    ``front`` holds the lines found before the first section header.
    ``sections`` maps section names to their content lines in file order; a
    repeated header appends to the section opened first.
    """

    entry_id: str
    front: list[str] = field(default_factory=list)
    sections: dict[str, list[str]] = field(default_factory=dict)
    path: Optional[Path] = None

    @property
    def section_names(self) -> list[str]:
        return list(self.sections)

    @property
    def is_empty(self) -> bool:
        return not self.front and not any(self.sections.values())


def _section_name(line: str) -> Optional[str]:
    """Return the header name of a section line, or None for content."""
    if not line.startswith(SECTION_MARKER):
        return None
    name = line.lstrip(SECTION_MARKER).strip()
    return name or None


def parse_entry(entry_id: str, text: str, path: Optional[Path] = None) -> Entry:
    """Parse entry text into front lines and named sections.

    Parsing never fails: blank lines are dropped and anything else is either a
    section header or content for the current section (or the front block).
    """
    entry = Entry(entry_id=entry_id, path=path)
    current: Optional[list[str]] = None
    for raw_line in text.split("\n"):
        line = raw_line[:-1] if raw_line.endswith("\r") else raw_line
        if not line.strip():
            continue
        name = _section_name(line)
        if name is not None:
            current = entry.sections.setdefault(name, [])
            continue
        if current is None:
            entry.front.append(line)
        else:
            current.append(line)
    return entry


def read_entry(path: Path) -> Entry:
    """Read and parse a single entry file.

    Bytes that are not valid UTF-8 are replaced rather than rejected.
    """
    data = path.read_bytes()
    try:
        content = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        log_warning(
            f"entry {path.name} is not valid UTF-8 ({exc.reason}); undecodable bytes replaced."
        )
        content = data.decode("utf-8", errors="replace")
    return parse_entry(path.stem, content, path=path)


def normalize_entry_id(value: str) -> str:
    """Validate an entry id, stripping an optional ``.md`` suffix."""
    entry_id = value.strip()
    if entry_id.endswith(ENTRY_SUFFIX):
        entry_id = entry_id[: -len(ENTRY_SUFFIX)]
    if not entry_id:
        raise ValueError("Entry id must not be empty.")
    if entry_id.startswith("."):
        raise ValueError(f"Entry id '{entry_id}' must not start with a dot.")
    if "/" in entry_id or "\\" in entry_id:
        raise ValueError(f"Entry id '{entry_id}' must not contain path separators.")
    return entry_id


class EntryStore:
    """Filesystem-backed collection of entry files.

    Every call reads the directory afresh; nothing is cached.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def entry_path(self, entry_id: str) -> Path:
        return self.directory / f"{normalize_entry_id(entry_id)}{ENTRY_SUFFIX}"

    def exists(self, entry_id: str) -> bool:
        return self.entry_path(entry_id).exists()

    def _require_directory(self) -> None:
        if not self.directory.is_dir():
            raise NotFoundError(
                f"Changelog entries directory does not exist: {self.directory}. "
                "Run 'clpack init' to create it."
            )

    def iter_paths(self) -> Iterable[Path]:
        self._require_directory()
        for path in sorted(self.directory.glob(f"*{ENTRY_SUFFIX}")):
            if path.is_file() and not path.name.startswith("."):
                yield path

    def list_entries(self) -> list[Entry]:
        """Return all entries in filename order."""
        entries = [read_entry(path) for path in self.iter_paths()]
        log_debug(f"read {len(entries)} entries from {self.directory}")
        return entries

    def create_entry(self, entry_id: str, content: str = "") -> Path:
        """Reserve ``entry_id`` by creating its file, optionally with content."""
        self._require_directory()
        path = self.entry_path(entry_id)
        try:
            with path.open("x", encoding="utf-8") as handle:
                handle.write(content)
        except FileExistsError as exc:
            raise AlreadyExistsError(f"Changelog entry already exists: {path.stem}") from exc
        log_debug(f"created entry file {path}")
        return path

    def remove_all(self) -> list[str]:
        """Delete every entry file and return the removed ids."""
        removed: list[str] = []
        for path in list(self.iter_paths()):
            path.unlink()
            removed.append(path.stem)
        return removed
