"""Release grouping, rendering, and changelog document composition."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .entries import Entry
from .utils import log_warning

SENTINEL = "<!-- clpack: releases below -->"
RELEASE_HEADING = "##"
SECTION_HEADING = "###"


@dataclass
class ReleaseGroups:
    """Pending entry lines grouped for one release."""

    front: list[str] = field(default_factory=list)
    sections: dict[str, list[str]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.front and not any(self.sections.values())


def group_entries(entries: Iterable[Entry]) -> ReleaseGroups:
    """Merge entries into release groups.

    Sections appear in order of first appearance across ``entries``; lines
    keep entry order, then in-entry order. Front lines are concatenated in
    entry order.
    """
    groups = ReleaseGroups()
    for entry in entries:
        groups.front.extend(entry.front)
        for name, lines in entry.sections.items():
            groups.sections.setdefault(name, []).extend(lines)
    return groups


def format_release_header(template: str, version: str, date_label: str) -> str:
    return template.replace("{VERSION}", version).replace("{DATE}", date_label)


def render_release(
    version: str,
    date_label: str,
    sections: dict[str, list[str]],
    front: Iterable[str] = (),
    *,
    header_template: str = "[{VERSION}] - {DATE}",
) -> str:
    """Render one release block. Lines are emitted verbatim."""
    header = format_release_header(header_template, version, date_label)
    lines = [f"{RELEASE_HEADING} {header}", ""]
    front_lines = list(front)
    if front_lines:
        lines.extend(front_lines)
        lines.append("")
    for name, section_lines in sections.items():
        if not section_lines:
            continue
        lines.append(f"{SECTION_HEADING} {name}")
        lines.extend(section_lines)
        lines.append("")
    return "\n".join(lines).rstrip("\n") + "\n"


def split_document(document: Optional[str], header: str) -> tuple[str, str]:
    """Split a changelog into its preserved prefix and the release blocks.

    The prefix always ends with the sentinel line. Files without a sentinel
    get one after ``header`` (reused when the file already starts with it).
    """
    if document is None or not document.strip():
        return f"{header}{SENTINEL}\n", ""
    index = document.find(SENTINEL)
    if index >= 0:
        end = document.find("\n", index)
        if end < 0:
            return document + "\n", ""
        return document[: end + 1], document[end + 1 :]
    if header and document.startswith(header):
        return f"{header}{SENTINEL}\n", document[len(header) :]
    log_warning("changelog has no release marker; keeping existing content below a new header.")
    return f"{header}{SENTINEL}\n", document


def insert_release(document: Optional[str], block: str, header: str) -> str:
    """Return ``document`` with ``block`` placed above all previous releases."""
    prefix, releases = split_document(document, header)
    releases = releases.lstrip("\n")
    body = block.rstrip("\n") + "\n"
    if releases:
        body += "\n" + releases
    return f"{prefix}\n{body}"
