"""Tests for entry parsing and the entry store."""

from __future__ import annotations

from pathlib import Path

import pytest

from clpack.entries import EntryStore, normalize_entry_id, parse_entry, read_entry
from clpack.errors import AlreadyExistsError, NotFoundError


def test_parse_entry_splits_front_and_sections() -> None:
    text = "Intro line\n\n# Fixed\n- Crash on start\n  continued detail\n\n# Added\n- New flag\n"

    entry = parse_entry("a", text)

    assert entry.front == ["Intro line"]
    assert entry.section_names == ["Fixed", "Added"]
    assert entry.sections["Fixed"] == ["- Crash on start", "  continued detail"]
    assert entry.sections["Added"] == ["- New flag"]


def test_parse_entry_merges_repeated_sections_in_encounter_order() -> None:
    text = "# Fixed\none\n# Added\ntwo\n## Fixed \nthree\n"

    entry = parse_entry("a", text)

    assert entry.section_names == ["Fixed", "Added"]
    assert entry.sections["Fixed"] == ["one", "three"]


def test_parse_entry_keeps_lines_verbatim_but_drops_blank_lines() -> None:
    text = "# Notes\n    indented code  \n\t\n   \nlast line\t\n"

    entry = parse_entry("a", text)

    assert entry.sections["Notes"] == ["    indented code  ", "last line\t"]


def test_parse_entry_of_whitespace_is_empty() -> None:
    entry = parse_entry("blank", " \n\n\t\n")

    assert entry.front == []
    assert entry.sections == {}
    assert entry.is_empty


def test_parse_entry_treats_bare_marker_as_content() -> None:
    entry = parse_entry("a", "# Fixed\n#\nline\n")

    assert entry.sections == {"Fixed": ["#", "line"]}


def test_read_entry_uses_file_stem_as_id(tmp_path: Path) -> None:
    path = tmp_path / "SW-12-fix.md"
    path.write_text("# Fixes\n- Typo\n", encoding="utf-8")

    entry = read_entry(path)

    assert entry.entry_id == "SW-12-fix"
    assert entry.path == path


def test_list_entries_reads_markdown_files_in_name_order(tmp_path: Path) -> None:
    (tmp_path / "b.md").write_text("# Fixed\nTypo\n", encoding="utf-8")
    (tmp_path / "a.md").write_text("# Fixed\nCrash on start\n", encoding="utf-8")
    (tmp_path / ".gitkeep").write_text("", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    entries = EntryStore(tmp_path).list_entries()

    assert [entry.entry_id for entry in entries] == ["a", "b"]


def test_list_entries_requires_directory(tmp_path: Path) -> None:
    store = EntryStore(tmp_path / "missing")

    with pytest.raises(NotFoundError, match="does not exist"):
        store.list_entries()


def test_create_entry_rejects_existing_id(tmp_path: Path) -> None:
    store = EntryStore(tmp_path)
    path = store.create_entry("123-fix", "# Fixes\n- thing\n")

    assert path == tmp_path / "123-fix.md"
    assert path.read_text(encoding="utf-8") == "# Fixes\n- thing\n"
    with pytest.raises(AlreadyExistsError):
        store.create_entry("123-fix")
    assert path.read_text(encoding="utf-8") == "# Fixes\n- thing\n"


def test_create_entry_without_content_reserves_empty_file(tmp_path: Path) -> None:
    store = EntryStore(tmp_path)

    path = store.create_entry("draft.md")

    assert path.name == "draft.md"
    assert path.read_text(encoding="utf-8") == ""
    assert store.exists("draft")


@pytest.mark.parametrize("value", ["", "  ", ".hidden", "a/b", "..\\x"])
def test_normalize_entry_id_rejects_invalid_ids(value: str) -> None:
    with pytest.raises(ValueError):
        normalize_entry_id(value)


def test_remove_all_deletes_only_entry_files(tmp_path: Path) -> None:
    store = EntryStore(tmp_path)
    store.create_entry("a", "x\n")
    store.create_entry("b", "y\n")
    (tmp_path / ".gitkeep").write_text("", encoding="utf-8")

    removed = store.remove_all()

    assert removed == ["a", "b"]
    assert store.list_entries() == []
    assert (tmp_path / ".gitkeep").exists()


def test_read_entry_replaces_invalid_utf8(tmp_path: Path) -> None:
    path = tmp_path / "bad.md"
    path.write_bytes(b"# Fixed\n\xff\xfe bad\n- Still here\n")

    entry = read_entry(path)

    assert entry.section_names == ["Fixed"]
    assert entry.sections["Fixed"] == ["\ufffd\ufffd bad", "- Still here"]


def test_parse_entry_only_splits_on_newlines() -> None:
    text = "# Notes\r\n- form\x0cfeed\r\n- line\u2028separator\n"

    entry = parse_entry("a", text)

    assert entry.sections == {"Notes": ["- form\x0cfeed", "- line\u2028separator"]}
