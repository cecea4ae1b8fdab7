"""Tests for release rendering and changelog composition."""

from __future__ import annotations

from clpack.entries import parse_entry
from clpack.renderer import (
    SENTINEL,
    group_entries,
    insert_release,
    render_release,
    split_document,
)

HEADER = "# Changelog\n\n"


def test_group_entries_orders_sections_by_first_appearance() -> None:
    first = parse_entry("a", "# Fixed\n- one\n# Added\n- two\n")
    second = parse_entry("b", "Intro\n# Security\n- three\n# Fixed\n- four\n")

    groups = group_entries([first, second])

    assert list(groups.sections) == ["Fixed", "Added", "Security"]
    assert groups.sections["Fixed"] == ["- one", "- four"]
    assert groups.front == ["Intro"]


def test_render_release_emits_lines_verbatim() -> None:
    block = render_release(
        "1.0.0",
        "2024-01-01",
        {"Fixed": ["- Crash on start", "  with detail", "- Typo"]},
    )

    assert block == (
        "## [1.0.0] - 2024-01-01\n"
        "\n"
        "### Fixed\n"
        "- Crash on start\n"
        "  with detail\n"
        "- Typo\n"
    )


def test_render_release_places_front_before_sections() -> None:
    block = render_release(
        "2.0",
        "01.02.2024",
        {"Added": ["- Flag"], "Empty": []},
        ["Highlights of this release."],
        header_template="Version {VERSION} ({DATE})",
    )

    assert block == (
        "## Version 2.0 (01.02.2024)\n"
        "\n"
        "Highlights of this release.\n"
        "\n"
        "### Added\n"
        "- Flag\n"
    )


def test_render_release_is_deterministic() -> None:
    sections = {"Fixed": ["- a"], "Added": ["- b"]}

    assert render_release("1", "d", sections) == render_release("1", "d", dict(sections))


def test_render_release_without_content_is_just_the_heading() -> None:
    assert render_release("1.0", "2024-01-01", {}) == "## [1.0] - 2024-01-01\n"


def test_split_document_for_missing_file() -> None:
    assert split_document(None, HEADER) == (f"{HEADER}{SENTINEL}\n", "")
    assert split_document("  \n", HEADER) == (f"{HEADER}{SENTINEL}\n", "")


def test_split_document_keeps_custom_prefix() -> None:
    prefix = f"# Project\n\nHand written notes.\n{SENTINEL}\n"
    document = prefix + "\n## [1.0] - 2024-01-01\n"

    assert split_document(document, HEADER) == (prefix, "\n## [1.0] - 2024-01-01\n")


def test_split_document_adds_sentinel_after_known_header() -> None:
    document = f"{HEADER}## [0.9] - 2023-12-01\n\n### Fixed\n- Old\n"

    prefix, releases = split_document(document, HEADER)

    assert prefix == f"{HEADER}{SENTINEL}\n"
    assert releases == "## [0.9] - 2023-12-01\n\n### Fixed\n- Old\n"


def test_split_document_keeps_unknown_content_below_new_header() -> None:
    prefix, releases = split_document("Some notes\n", HEADER)

    assert prefix == f"{HEADER}{SENTINEL}\n"
    assert releases == "Some notes\n"


def test_insert_release_places_newest_first() -> None:
    first = insert_release(None, "## [1.0] - a\n\n### Fixed\n- one\n", HEADER)
    second = insert_release(first, "## [1.1] - b\n\n### Fixed\n- two\n", HEADER)

    assert first == f"{HEADER}{SENTINEL}\n\n## [1.0] - a\n\n### Fixed\n- one\n"
    assert second == (
        f"{HEADER}{SENTINEL}\n"
        "\n"
        "## [1.1] - b\n\n### Fixed\n- two\n"
        "\n"
        "## [1.0] - a\n\n### Fixed\n- one\n"
    )
