"""Tests for persisted channel state."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from clpack.errors import DuplicatePackError, MalformedStateError
from clpack.state import ChannelState, PackRecord, state_path


def test_missing_state_file_is_empty(tmp_path: Path) -> None:
    state = ChannelState.load(tmp_path, "beta")

    assert state.packed == {}
    assert state.path == tmp_path / "beta.json"
    assert not state.is_packed("anything")


def test_default_channel_uses_reserved_file_name(tmp_path: Path) -> None:
    assert state_path(tmp_path, "") == tmp_path / "_default.json"


def test_record_and_save_round_trip(tmp_path: Path) -> None:
    state = ChannelState.load(tmp_path, "")
    state.record_packed("a", "1.0.0", date(2024, 1, 1))
    state.record_packed("b", "1.0.0", date(2024, 1, 1))
    state.save()

    payload = json.loads((tmp_path / "_default.json").read_text(encoding="utf-8"))
    assert payload == {
        "a": {"version": "1.0.0", "date": "2024-01-01"},
        "b": {"version": "1.0.0", "date": "2024-01-01"},
    }

    reloaded = ChannelState.load(tmp_path, "")
    assert reloaded.is_packed("a")
    assert reloaded.packed["b"] == PackRecord("1.0.0", date(2024, 1, 1))
    assert reloaded.versions() == ["1.0.0"]
    assert reloaded.entries_for("1.0.0") == ["a", "b"]


def test_record_packed_twice_is_rejected(tmp_path: Path) -> None:
    state = ChannelState.load(tmp_path, "stable")
    state.record_packed("a", "1.0.0", date(2024, 1, 1))

    with pytest.raises(DuplicatePackError, match="already packed"):
        state.record_packed("a", "1.0.1", date(2024, 2, 1))
    assert state.packed["a"].version == "1.0.0"


def test_pending_filters_packed_ids(tmp_path: Path) -> None:
    state = ChannelState.load(tmp_path, "stable")
    state.record_packed("b", "1.0.0", date(2024, 1, 1))

    assert state.pending(["a", "b", "c"]) == ["a", "c"]


def test_save_leaves_no_temporary_files(tmp_path: Path) -> None:
    state = ChannelState.load(tmp_path / "channels", "beta")
    state.record_packed("a", "2.0", date(2024, 3, 1))
    state.save()

    assert sorted(path.name for path in (tmp_path / "channels").iterdir()) == ["beta.json"]


@pytest.mark.parametrize(
    "payload",
    [
        b"{not json",
        b"\xff\xfe{}",
        b"[]",
        b'{"a": "1.0.0"}',
        b'{"a": {"date": "2024-01-01"}}',
        b'{"a": {"version": "1.0", "date": "yesterday"}}',
    ],
)
def test_malformed_state_is_reported(tmp_path: Path, payload: bytes) -> None:
    (tmp_path / "beta.json").write_bytes(payload)

    with pytest.raises(MalformedStateError):
        ChannelState.load(tmp_path, "beta")
