"""Persistent per-channel record of packed entries."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Iterable

from .errors import DuplicatePackError, MalformedStateError
from .utils import atomic_write_text, coerce_date, log_debug

STATE_SUFFIX = ".json"
DEFAULT_CHANNEL_STATE_NAME = "_default"


def state_path(directory: Path, channel: str) -> Path:
    """Return the state file of a channel inside ``directory``."""
    name = channel or DEFAULT_CHANNEL_STATE_NAME
    return directory / f"{name}{STATE_SUFFIX}"


@dataclass(frozen=True)
class PackRecord:
    """Release an entry was packed into."""

    version: str
    date: date

    def to_dict(self) -> dict[str, str]:
        return {"version": self.version, "date": self.date.isoformat()}


def _parse_record(entry_id: str, raw: Any, path: Path) -> PackRecord:
    if not isinstance(raw, dict):
        raise MalformedStateError(f"Channel state {path}: record of '{entry_id}' is not an object")
    version = raw.get("version")
    if not isinstance(version, str) or not version:
        raise MalformedStateError(
            f"Channel state {path}: record of '{entry_id}' has no valid 'version'"
        )
    packed_on = coerce_date(raw.get("date")) if isinstance(raw.get("date"), str) else None
    if packed_on is None:
        raise MalformedStateError(
            f"Channel state {path}: record of '{entry_id}' has no valid 'date'"
        )
    return PackRecord(version=version, date=packed_on)


@dataclass
class ChannelState:
    """Entries already included in a release of one channel.

    The set only grows; an id recorded here is never packed again for the
    same channel.
    """

    channel: str
    path: Path
    packed: dict[str, PackRecord] = field(default_factory=dict)

    @classmethod
    def load(cls, directory: Path, channel: str) -> ChannelState:
        """Load the state of ``channel``; a missing file is an empty state."""
        path = state_path(directory, channel)
        if not path.exists():
            log_debug(f"no state file for channel '{channel or 'default'}' at {path}")
            return cls(channel=channel, path=path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise MalformedStateError(f"Channel state {path} is not valid JSON: {exc}") from exc
        if not isinstance(raw, dict):
            raise MalformedStateError(f"Channel state {path} must contain a JSON object")
        packed = {
            str(entry_id): _parse_record(str(entry_id), record, path)
            for entry_id, record in raw.items()
        }
        return cls(channel=channel, path=path, packed=packed)

    def is_packed(self, entry_id: str) -> bool:
        return entry_id in self.packed

    def record_packed(self, entry_id: str, version: str, packed_on: date) -> None:
        if entry_id in self.packed:
            raise DuplicatePackError(
                f"Entry '{entry_id}' is already packed for channel "
                f"'{self.channel or 'default'}' (release {self.packed[entry_id].version})"
            )
        self.packed[entry_id] = PackRecord(version=version, date=packed_on)

    def versions(self) -> list[str]:
        """Return the recorded release versions in first-seen order."""
        return list(dict.fromkeys(record.version for record in self.packed.values()))

    def entries_for(self, version: str) -> list[str]:
        return [entry_id for entry_id, record in self.packed.items() if record.version == version]

    def pending(self, entry_ids: Iterable[str]) -> list[str]:
        return [entry_id for entry_id in entry_ids if entry_id not in self.packed]

    def serialize(self) -> str:
        payload = {entry_id: record.to_dict() for entry_id, record in self.packed.items()}
        return json.dumps(payload, indent=2, sort_keys=True) + "\n"

    def save(self) -> None:
        """Persist the state, replacing the previous file atomically."""
        atomic_write_text(self.path, self.serialize())
        log_debug(f"saved {len(self.packed)} packed entries to {self.path}")
