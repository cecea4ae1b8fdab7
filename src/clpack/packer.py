"""Packing of pending entries into channel changelogs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Optional

from .config import Config, channel_label
from .entries import Entry, EntryStore
from .errors import AlreadyExistsError, ChangelogError, PartialPackError
from .renderer import ReleaseGroups, group_entries, insert_release, render_release
from .state import ChannelState
from .utils import atomic_write_text, log_debug, log_error, log_info

__all__ = ["FlushSummary", "Packer", "ReleaseSummary"]


@dataclass
class ReleaseSummary:
    """Outcome of a pack (or a dry-run preview) for one channel."""

    channel: str
    version: str
    date: date
    changelog_path: Path
    entry_ids: list[str] = field(default_factory=list)
    groups: ReleaseGroups = field(default_factory=ReleaseGroups)
    block: str = ""
    written: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.entry_ids


@dataclass
class FlushSummary:
    """Entries and channel states removed by a flush."""

    entry_ids: list[str] = field(default_factory=list)
    state_files: list[Path] = field(default_factory=list)


class Packer:
    """Select, render, and record pending entries for a channel.

    Each operation loads channel state and entries fresh from disk. The
    changelog file is written before the channel state; a failure between the
    two is reported as :class:`PartialPackError` after restoring the previous
    changelog content.
    """

    def __init__(self, config: Config, project_root: Path) -> None:
        self.config = config
        self.project_root = project_root
        self.store = EntryStore(config.entries_directory(project_root))
        self.state_directory = config.state_directory(project_root)

    def load_state(self, channel: str) -> ChannelState:
        self.config.channel(channel)
        return ChannelState.load(self.state_directory, channel)

    def changelog_path(self, channel: str) -> Path:
        return self.config.changelog_path(self.project_root, channel)

    def pending(self, channel: str) -> list[Entry]:
        """Return entries not yet packed for ``channel``, in filename order."""
        state = self.load_state(channel)
        return [entry for entry in self.store.list_entries() if not state.is_packed(entry.entry_id)]

    def _prepare(
        self, channel: str, version: str, release_date: date
    ) -> tuple[ChannelState, ReleaseSummary]:
        version = version.strip()
        state = self.load_state(channel)
        entries = self.store.list_entries()
        pending = [entry for entry in entries if not state.is_packed(entry.entry_id)]
        log_debug(
            f"channel '{channel_label(channel)}': {len(entries)} entries, {len(pending)} pending"
        )
        summary = ReleaseSummary(
            channel=channel,
            version=version,
            date=release_date,
            changelog_path=self.changelog_path(channel),
        )
        if not pending:
            return state, summary
        if not version:
            raise ChangelogError("Release version must not be empty.")
        if version in state.versions():
            raise AlreadyExistsError(
                f"Version '{version}' was already released on channel '{channel_label(channel)}'."
            )
        summary.entry_ids = [entry.entry_id for entry in pending]
        summary.groups = group_entries(pending)
        summary.block = render_release(
            version,
            release_date.strftime(self.config.date_format),
            summary.groups.sections,
            summary.groups.front,
            header_template=self.config.release_header,
        )
        return state, summary

    def preview(self, channel: str, version: str, release_date: date) -> ReleaseSummary:
        """Render the release that :meth:`pack` would write, without writing."""
        _, summary = self._prepare(channel, version, release_date)
        return summary

    def pack(self, channel: str, version: str, release_date: date) -> ReleaseSummary:
        """Pack all pending entries of ``channel`` into a new release."""
        state, summary = self._prepare(channel, version, release_date)
        if summary.is_empty:
            log_info(f"no unreleased changes for channel '{channel_label(channel)}'.")
            return summary

        for entry_id in summary.entry_ids:
            state.record_packed(entry_id, summary.version, release_date)

        path = summary.changelog_path
        previous = path.read_text(encoding="utf-8") if path.exists() else None
        document = insert_release(previous, summary.block, self.config.changelog_header)
        try:
            atomic_write_text(path, document)
        except OSError as exc:
            raise ChangelogError(f"Failed to write changelog {path}: {exc}") from exc
        log_debug(f"wrote release {summary.version} to {path}")

        try:
            state.save()
        except OSError as exc:
            raise self._partial_pack(path, previous, exc) from exc

        summary.written = True
        return summary

    def _partial_pack(
        self, path: Path, previous: Optional[str], cause: OSError
    ) -> PartialPackError:
        try:
            if previous is None:
                path.unlink(missing_ok=True)
            else:
                atomic_write_text(path, previous)
        except OSError as restore_exc:
            log_error(f"failed to restore {path}: {restore_exc}")
            return PartialPackError(
                f"Changelog {path} was written but the channel state could not be saved "
                f"({cause}). Inspect the changelog file and remove the new release block "
                "before retrying.",
                changelog_path=path,
                rolled_back=False,
            )
        return PartialPackError(
            f"Channel state could not be saved ({cause}). The changelog {path} was restored; "
            "it is safe to retry.",
            changelog_path=path,
            rolled_back=True,
        )

    def flush(self, *, force: bool = False) -> FlushSummary:
        """Delete all entries together with all channel state.

        Refuses while any entry is still pending on a configured channel,
        unless ``force`` is set.
        """
        entries = self.store.list_entries()
        if not force:
            blocked: dict[str, list[str]] = {}
            for key in self.config.channels:
                state = self.load_state(key)
                waiting = state.pending(entry.entry_id for entry in entries)
                if waiting:
                    blocked[channel_label(key)] = waiting
            if blocked:
                details = "; ".join(
                    f"{name}: {', '.join(ids)}" for name, ids in blocked.items()
                )
                raise ChangelogError(
                    f"Entries are still waiting for release ({details}). "
                    "Pack them first or flush with --force."
                )

        summary = FlushSummary(entry_ids=self.store.remove_all())
        if self.state_directory.is_dir():
            for state_file in sorted(self.state_directory.glob("*.json")):
                state_file.unlink()
                summary.state_files.append(state_file)
        log_debug(
            f"flushed {len(summary.entry_ids)} entries and {len(summary.state_files)} state files"
        )
        return summary
