"""Error taxonomy for changelog packing."""

from __future__ import annotations

from pathlib import Path

from click import ClickException

__all__ = [
    "ChangelogError",
    "NotFoundError",
    "AlreadyExistsError",
    "DuplicatePackError",
    "PartialPackError",
    "MalformedStateError",
]


class ChangelogError(ClickException):
    """Base class for errors raised by the changelog core."""


class NotFoundError(ChangelogError):
    """A channel, directory, or file that must exist is missing."""


class AlreadyExistsError(ChangelogError):
    """An entry id or release version is already taken."""


class DuplicatePackError(ChangelogError):
    """An entry was recorded twice for the same channel within one pack."""


class MalformedStateError(ChangelogError):
    """A channel state file exists but cannot be interpreted."""


class PartialPackError(ChangelogError):
    """The changelog file was written but the channel state was not persisted."""

    exit_code = 3

    def __init__(self, message: str, *, changelog_path: Path, rolled_back: bool) -> None:
        super().__init__(message)
        self.changelog_path = changelog_path
        self.rolled_back = rolled_back
