"""Python-friendly facade for invoking clpack functionality."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Optional, Sequence

from .cli import (
    CLIContext,
    create_cli_context,
    create_entry,
    initialize_project,
    run_flush,
    run_pack,
    run_status,
)
from .config import Config
from .entries import Entry
from .packer import FlushSummary, ReleaseSummary


class Changelog:
    """High-level helper that mirrors the CLI commands for Python callers.

    All methods run without prompts; anything the CLI would ask for has to be
    passed explicitly or derivable from the branch name.
    """

    def __init__(
        self,
        *,
        root: Path | str | None = None,
        config: Path | str | None = None,
        debug: bool = False,
    ) -> None:
        self._ctx = create_cli_context(
            root=Path(root) if root is not None else None,
            config=Path(config) if config is not None else None,
            debug=debug,
        )

    @property
    def context(self) -> CLIContext:
        """Expose the underlying CLIContext for advanced scenarios."""

        return self._ctx

    @property
    def config(self) -> Config:
        return self._ctx.ensure_config()

    def init(self) -> Config:
        """Create the config file and changelog folders when missing."""

        return initialize_project(self._ctx)

    def add(
        self,
        entry_id: Optional[str] = None,
        *,
        sections: Sequence[str] | None = None,
        content: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> Path:
        """Create a changelog entry and return the resulting file path."""

        return create_entry(
            self._ctx,
            entry_id=entry_id,
            sections=sections,
            content=content,
            branch=branch,
            allow_interactive=False,
        )

    def status(
        self,
        *,
        channel: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> list[Entry]:
        """Return entries waiting for release on a channel."""

        return run_status(self._ctx, channel=channel, branch=branch, allow_interactive=False)

    def pack(
        self,
        *,
        channel: Optional[str] = None,
        version: Optional[str] = None,
        release_date: Optional[date] = None,
        branch: Optional[str] = None,
    ) -> ReleaseSummary:
        """Pack pending entries of a channel into its changelog."""

        return run_pack(
            self._ctx,
            channel=channel,
            version=version,
            release_date=release_date,
            branch=branch,
            assume_yes=True,
        )

    def flush(self, *, force: bool = False) -> FlushSummary:
        """Delete all entries and channel state."""

        return run_flush(self._ctx, force=force, assume_yes=True)
