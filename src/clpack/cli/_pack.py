"""Pack, status, and flush commands."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..config import channel_label
from ..entries import Entry
from ..packer import FlushSummary, ReleaseSummary
from ..utils import (
    abort_on_user_interrupt,
    console,
    emit_output,
    format_bold,
    log_info,
    log_success,
    log_warning,
)
from ._core import CLIContext, select_channel, select_version

__all__ = [
    "run_pack",
    "run_status",
    "run_flush",
    "pack_cmd",
    "status_cmd",
    "flush_cmd",
]


def _pending_table(entries: list[Entry]) -> Table:
    table = Table()
    table.add_column("#", no_wrap=True, justify="right", style="dim")
    table.add_column("ID", style="cyan")
    table.add_column("Sections")
    for index, entry in enumerate(entries, start=1):
        sections = ", ".join(entry.section_names) or Text("-", style="dim")
        table.add_row(str(index), entry.entry_id, sections)
    return table


def _confirm(message: str) -> bool:
    try:
        return click.confirm(message, default=True)
    except (click.exceptions.Abort, KeyboardInterrupt) as exc:
        abort_on_user_interrupt(exc)


def run_status(
    ctx: CLIContext,
    *,
    channel: Optional[str] = None,
    branch: Optional[str] = None,
    allow_interactive: bool = True,
) -> list[Entry]:
    """Show and return entries waiting for release on a channel."""
    resolved_branch = ctx.branch(branch)
    key = select_channel(ctx, channel, resolved_branch, interactive=allow_interactive)
    pending = ctx.packer().pending(key)
    label = channel_label(key)
    if not pending:
        log_info(f"no unreleased changes on channel {format_bold(label)}.")
        return pending
    log_info(f"{len(pending)} change(s) waiting for release on channel {format_bold(label)}:")
    console.print(_pending_table(pending))
    return pending


def run_pack(
    ctx: CLIContext,
    *,
    channel: Optional[str] = None,
    version: Optional[str] = None,
    release_date: Optional[date] = None,
    branch: Optional[str] = None,
    assume_yes: bool = False,
) -> ReleaseSummary:
    """Python wrapper for packing that mirrors the CLI behavior."""
    packer = ctx.packer()
    interactive = not assume_yes
    resolved_branch = ctx.branch(branch)
    key = select_channel(ctx, channel, resolved_branch, interactive=interactive)
    label = channel_label(key)
    log_info(f"channel: {format_bold(label)}")
    day = release_date or date.today()

    pending = packer.pending(key)
    if not pending:
        log_info("no unreleased changes.")
        return ReleaseSummary(
            channel=key,
            version=(version or "").strip(),
            date=day,
            changelog_path=packer.changelog_path(key),
        )

    log_info("changes waiting for release:")
    console.print(_pending_table(pending))

    resolved_version = select_version(ctx, version, resolved_branch, interactive=interactive)
    preview = packer.preview(key, resolved_version, day)

    if interactive:
        console.print(
            Panel(
                Text(preview.block.rstrip("\n")),
                title=f"Preview: {preview.changelog_path.name}",
                border_style="cyan",
            )
        )
        if not _confirm("Write the release to the changelog file?"):
            log_warning("cancelled.")
            return preview

    summary = packer.pack(key, resolved_version, day)
    log_success(
        f"release {format_bold(summary.version)} with {len(summary.entry_ids)} entries "
        f"written to {summary.changelog_path}"
    )
    return summary


def run_flush(ctx: CLIContext, *, force: bool = False, assume_yes: bool = False) -> FlushSummary:
    """Remove all entries and channel state once everything is released."""
    packer = ctx.packer()
    if not assume_yes:
        if not _confirm("Delete all changelog entries and channel state?"):
            log_warning("cancelled.")
            return FlushSummary()
    summary = packer.flush(force=force)
    log_success(
        f"flushed {len(summary.entry_ids)} entries and {len(summary.state_files)} channel states."
    )
    return summary


@click.command("status")
@click.option("--channel", help="Channel to inspect (defaults to detection from the branch).")
@click.option("--branch", help="Branch name to use instead of asking git.")
@click.option("--ids", "ids_only", is_flag=True, help="Print pending entry ids to stdout.")
@click.pass_obj
def status_cmd(
    ctx: CLIContext,
    channel: Optional[str],
    branch: Optional[str],
    ids_only: bool,
) -> None:
    """Show changelog entries waiting for release on a channel."""
    pending = run_status(ctx, channel=channel, branch=branch, allow_interactive=not ids_only)
    if ids_only:
        for entry in pending:
            emit_output(entry.entry_id)


@click.command("pack")
@click.option("--channel", help="Channel to pack (defaults to detection from the branch).")
@click.option("--release-version", "-v", "version", help="Release version label.")
@click.option(
    "--date",
    "release_date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    help="Release date (YYYY-MM-DD). Defaults to today.",
)
@click.option("--branch", help="Branch name to use instead of asking git.")
@click.option(
    "--yes",
    "assume_yes",
    is_flag=True,
    help="Pack without prompts or confirmation.",
)
@click.pass_obj
def pack_cmd(
    ctx: CLIContext,
    channel: Optional[str],
    version: Optional[str],
    release_date: Optional[datetime],
    branch: Optional[str],
    assume_yes: bool,
) -> None:
    """Pack changelog entries into a release section of the channel changelog."""
    run_pack(
        ctx,
        channel=channel,
        version=version,
        release_date=release_date.date() if release_date else None,
        branch=branch,
        assume_yes=assume_yes,
    )


@click.command("flush")
@click.option(
    "--force",
    is_flag=True,
    help="Flush even if some entries are still waiting for release.",
)
@click.option("--yes", "assume_yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_obj
def flush_cmd(ctx: CLIContext, force: bool, assume_yes: bool) -> None:
    """Remove all entries and channel state, e.g. after merging all channel branches."""
    run_flush(ctx, force=force, assume_yes=assume_yes)
