"""Add command for creating changelog entries."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import click
from rich.text import Text

from ..entries import EntryStore, normalize_entry_id
from ..errors import AlreadyExistsError
from ..resolver import extract_from_branch
from ..utils import (
    abort_on_user_interrupt,
    console,
    log_info,
    log_success,
    log_warning,
)
from ._core import CLIContext, _prompt_text

__all__ = [
    "build_entry_template",
    "create_entry",
    "add",
]


def build_entry_template(sections: Sequence[str], issue: Optional[str] = None) -> str:
    """Return starter text with one header and an empty bullet per section."""
    bullet = f"-  (#{issue})" if issue else "- "
    blocks = [f"# {section}\n{bullet}\n" for section in sections]
    return "\n".join(blocks)


def _detect_issue(ctx: CLIContext, branch: Optional[str]) -> Optional[str]:
    pattern = ctx.ensure_config().branch_issue_pattern
    if not branch or not pattern:
        return None
    try:
        return extract_from_branch(branch, pattern, label="branch_issue_pattern")
    except ValueError as error:
        raise click.ClickException(str(error)) from error


def _prompt_entry_id(store: EntryStore, default: Optional[str]) -> str:
    while True:
        value = _prompt_text(
            "Log entry name (used as file name, without extension)",
            default=default or None,
        ).strip()
        try:
            entry_id = normalize_entry_id(value)
        except ValueError as error:
            log_warning(str(error))
            continue
        if store.exists(entry_id):
            log_warning("entry already exists, try a different name.")
            continue
        return entry_id


def _prompt_sections(available: Sequence[str]) -> list[str]:
    prompt_text = Text("Sections: ", style="bold")
    for idx, name in enumerate(available, start=1):
        prompt_text.append(name)
        prompt_text.append(" [")
        prompt_text.append(str(idx), style="bold cyan")
        prompt_text.append("]")
        if idx < len(available):
            prompt_text.append(", ")
    console.print(prompt_text)

    while True:
        raw = _prompt_text("Choose sections (comma separated)", default="1")
        selected: list[str] = []
        unknown: list[str] = []
        for token in raw.split(","):
            token = token.strip()
            if not token:
                continue
            if token.isdigit() and 1 <= int(token) <= len(available):
                name = available[int(token) - 1]
            else:
                lookup = {value.lower(): value for value in available}
                name = lookup.get(token.lower(), token)
                if token.lower() not in lookup:
                    unknown.append(token)
            if name not in selected:
                selected.append(name)
        if unknown:
            log_info(f"using custom section(s): {', '.join(unknown)}")
        if selected:
            return selected
        log_warning("choose at least one section.")


def _edit_entry(template: str) -> str:
    log_info("launching editor for the entry (set EDITOR or pass --content to skip).")
    try:
        edited = click.edit(template, extension=".md")
    except (click.exceptions.Abort, KeyboardInterrupt) as exc:
        abort_on_user_interrupt(exc)
    if edited is None or not edited.strip():
        return template
    return edited


def create_entry(
    ctx: CLIContext,
    *,
    entry_id: Optional[str] = None,
    sections: Sequence[str] | None = None,
    content: Optional[str] = None,
    branch: Optional[str] = None,
    allow_interactive: bool = True,
) -> Path:
    """Python wrapper for creating entries that mirrors the CLI behavior."""

    config = ctx.ensure_config()
    store = ctx.packer().store
    resolved_branch = ctx.branch(branch)
    issue = _detect_issue(ctx, resolved_branch)
    if issue:
        log_info(f"issue #{issue} parsed from branch '{resolved_branch}'.")
    elif resolved_branch:
        log_warning(f"issue not recognized from branch name '{resolved_branch}'.")

    if entry_id is not None:
        try:
            normalized_id = normalize_entry_id(entry_id)
        except ValueError as error:
            raise click.ClickException(str(error)) from error
        if store.exists(normalized_id):
            raise AlreadyExistsError(f"Changelog entry already exists: {normalized_id}")
    elif allow_interactive:
        normalized_id = _prompt_entry_id(store, resolved_branch if issue else None)
    elif issue and resolved_branch:
        normalized_id = normalize_entry_id(resolved_branch.replace("/", "-"))
    else:
        raise click.ClickException("Entry name is required when running non-interactively.")

    chosen_sections = [name.strip() for name in (sections or ()) if name.strip()]
    if not chosen_sections and content is None:
        if allow_interactive:
            chosen_sections = _prompt_sections(config.sections)
        else:
            chosen_sections = list(config.sections[:1])

    if content is not None:
        text = content
    else:
        template = build_entry_template(chosen_sections, issue)
        text = _edit_entry(template) if allow_interactive else template

    if text and not text.endswith("\n"):
        text += "\n"

    path = store.create_entry(normalized_id, text)
    try:
        display_path = path.relative_to(Path.cwd())
    except ValueError:
        display_path = path
    log_success(f"entry created: {display_path}")
    return path


@click.command("add")
@click.argument("entry_id", required=False)
@click.option(
    "--section",
    "sections",
    multiple=True,
    help="Section to pre-generate in the entry (repeat for multiple).",
)
@click.option(
    "--content",
    help="Full entry text (skips the editor).",
)
@click.option(
    "--branch",
    help="Branch name to use instead of asking git.",
)
@click.option(
    "--no-input",
    "no_input",
    is_flag=True,
    help="Do not prompt or open an editor.",
)
@click.pass_obj
def add(
    ctx: CLIContext,
    entry_id: Optional[str] = None,
    sections: tuple[str, ...] = (),
    content: Optional[str] = None,
    branch: Optional[str] = None,
    no_input: bool = False,
) -> None:
    """Add a changelog entry on the current branch."""
    create_entry(
        ctx,
        entry_id=entry_id,
        sections=sections,
        content=content,
        branch=branch,
        allow_interactive=not no_input,
    )
