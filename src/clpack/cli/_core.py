"""Core CLI infrastructure: context, channel and version selection, entry point."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version as metadata_version
from pathlib import Path
from typing import Any, Optional

import click
from packaging.version import InvalidVersion, Version

from .. import __version__ as package_version
from ..config import (
    Config,
    channel_label,
    default_config_path,
    load_project_config,
    resolve_channel_key,
)
from ..errors import ChangelogError, PartialPackError
from ..packer import Packer
from ..resolver import ChannelResolver
from ..utils import (
    abort_on_user_interrupt,
    configure_logging,
    current_branch,
    format_bold,
    log_debug,
    log_error,
    log_info,
    log_warning,
)

__all__ = [
    "CLIContext",
    "VERSION_FLAGS",
    "create_cli_context",
    "select_channel",
    "select_version",
    "_prompt_text",
    "_create_cli_group",
    "main",
]

VERSION_FLAGS = {"--version", "-V"}


def _resolve_cli_version() -> str:
    try:
        return metadata_version("clpack")
    except PackageNotFoundError:
        return package_version


@dataclass
class CLIContext:
    """Shared command context."""

    project_root: Path
    config_path: Optional[Path] = None
    _config: Optional[Config] = None

    def ensure_config(self) -> Config:
        if self._config is None:
            try:
                self._config = load_project_config(self.project_root, self.config_path)
            except FileNotFoundError as error:
                raise click.ClickException(str(error)) from error
            except ValueError as error:
                raise click.ClickException(f"Invalid config: {error}") from error
        return self._config

    def reset_config(self, config: Config) -> None:
        self._config = config

    def packer(self) -> Packer:
        return Packer(self.ensure_config(), self.project_root)

    def resolver(self) -> ChannelResolver:
        return ChannelResolver.from_channels(self.ensure_config().channels.values())

    def branch(self, override: Optional[str] = None) -> Optional[str]:
        if override is not None:
            return override.strip() or None
        branch = current_branch(self.project_root)
        log_debug(f"detected branch: {branch or '(none)'}")
        return branch


def _resolve_project_root(value: Path) -> Path:
    resolved = value.resolve()
    for candidate in [resolved] + list(resolved.parents):
        if default_config_path(candidate).is_file():
            return candidate
    return resolved


def create_cli_context(
    *,
    root: Path | None = None,
    config: Optional[Path] = None,
    debug: bool = False,
) -> CLIContext:
    """Return a CLIContext using the same resolution logic as the CLI entry point."""

    configure_logging(debug)

    if root is not None:
        resolved_root = root.resolve()
    elif config is not None:
        resolved_root = config.resolve().parent
    else:
        resolved_root = _resolve_project_root(Path("."))

    config_path = config.resolve() if config else None
    log_debug(f"resolved project root: {resolved_root}")
    log_debug(f"using config path: {config_path or default_config_path(resolved_root)}")
    return CLIContext(project_root=resolved_root, config_path=config_path)


def _prompt_text(label: str, **kwargs: Any) -> str:
    prompt_suffix = kwargs.pop("prompt_suffix", ": ")
    try:
        result = click.prompt(click.style(label, bold=True), prompt_suffix=prompt_suffix, **kwargs)
    except (click.exceptions.Abort, KeyboardInterrupt) as exc:
        abort_on_user_interrupt(exc)
    return str(result)


def select_channel(
    ctx: CLIContext,
    explicit: Optional[str],
    branch: Optional[str],
    *,
    interactive: bool,
) -> str:
    """Pick the channel to operate on.

    An explicit channel wins. With several configured channels the branch is
    matched against channel patterns; ambiguity is resolved by prompting, or
    rejected when running non-interactively.
    """
    config = ctx.ensure_config()
    if explicit is not None:
        return resolve_channel_key(config, explicit)

    keys = list(config.channels)
    if len(keys) == 1:
        return keys[0]

    matches = ctx.resolver().resolve(branch)
    if len(matches) == 1:
        log_info(
            f"branch {format_bold(branch or '')} selects channel "
            f"{format_bold(channel_label(matches[0]))}."
        )
        return matches[0]

    if not interactive:
        if not matches:
            log_info(
                f"no channel matches branch '{branch or ''}', using default channel "
                f"'{channel_label(config.default_channel)}'."
            )
            return config.default_channel
        labels = ", ".join(channel_label(key) for key in matches)
        raise click.ClickException(
            f"Branch '{branch}' matches several channels ({labels}). Pass --channel to choose one."
        )

    if len(matches) > 1:
        log_warning(
            f"branch '{branch}' matches several channels: "
            f"{', '.join(channel_label(key) for key in matches)}."
        )
    default_key = matches[0] if matches else config.default_channel
    labels = [channel_label(key) for key in keys]
    choice = _prompt_text(
        "Release channel",
        type=click.Choice(labels),
        default=channel_label(default_key),
    )
    return resolve_channel_key(config, choice)


def _warn_on_unusual_version(version: str) -> None:
    try:
        Version(version)
    except InvalidVersion:
        log_warning(f"version '{version}' is not a PEP 440 / semantic version label.")


def select_version(
    ctx: CLIContext,
    explicit: Optional[str],
    branch: Optional[str],
    *,
    interactive: bool,
) -> str:
    """Determine the release version, suggesting one from the branch name."""
    config = ctx.ensure_config()
    if explicit is not None and explicit.strip():
        version = explicit.strip()
    else:
        try:
            suggestion = ChannelResolver.suggest_version(branch, config.branch_version_pattern)
        except ValueError as error:
            raise click.ClickException(str(error)) from error
        if suggestion:
            log_info(f"version {format_bold(suggestion)} suggested by branch '{branch}'.")
        if not interactive:
            if not suggestion:
                raise click.ClickException(
                    "Release version is required; pass --release-version or use a release branch."
                )
            version = suggestion
        else:
            version = _prompt_text("Version", default=suggestion or None).strip()
            if not version:
                raise click.ClickException("Cancelled.")
    _warn_on_unusual_version(version)
    return version


def _create_cli_group() -> click.Group:
    """Create the main CLI group. Called after all commands are defined."""

    @click.group(
        invoke_without_command=True, context_settings={"help_option_names": ["-h", "--help"]}
    )
    @click.option(
        "--root",
        type=click.Path(path_type=Path, exists=True, file_okay=False),
        help="Project root containing the config, changelog folder, and changelog files.",
    )
    @click.option(
        "--config",
        "-c",
        type=click.Path(path_type=Path, dir_okay=False),
        help="Path to an explicit clpack config YAML file.",
    )
    @click.option(
        "--debug",
        "-d",
        is_flag=True,
        help="Enable debug logging.",
    )
    @click.pass_context
    def _cli(
        ctx: click.Context,
        root: Path | None,
        config: Optional[Path],
        debug: bool,
    ) -> None:
        """Manage changelog entries and pack them into channel changelogs.

        Call with no command to create a changelog entry (same as 'add').
        """

        ctx.obj = create_cli_context(root=root, config=config, debug=debug)

        if ctx.invoked_subcommand is None:
            from ._add import add

            ctx.invoke(add)

    return click.version_option(version=_resolve_cli_version())(_cli)


def _report_error(exc: click.ClickException) -> int:
    if not isinstance(exc, ChangelogError):
        exc.show(file=sys.stderr)
        return exc.exit_code
    log_error(exc.format_message())
    if isinstance(exc, PartialPackError) and not exc.rolled_back:
        log_warning(
            f"the channel state was not updated; packing again before cleaning up "
            f"{exc.changelog_path} repeats the release block."
        )
    return exc.exit_code


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return its exit code.

    Core errors are logged with the error glyph; a partial pack exits with
    code 3 so that CI jobs can tell it apart from ordinary failures.
    """
    from . import cli

    args = list(sys.argv[1:] if argv is None else argv)
    if VERSION_FLAGS.intersection(args):
        click.echo(_resolve_cli_version())
        return 0

    try:
        result = cli.main(args=args, prog_name="clpack", standalone_mode=False)
    except click.ClickException as exc:
        return _report_error(exc)
    except (click.exceptions.Abort, KeyboardInterrupt) as exc:
        try:
            abort_on_user_interrupt(exc)
        except click.exceptions.Exit as exit_exc:
            return exit_exc.exit_code
    return result if isinstance(result, int) else 0
