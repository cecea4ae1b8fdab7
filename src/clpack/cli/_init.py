"""Init command: config file and changelog folder scaffolding."""

from __future__ import annotations

from pathlib import Path

import click

from ..config import Config, default_config_path, save_config
from ..utils import log_info, log_success
from ._core import CLIContext

__all__ = ["initialize_project", "init_cmd"]

GITKEEP = ".gitkeep"


def _ensure_subdir(path: Path) -> None:
    for candidate in (path.parent, path):
        if candidate.exists() and not candidate.is_dir():
            raise click.ClickException(
                f"Changelog path is clobbered, must be a directory or not exist: {candidate}"
            )
    if not path.is_dir():
        log_info(f"creating changelog directory: {path}")
        path.mkdir(parents=True, exist_ok=True)
    (path / GITKEEP).touch()


def initialize_project(ctx: CLIContext) -> Config:
    """Write the default config if missing and create the changelog folders."""
    config_path = ctx.config_path or default_config_path(ctx.project_root)
    if config_path.exists():
        log_info(f"loading existing config file: {config_path}")
        config = ctx.ensure_config()
    else:
        log_info(f"creating clpack config file: {config_path}")
        config = Config()
        save_config(config, config_path)
        ctx.reset_config(config)

    _ensure_subdir(config.entries_directory(ctx.project_root))
    _ensure_subdir(config.state_directory(ctx.project_root))
    log_success(f"changelog initialized at {config.data_directory(ctx.project_root)}")
    return config


@click.command("init")
@click.pass_obj
def init_cmd(ctx: CLIContext) -> None:
    """Create the config file and the changelog folder if they do not exist yet."""
    initialize_project(ctx)
