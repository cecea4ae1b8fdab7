"""CLI package for clpack.

This package contains the modular CLI implementation:
- _core.py: CLIContext, channel/version selection, main entry point
- _init.py: init command
- _add.py: add command for creating entries
- _pack.py: pack, status, and flush commands
"""

from __future__ import annotations

from ._core import (
    CLIContext,
    VERSION_FLAGS,
    create_cli_context,
    select_channel,
    select_version,
    _create_cli_group,
    main,
)
from ._init import initialize_project, init_cmd
from ._add import build_entry_template, create_entry, add
from ._pack import (
    run_flush,
    run_pack,
    run_status,
    flush_cmd,
    pack_cmd,
    status_cmd,
)

# Create the main CLI group
cli = _create_cli_group()

# Register all commands with the cli group
cli.add_command(init_cmd)
cli.add_command(add)
cli.add_command(status_cmd)
cli.add_command(pack_cmd)
cli.add_command(flush_cmd)


__all__ = [
    # Core
    "cli",
    "main",
    "CLIContext",
    "VERSION_FLAGS",
    "create_cli_context",
    "select_channel",
    "select_version",
    # Init
    "initialize_project",
    "init_cmd",
    # Add command
    "build_entry_template",
    "create_entry",
    "add",
    # Pack, status, flush
    "run_pack",
    "run_status",
    "run_flush",
    "pack_cmd",
    "status_cmd",
    "flush_cmd",
]
