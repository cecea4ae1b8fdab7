"""Shared utilities for the changelog core and CLI."""

from __future__ import annotations

import logging
import os
import stat
import subprocess
import sys
import tempfile
from datetime import date, datetime
from pathlib import Path
from typing import NoReturn, Optional

import click
from rich.console import Console

BOLD = "\033[1m"
RESET = "\033[0m"

SUCCESS = logging.INFO + 5
logging.addLevelName(SUCCESS, "SUCCESS")

LEVEL_GLYPHS = {
    logging.DEBUG: "\033[95m◆\033[0m",
    logging.INFO: "\033[94;1mi\033[0m",
    SUCCESS: "\033[92;1m✔\033[0m",
    logging.WARNING: "○",
    logging.ERROR: "\033[31m✘\033[0m",
}

_LOGGER = logging.getLogger("clpack")

console = Console(stderr=True)


class GlyphFormatter(logging.Formatter):
    """Prefix each line of a record with the glyph of its level."""

    def format(self, record: logging.LogRecord) -> str:
        glyph = LEVEL_GLYPHS.get(record.levelno, "")
        lines = record.getMessage().split("\n")
        return "\n".join(f"{glyph} {line}" if line else glyph for line in lines)


def configure_logging(debug: bool = False) -> logging.Logger:
    """Route the ``clpack`` logger to stderr, at debug level if requested."""
    level = logging.DEBUG if debug else logging.INFO
    _LOGGER.setLevel(level)
    for handler in list(_LOGGER.handlers):
        _LOGGER.removeHandler(handler)
        handler.close()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(GlyphFormatter())
    _LOGGER.addHandler(handler)
    _LOGGER.propagate = False
    return _LOGGER


def log_info(message: str) -> None:
    _LOGGER.info(message)


def log_success(message: str) -> None:
    _LOGGER.log(SUCCESS, message)


def log_error(message: str) -> None:
    _LOGGER.error(message)


def log_warning(message: str) -> None:
    _LOGGER.warning(message)


def log_debug(message: str) -> None:
    _LOGGER.debug(message)


def abort_on_user_interrupt(exc: BaseException | None = None) -> NoReturn:
    """Log a standardized cancellation message and exit the command."""

    log_error("operation cancelled by user (Ctrl+C).")
    raise click.exceptions.Exit(130) from exc


def format_bold(text: str) -> str:
    """Return text wrapped in ANSI bold styling."""
    return f"{BOLD}{text}{RESET}"


def emit_output(content: str, *, newline: bool = True) -> None:
    """Emit raw command output to stdout for machine consumption."""
    click.echo(content, nl=newline, err=False)


def coerce_date(value: object) -> Optional[date]:
    """Return a date object for ISO-like inputs, preserving None."""
    if value is None:
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def _default_file_mode() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text to path atomically using temp file + replace.

    The replaced file keeps the permission bits of the previous file, or gets
    the umask default when it is new.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        try:
            mode = stat.S_IMODE(path.stat().st_mode)
        except FileNotFoundError:
            mode = _default_file_mode()
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def current_branch(project_root: Path) -> Optional[str]:
    """Return the current branch name if HEAD is not detached."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--abbrev-ref", "HEAD"],
            cwd=str(project_root),
            check=True,
            capture_output=True,
            text=True,
        )
    except (subprocess.CalledProcessError, FileNotFoundError):
        return None
    branch = result.stdout.strip()
    if not branch or branch == "HEAD":
        return None
    return branch
