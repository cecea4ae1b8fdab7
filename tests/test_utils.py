from __future__ import annotations

import logging
import os
import stat
import subprocess
from datetime import date, datetime
from pathlib import Path

import pytest

from clpack import utils


def test_atomic_write_text_replaces_content(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "file.md"

    utils.atomic_write_text(target, "first\n")
    utils.atomic_write_text(target, "second\n")

    assert target.read_text(encoding="utf-8") == "second\n"
    assert [path.name for path in target.parent.iterdir()] == ["file.md"]


def test_coerce_date() -> None:
    assert utils.coerce_date(None) is None
    assert utils.coerce_date("2024-01-01") == date(2024, 1, 1)
    assert utils.coerce_date(datetime(2024, 1, 1, 12, 30)) == date(2024, 1, 1)
    assert utils.coerce_date("not a date") is None


def test_configure_logging_levels() -> None:
    logger = utils.configure_logging(debug=True)
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1

    logger = utils.configure_logging(debug=False)
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1


def test_current_branch_reads_git(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[list[str]] = []

    def fake_run(args, **kwargs):
        calls.append(args)
        return subprocess.CompletedProcess(args, 0, stdout="rel/3.14\n", stderr="")

    monkeypatch.setattr(utils.subprocess, "run", fake_run)

    assert utils.current_branch(tmp_path) == "rel/3.14"
    assert calls == [["git", "rev-parse", "--abbrev-ref", "HEAD"]]


@pytest.mark.parametrize("stdout", ["HEAD\n", "\n"])
def test_current_branch_detached_head(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, stdout: str
) -> None:
    monkeypatch.setattr(
        utils.subprocess,
        "run",
        lambda args, **kwargs: subprocess.CompletedProcess(args, 0, stdout=stdout, stderr=""),
    )

    assert utils.current_branch(tmp_path) is None


def test_current_branch_without_git(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def missing(args, **kwargs):
        raise FileNotFoundError("git")

    monkeypatch.setattr(utils.subprocess, "run", missing)

    assert utils.current_branch(tmp_path) is None


def test_atomic_write_text_keeps_existing_mode(tmp_path: Path) -> None:
    target = tmp_path / "CHANGELOG.md"
    target.write_text("old\n", encoding="utf-8")
    target.chmod(0o644)

    utils.atomic_write_text(target, "new\n")

    assert stat.S_IMODE(target.stat().st_mode) == 0o644
    assert target.read_text(encoding="utf-8") == "new\n"


def test_atomic_write_text_new_file_follows_umask(tmp_path: Path) -> None:
    previous = os.umask(0o022)
    try:
        utils.atomic_write_text(tmp_path / "state.json", "{}\n")
    finally:
        os.umask(previous)

    assert stat.S_IMODE((tmp_path / "state.json").stat().st_mode) == 0o644


def test_glyph_formatter_prefixes_every_line() -> None:
    record = logging.LogRecord("clpack", logging.WARNING, __file__, 1, "one\n\ntwo", None, None)

    text = utils.GlyphFormatter().format(record)

    glyph = utils.LEVEL_GLYPHS[logging.WARNING]
    assert text == f"{glyph} one\n{glyph}\n{glyph} two"


def test_log_success_uses_success_level(caplog: pytest.LogCaptureFixture) -> None:
    logger = utils.configure_logging()
    logger.propagate = True
    try:
        with caplog.at_level(logging.INFO, logger="clpack"):
            utils.log_success("done")
    finally:
        logger.propagate = False

    assert [(record.levelname, record.getMessage()) for record in caplog.records] == [
        ("SUCCESS", "done")
    ]
