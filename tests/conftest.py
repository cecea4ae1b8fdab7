from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from clpack.config import Config
from clpack.packer import Packer


@pytest.fixture
def write_entry(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write an entry file into the default entries directory."""

    def _write(entry_id: str, text: str) -> Path:
        directory = Config().entries_directory(tmp_path)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{entry_id}.md"
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_packer(tmp_path: Path) -> Callable[..., Packer]:
    def _make(config: Config | None = None) -> Packer:
        config = config or Config()
        config.entries_directory(tmp_path).mkdir(parents=True, exist_ok=True)
        return Packer(config, tmp_path)

    return _make
