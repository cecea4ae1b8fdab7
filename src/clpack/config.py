"""Configuration helpers for clpack."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, MutableMapping, Optional

import yaml

from .errors import NotFoundError
from .resolver import compile_branch_pattern, compile_capture_pattern

CONFIG_RELATIVE_PATH = Path("clpack.yaml")
ENTRIES_DIRECTORY_NAME = "entries"
CHANNELS_DIRECTORY_NAME = "channels"

DEFAULT_DATA_FOLDER = "changelog"
DEFAULT_CHANNEL = ""
DEFAULT_CHANGELOG_FILE = "CHANGELOG.md"
DEFAULT_CHANNEL_CHANGELOG_FILE = "CHANGELOG-{CHANNEL}.md"
DEFAULT_CHANGELOG_HEADER = "# Changelog\n\n"
DEFAULT_RELEASE_HEADER = "[{VERSION}] - {DATE}"
DEFAULT_DATE_FORMAT = "%Y-%m-%d"
DEFAULT_SECTIONS = ("Fixes", "Improvements", "New features", "Internal")
DEFAULT_CHANNEL_PATTERNS = ("/^(?:main|master)$/",)
DEFAULT_BRANCH_ISSUE_PATTERN = r"/^((?:SW-)?\d+)-.*/"
DEFAULT_BRANCH_VERSION_PATTERN = r"/^rel\/([\d.]+)$/"

_CHANNEL_KEY_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def default_config_path(project_root: Path) -> Path:
    """Return the default config path for a project root."""
    return project_root / CONFIG_RELATIVE_PATH


def channel_label(key: str) -> str:
    """Return a printable name for a channel key."""
    return key or "default"


@dataclass
class ChannelConfig:
    """A release channel: how to detect it and where its changelog lives."""

    key: str
    branch_patterns: list[str] = field(default_factory=list)
    changelog: Optional[str] = None


def _default_channels() -> dict[str, ChannelConfig]:
    return {DEFAULT_CHANNEL: ChannelConfig(DEFAULT_CHANNEL, list(DEFAULT_CHANNEL_PATTERNS))}


@dataclass
class Config:
    """Structured representation of the clpack config."""

    data_folder: str = DEFAULT_DATA_FOLDER
    default_channel: str = DEFAULT_CHANNEL
    changelog_file_default: str = DEFAULT_CHANGELOG_FILE
    changelog_file_channel: str = DEFAULT_CHANNEL_CHANGELOG_FILE
    changelog_header: str = DEFAULT_CHANGELOG_HEADER
    release_header: str = DEFAULT_RELEASE_HEADER
    date_format: str = DEFAULT_DATE_FORMAT
    sections: list[str] = field(default_factory=lambda: list(DEFAULT_SECTIONS))
    channels: dict[str, ChannelConfig] = field(default_factory=_default_channels)
    branch_issue_pattern: Optional[str] = DEFAULT_BRANCH_ISSUE_PATTERN
    branch_version_pattern: Optional[str] = DEFAULT_BRANCH_VERSION_PATTERN

    def channel(self, key: str) -> ChannelConfig:
        try:
            return self.channels[key]
        except KeyError:
            known = ", ".join(channel_label(name) for name in self.channels)
            raise NotFoundError(
                f"No such channel: '{channel_label(key)}'. Configured channels: {known}"
            ) from None

    def data_directory(self, project_root: Path) -> Path:
        return project_root / self.data_folder

    def entries_directory(self, project_root: Path) -> Path:
        return self.data_directory(project_root) / ENTRIES_DIRECTORY_NAME

    def state_directory(self, project_root: Path) -> Path:
        return self.data_directory(project_root) / CHANNELS_DIRECTORY_NAME

    def changelog_path(self, project_root: Path, key: str) -> Path:
        """Return the changelog file of a channel, relative to the project root."""
        channel = self.channel(key)
        if channel.changelog:
            return project_root / channel.changelog
        if key == self.default_channel:
            return project_root / self.changelog_file_default
        rendered = (
            self.changelog_file_channel.replace("{channel}", key.lower())
            .replace("{Channel}", key[:1].upper() + key[1:])
            .replace("{CHANNEL}", key.upper())
        )
        return project_root / rendered


def _coerce_patterns(value: Any, *, channel: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        patterns: list[str] = []
        for item in value:
            if not isinstance(item, str):
                raise ValueError(f"Patterns of channel '{channel_label(channel)}' must be strings.")
            if item.strip():
                patterns.append(item)
        return patterns
    raise ValueError(
        f"Channel '{channel_label(channel)}' must map to a pattern, a list of patterns, "
        "or a mapping."
    )


def _parse_channel(key: str, value: Any) -> ChannelConfig:
    if key and not _CHANNEL_KEY_RE.match(key):
        raise ValueError(
            f"Invalid channel key '{key}'. Use letters, digits, '.', '_' and '-' only."
        )
    changelog: Optional[str] = None
    if isinstance(value, MutableMapping):
        unknown = set(value) - {"patterns", "changelog"}
        if unknown:
            raise ValueError(
                f"Unknown option(s) for channel '{channel_label(key)}': "
                f"{', '.join(sorted(map(str, unknown)))}"
            )
        patterns = _coerce_patterns(value.get("patterns"), channel=key)
        changelog_raw = value.get("changelog")
        if changelog_raw is not None:
            changelog = str(changelog_raw).strip() or None
    else:
        patterns = _coerce_patterns(value, channel=key)
    for pattern in patterns:
        compile_branch_pattern(pattern, f"channels.{channel_label(key)}")
    return ChannelConfig(key=key, branch_patterns=patterns, changelog=changelog)


def _parse_channels(raw: Any) -> dict[str, ChannelConfig]:
    if not isinstance(raw, MutableMapping):
        raise ValueError("Config option 'channels' must be a mapping.")
    channels: dict[str, ChannelConfig] = {}
    for raw_key, value in raw.items():
        key = "" if raw_key is None else str(raw_key).strip()
        if key in channels:
            raise ValueError(f"Channel '{channel_label(key)}' is defined more than once.")
        channels[key] = _parse_channel(key, value)
    if "" in channels and "default" in channels:
        raise ValueError("Channels '' and 'default' cannot both be defined.")
    return channels


def resolve_channel_key(config: Config, value: str) -> str:
    """Map a user-supplied channel name to a configured key."""
    name = value.strip()
    if name in config.channels:
        return name
    if name == "default" and "" in config.channels:
        return ""
    return config.channel(name).key


def _string_option(raw: MutableMapping[str, Any], name: str, default: str) -> str:
    value = raw.get(name)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValueError(f"Config option '{name}' must be a string.")
    return value


def _optional_pattern(raw: MutableMapping[str, Any], name: str, default: str) -> Optional[str]:
    if name not in raw:
        return default
    value = raw.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if not isinstance(value, str):
        raise ValueError(f"Config option '{name}' must be a string.")
    compile_capture_pattern(value, name)
    return value


_KNOWN_OPTIONS = frozenset(
    {
        "data_folder",
        "default_channel",
        "changelog_file_default",
        "changelog_file_channel",
        "changelog_header",
        "release_header",
        "date_format",
        "sections",
        "channels",
        "branch_issue_pattern",
        "branch_version_pattern",
    }
)


def _check_changelog_paths(config: Config) -> None:
    """Reject channels whose changelog files would be the same file."""
    owners: dict[str, str] = {}
    for key in config.channels:
        target = os.path.normpath(config.changelog_path(Path("."), key))
        other = owners.setdefault(target.casefold(), key)
        if other != key:
            raise ValueError(
                f"Channels '{channel_label(other)}' and '{channel_label(key)}' "
                f"would write the same changelog file: {target}"
            )


def parse_config(raw: Any) -> Config:
    """Build a Config from a decoded YAML document."""
    if raw is None:
        raw = {}
    if not isinstance(raw, MutableMapping):
        raise ValueError("Config root must be a mapping")
    unknown = set(raw) - _KNOWN_OPTIONS
    if unknown:
        raise ValueError(f"Unknown config option(s): {', '.join(sorted(map(str, unknown)))}")

    data_folder = _string_option(raw, "data_folder", DEFAULT_DATA_FOLDER).strip()
    if not data_folder:
        raise ValueError("Config option 'data_folder' must not be empty.")

    sections_raw = raw.get("sections")
    if sections_raw is None:
        sections = list(DEFAULT_SECTIONS)
    elif isinstance(sections_raw, list):
        sections = [str(item).strip() for item in sections_raw if str(item).strip()]
    else:
        raise ValueError("Config option 'sections' must be a list.")

    channels_raw = raw.get("channels")
    channels = _default_channels() if channels_raw is None else _parse_channels(channels_raw)

    default_channel = _string_option(raw, "default_channel", DEFAULT_CHANNEL).strip()
    if default_channel not in channels:
        raise ValueError(
            f"Default channel '{channel_label(default_channel)}' is missing from 'channels'."
        )

    config = Config(
        data_folder=data_folder,
        default_channel=default_channel,
        changelog_file_default=_string_option(
            raw, "changelog_file_default", DEFAULT_CHANGELOG_FILE
        ),
        changelog_file_channel=_string_option(
            raw, "changelog_file_channel", DEFAULT_CHANNEL_CHANGELOG_FILE
        ),
        changelog_header=_string_option(raw, "changelog_header", DEFAULT_CHANGELOG_HEADER),
        release_header=_string_option(raw, "release_header", DEFAULT_RELEASE_HEADER),
        date_format=_string_option(raw, "date_format", DEFAULT_DATE_FORMAT),
        sections=sections,
        channels=channels,
        branch_issue_pattern=_optional_pattern(
            raw, "branch_issue_pattern", DEFAULT_BRANCH_ISSUE_PATTERN
        ),
        branch_version_pattern=_optional_pattern(
            raw, "branch_version_pattern", DEFAULT_BRANCH_VERSION_PATTERN
        ),
    )
    _check_changelog_paths(config)
    return config


def load_config(path: Path) -> Config:
    """Load the configuration from disk."""
    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle)
    return parse_config(raw)


def _dump_channel(channel: ChannelConfig) -> Any:
    if channel.changelog:
        return {"patterns": list(channel.branch_patterns), "changelog": channel.changelog}
    if len(channel.branch_patterns) == 1:
        return channel.branch_patterns[0]
    return list(channel.branch_patterns)


def dump_config(config: Config, *, include_defaults: bool = False) -> dict[str, Any]:
    """Convert a Config into a plain dictionary suitable for YAML output."""
    defaults = Config()
    data: dict[str, Any] = {}
    for name in (
        "data_folder",
        "default_channel",
        "changelog_file_default",
        "changelog_file_channel",
        "changelog_header",
        "release_header",
        "date_format",
    ):
        value = getattr(config, name)
        if include_defaults or value != getattr(defaults, name):
            data[name] = value
    if include_defaults or config.sections != defaults.sections:
        data["sections"] = list(config.sections)
    if include_defaults or config.channels != defaults.channels:
        data["channels"] = {key: _dump_channel(ch) for key, ch in config.channels.items()}
    for name in ("branch_issue_pattern", "branch_version_pattern"):
        value = getattr(config, name)
        if include_defaults or value != getattr(defaults, name):
            data[name] = value
    return data


def save_config(config: Config, path: Path, *, include_defaults: bool = True) -> None:
    """Write the configuration to disk."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(
            dump_config(config, include_defaults=include_defaults),
            handle,
            sort_keys=False,
            allow_unicode=True,
        )


def load_project_config(project_root: Path, config_path: Optional[Path] = None) -> Config:
    """Load a project config, falling back to built-in defaults when none exists."""
    if config_path is not None:
        if not config_path.is_file():
            raise FileNotFoundError(f"Failed to load config file at {config_path}")
        return load_config(config_path)
    path = default_config_path(project_root)
    if path.is_file():
        return load_config(path)
    return Config()
