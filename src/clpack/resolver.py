"""Branch name based channel detection and version suggestions."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Mapping, Optional, Sequence

if TYPE_CHECKING:  # pragma: no cover
    from .config import ChannelConfig

__all__ = [
    "BranchRule",
    "ChannelResolver",
    "as_regex_pattern",
    "compile_branch_pattern",
    "compile_capture_pattern",
    "extract_from_branch",
]


def as_regex_pattern(value: str) -> Optional[str]:
    """Return the inner part of a slash-enclosed pattern, or None."""
    if len(value) >= 2 and value.startswith("/") and value.endswith("/"):
        return value[1:-1]
    return None


@dataclass(frozen=True)
class BranchRule:
    """A single branch matching rule: a regex, or an exact branch name."""

    source: str
    regex: Optional[re.Pattern[str]] = None

    def matches(self, branch_name: str) -> bool:
        if self.regex is not None:
            return self.regex.search(branch_name) is not None
        return branch_name == self.source


def compile_branch_pattern(pattern: str, label: str) -> BranchRule:
    """Compile a channel pattern. Slash-enclosed values are regexes."""
    inner = as_regex_pattern(pattern)
    if inner is None:
        return BranchRule(source=pattern)
    try:
        return BranchRule(source=pattern, regex=re.compile(inner))
    except re.error as exc:
        raise ValueError(f"Invalid regex in '{label}': {pattern} ({exc})") from exc


def compile_capture_pattern(pattern: str, label: str) -> re.Pattern[str]:
    """Compile a value-extracting pattern with exactly one capturing group.

    Both ``/regex/`` and bare regex syntax are accepted.
    """
    inner = as_regex_pattern(pattern)
    source = pattern if inner is None else inner
    try:
        compiled = re.compile(source)
    except re.error as exc:
        raise ValueError(f"Invalid regex in '{label}': {pattern} ({exc})") from exc
    if compiled.groups != 1:
        raise ValueError(
            f"The pattern '{label}' is not applicable: {pattern}. "
            f"There must be exactly one capturing group, found {compiled.groups}."
        )
    return compiled


def extract_from_branch(branch_name: str, pattern: str, *, label: str = "pattern") -> Optional[str]:
    """Return the captured value of ``pattern`` in ``branch_name``, if any."""
    if not branch_name:
        return None
    compiled = compile_capture_pattern(pattern, label)
    match = compiled.search(branch_name)
    if match is None:
        return None
    value = match.group(1)
    return value or None


class ChannelResolver:
    """Map branch names to configured channel keys.

    Channels are evaluated in configuration order. A channel matches when any
    of its rules match; channels without rules are never selected
    automatically. All matches are returned so that the caller can resolve
    ambiguity.
    """

    def __init__(self, channels: Mapping[str, Sequence[str]]) -> None:
        self._rules: list[tuple[str, list[BranchRule]]] = [
            (key, [compile_branch_pattern(p, f"channels.{key or 'default'}") for p in patterns])
            for key, patterns in channels.items()
        ]

    @classmethod
    def from_channels(cls, channels: Iterable[ChannelConfig]) -> ChannelResolver:
        return cls({channel.key: channel.branch_patterns for channel in channels})

    def resolve(self, branch_name: Optional[str]) -> list[str]:
        if not branch_name:
            return []
        return [
            key for key, rules in self._rules if any(rule.matches(branch_name) for rule in rules)
        ]

    @staticmethod
    def suggest_version(branch_name: Optional[str], pattern: Optional[str]) -> Optional[str]:
        if not branch_name or not pattern:
            return None
        return extract_from_branch(branch_name, pattern, label="branch_version_pattern")
