"""
Semantic version parsing and ordering (SemVer 2.0 precedence).

Build metadata is accepted and ignored for ordering. Pre-release versions
sort before the corresponding release.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Tuple, Union

_SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[A-Za-z-][0-9A-Za-z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[A-Za-z-][0-9A-Za-z-]*))*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)


class InvalidVersion(ValueError):
    """Raised when a string is not a valid semantic version."""


@total_ordering
@dataclass(frozen=True)
class SchemaVersion:
    major: int
    minor: int
    patch: int
    prerelease: Tuple[str, ...] = ()
    build: str = field(default="", compare=False)

    @classmethod
    def parse(cls, value: Union[str, "SchemaVersion"]) -> "SchemaVersion":
        if isinstance(value, SchemaVersion):
            return value
        if not isinstance(value, str):
            raise InvalidVersion(f"Version must be a string, got {type(value).__name__}")

        match = _SEMVER_RE.match(value.strip())
        if match is None:
            raise InvalidVersion(f"Not a semantic version (major.minor.patch): {value!r}")

        major, minor, patch, prerelease, build = match.groups()
        return cls(
            major=int(major),
            minor=int(minor),
            patch=int(patch),
            prerelease=tuple(prerelease.split(".")) if prerelease else (),
            build=build or "",
        )

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def _precedence(self) -> tuple:
        # A release (no pre-release tag) outranks every pre-release of the
        # same major.minor.patch.
        if not self.prerelease:
            pre: tuple = (1,)
        else:
            pre = (0,) + tuple(
                (0, int(part), "") if part.isdigit() else (1, 0, part)
                for part in self.prerelease
            )
        return (self.major, self.minor, self.patch, pre)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SchemaVersion):
            return NotImplemented
        return self._precedence() == other._precedence()

    def __lt__(self, other: "SchemaVersion") -> bool:
        if not isinstance(other, SchemaVersion):
            return NotImplemented
        return self._precedence() < other._precedence()

    def __hash__(self) -> int:
        return hash(self._precedence())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + self.build
        return text
