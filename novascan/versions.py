"""Semantic version parsing and update severity classification."""

import re
from enum import IntEnum
from typing import NamedTuple

SEMVER_PATTERN = re.compile(
    r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?"
    r"(?:-([0-9A-Za-z.-]+))?"
    r"(?:\+([0-9A-Za-z.-]+))?$"
)


class UpdateSeverity(IntEnum):
    """How far behind upstream a component is."""

    NONE = 0
    MINOR = 1  # patch bump
    MAJOR = 2  # minor bump
    CRITICAL = 3  # major bump

    @classmethod
    def from_threshold(cls, name: str | None) -> "UpdateSeverity":
        """Map a configured threshold name to a level, defaulting to MINOR."""
        return {
            "minor": cls.MINOR,
            "major": cls.MAJOR,
            "critical": cls.CRITICAL,
        }.get((name or "").lower(), cls.MINOR)


class SemVer(NamedTuple):
    """Semantic version representation."""

    major: int
    minor: int
    patch: int
    prerelease: str = ""

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            return f"{base}-{self.prerelease}"
        return base


def parse_semver(version: str) -> SemVer | None:
    """Parse a version string into SemVer components.

    Accepts an optional ``v`` prefix, missing minor/patch components
    (``15`` and ``15.0`` both parse as ``15.0.0``), a prerelease suffix
    and build metadata. Returns None for anything else.
    """
    match = SEMVER_PATTERN.match(version.strip()) if version else None
    if not match:
        return None

    return SemVer(
        major=int(match.group(1)),
        minor=int(match.group(2) or 0),
        patch=int(match.group(3) or 0),
        prerelease=match.group(4) or "",
    )


def calculate_severity(current: SemVer, latest: SemVer) -> UpdateSeverity:
    """Classify the difference between two parsed versions."""
    if latest.major > current.major:
        return UpdateSeverity.CRITICAL
    if latest.minor > current.minor:
        return UpdateSeverity.MAJOR
    if latest.patch > current.patch:
        return UpdateSeverity.MINOR
    return UpdateSeverity.NONE


def version_severity(current: str, latest: str) -> UpdateSeverity:
    """
    Classify the difference between two version strings.

    If either side is not a semantic version the result is CRITICAL, so
    that an unparsable version can never cause a finding to be dropped.
    """
    current_ver = parse_semver(current)
    latest_ver = parse_semver(latest)

    if not current_ver or not latest_ver:
        return UpdateSeverity.CRITICAL

    return calculate_severity(current_ver, latest_ver)


def meets_min_severity(current: str, latest: str, threshold: UpdateSeverity) -> bool:
    """Check whether a version delta reaches the configured threshold."""
    return version_severity(current, latest) >= threshold
