"""Filtering and deduplication of Nova inventory."""

import logging
from typing import Iterable

from ..config import Config
from ..models import ContainerFinding, HelmFinding
from ..versions import meets_min_severity

logger = logging.getLogger(__name__)


def match_glob(pattern: str, candidate: str) -> bool:
    """
    Match an image reference against a restricted glob pattern.

    Supported shapes are ``*`` (anything), an exact string, ``*/rest``
    (``rest`` matches the text after any ``/`` in the candidate) and
    ``prefix*``. There is no general glob support.
    """
    if pattern == "*":
        return True
    if pattern == candidate:
        return True

    # */name:* - anything up to some "/", then the rest of the pattern
    if len(pattern) > 2 and pattern.startswith("*/"):
        rest = pattern[2:]
        for i, char in enumerate(candidate):
            if char == "/" and match_glob(rest, candidate[i + 1:]):
                return True

    # name:* - literal prefix
    if len(pattern) > 1 and pattern.endswith("*"):
        if candidate.startswith(pattern[:-1]):
            return True

    return False


def matches_any(patterns: Iterable[str], candidate: str) -> bool:
    """Check whether any pattern matches the candidate."""
    return any(match_glob(pattern, candidate) for pattern in patterns)


def should_skip_container_for_helm(container: ContainerFinding, helm_namespaces: set[str] | None) -> bool:
    """
    Check whether a container is covered by outdated Helm releases.

    True only if the image has at least one affected workload and every
    one of them lives in a namespace with an outdated Helm release.
    """
    if not helm_namespaces:
        return False
    if not container.affected_workloads:
        return False
    return all(w.namespace in helm_namespaces for w in container.affected_workloads)


class InventoryFilter:
    """Turns raw Nova inventory into actionable findings."""

    def __init__(self, config: Config):
        self.config = config
        self.threshold = config.severity_level()

    def should_ignore_release(self, release: HelmFinding) -> bool:
        """Check the release and chart ignore lists."""
        return (
            release.release in self.config.ignore_releases
            or release.chart in self.config.ignore_charts
        )

    def should_ignore_container(self, container: ContainerFinding) -> bool:
        """Check the image ignore patterns."""
        return matches_any(self.config.ignore_images, container.name)

    def _is_actionable(self, name: str, blacklist_key: str, current: str, latest: str) -> bool:
        """Apply the version blacklist and severity gate to an outdated finding."""
        if self.config.should_ignore_chart_version(blacklist_key, latest):
            logger.debug(f"Skipping {name}: latest version {latest} matches blacklist pattern")
            return False

        if not meets_min_severity(current, latest, self.threshold):
            logger.debug(
                f"Skipping {name}: {current} -> {latest} is below "
                f"minimum severity {self.config.min_severity}"
            )
            return False

        return True

    def filter_releases(self, releases: list[HelmFinding]) -> tuple[list[HelmFinding], list[HelmFinding]]:
        """
        Filter Helm releases.

        Returns:
            Tuple of (releases not ignored, actionable outdated releases),
            both in inventory order.
        """
        kept = [r for r in releases if not self.should_ignore_release(r)]

        outdated = []
        for release in kept:
            if not release.outdated:
                continue
            if self._is_actionable(
                release.release,
                release.chart,
                release.installed_version,
                release.latest_version,
            ):
                outdated.append(release)
                logger.warning(
                    f"Outdated Helm release {release.namespace}/{release.release}: "
                    f"{release.installed_version} -> {release.latest_version}"
                )

        return kept, outdated

    def filter_containers(
        self,
        containers: list[ContainerFinding],
        helm_namespaces: set[str] | None = None,
    ) -> tuple[list[ContainerFinding], list[ContainerFinding], list[ContainerFinding]]:
        """
        Filter container images and drop those covered by Helm upgrades.

        Returns:
            Tuple of (containers not ignored, actionable outdated containers,
            containers skipped because Helm upgrades cover them).
        """
        kept = [c for c in containers if not self.should_ignore_container(c)]

        outdated = []
        skipped = []
        for container in kept:
            if not container.outdated:
                continue
            if not self._is_actionable(
                container.name,
                container.name,
                container.current_tag,
                container.latest_tag,
            ):
                continue

            if should_skip_container_for_helm(container, helm_namespaces):
                skipped.append(container)
                logger.debug(
                    f"Skipping container {container.name}: all workloads are in "
                    f"namespaces with outdated Helm releases"
                )
                continue

            outdated.append(container)
            logger.warning(
                f"Outdated container image {container.name}: "
                f"{container.current_tag} -> {container.latest_tag}"
            )

        return kept, outdated, skipped
