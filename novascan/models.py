"""Data models for the nova-scanner service."""

from dataclasses import dataclass, field

HELM = "helm"
CONTAINER = "container"


@dataclass
class AffectedWorkload:
    """A Kubernetes workload running an outdated container image."""

    name: str
    namespace: str
    kind: str = ""
    container: str = ""


@dataclass
class HelmFinding:
    """A Helm release as reported by Nova."""

    release: str
    chart: str
    namespace: str
    installed_version: str
    latest_version: str
    outdated: bool = False
    deprecated: bool = False
    installed_app_version: str = ""
    latest_app_version: str = ""
    description: str = ""
    home: str = ""

    kind = HELM

    @property
    def name(self) -> str:
        """Release name, used in issue titles."""
        return self.release

    @property
    def current_version(self) -> str:
        """Installed chart version."""
        return self.installed_version


@dataclass
class ContainerFinding:
    """A container image as reported by Nova."""

    name: str
    current_tag: str
    latest_tag: str
    outdated: bool = False
    affected_workloads: list[AffectedWorkload] = field(default_factory=list)

    kind = CONTAINER

    @property
    def current_version(self) -> str:
        """Tag currently deployed."""
        return self.current_tag

    @property
    def latest_version(self) -> str:
        """Newest tag Nova found."""
        return self.latest_tag

    @property
    def namespaces(self) -> set[str]:
        """Namespaces of all workloads using this image."""
        return {w.namespace for w in self.affected_workloads}


@dataclass
class HelmScanResult:
    """Result of a Helm scan."""

    all_releases: list[HelmFinding] = field(default_factory=list)
    outdated: list[HelmFinding] = field(default_factory=list)
    duration: float = 0.0

    def outdated_namespaces(self) -> set[str]:
        """Namespaces that contain at least one actionable Helm release."""
        return {release.namespace for release in self.outdated}


@dataclass
class ContainerScanResult:
    """Result of a container scan."""

    all_containers: list[ContainerFinding] = field(default_factory=list)
    outdated: list[ContainerFinding] = field(default_factory=list)
    # Covered by an outdated Helm release in every workload namespace
    skipped: list[ContainerFinding] = field(default_factory=list)
    duration: float = 0.0
