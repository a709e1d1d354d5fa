"""Issue creation with deduplication against existing open issues."""

import logging
from dataclasses import dataclass
from enum import Enum

from .exceptions import TrackerError
from .models import ContainerFinding, HelmFinding

logger = logging.getLogger(__name__)

Finding = HelmFinding | ContainerFinding


class IssueAction(str, Enum):
    """What happened to a finding in the issue tracker."""

    CREATED = "created"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    DRY_RUN = "dry_run"
    ERROR = "error"


@dataclass
class IssueOutcome:
    """Result of processing one finding."""

    kind: str
    name: str
    title: str
    action: IssueAction
    url: str = ""
    operation: str = ""
    error: str = ""

    @property
    def failed(self) -> bool:
        return self.action == IssueAction.ERROR


def escape_search_query(text: str) -> str:
    """Remove characters that would break a GitHub search query."""
    return text.replace('"', "").replace("\\", "")


def format_helm_issue_title(release: HelmFinding) -> str:
    return (
        f"[Nova] Update Helm chart: {release.release} "
        f"({release.installed_version} → {release.latest_version})"
    )


def format_container_issue_title(container: ContainerFinding) -> str:
    return (
        f"[Nova] Update container image: {container.name} "
        f"({container.current_tag} → {container.latest_tag})"
    )


def format_issue_title(finding: Finding) -> str:
    """Canonical title for a finding; also the deduplication key."""
    if isinstance(finding, HelmFinding):
        return format_helm_issue_title(finding)
    return format_container_issue_title(finding)


def format_helm_issue_body(release: HelmFinding) -> str:
    """Markdown body for an outdated Helm release."""
    deprecated = "Yes" if release.deprecated else "No"
    name = release.release
    ns = release.namespace

    return f"""## Outdated Helm Chart Detected

| Field | Value |
|-------|-------|
| Release Name | `{name}` |
| Chart Name | `{release.chart}` |
| Namespace | `{ns}` |
| Current Version | `{release.installed_version}` |
| Latest Version | `{release.latest_version}` |
| Deprecated | {deprecated} |

## Update Checklist

- [ ] Review changelog for breaking changes between {release.installed_version} and {release.latest_version}
- [ ] Update HelmRelease manifest with new version
- [ ] Commit and push to trigger Flux reconciliation
- [ ] Verify Flux successfully reconciles the HelmRelease
- [ ] Check application health post-upgrade

## Flux Update (GitOps)

Update your HelmRelease manifest:

```yaml
spec:
  chart:
    spec:
      version: "{release.latest_version}"  # was: {release.installed_version}
```

## Useful Commands

```bash
# Check current HelmRelease status
flux get helmreleases -n {ns} | grep {name}

# Force reconciliation after commit
flux reconcile helmrelease {name} -n {ns}

# View Helm release history
helm history {name} -n {ns}
```

---
*This issue was automatically created by nova-scanner*
"""


def format_workload_table(container: ContainerFinding) -> str:
    if not container.affected_workloads:
        return "_No workload information available_"

    lines = [
        "| Workload | Namespace | Kind | Container |",
        "|----------|-----------|------|-----------|",
    ]
    for w in container.affected_workloads:
        lines.append(f"| {w.name} | {w.namespace} | {w.kind} | {w.container} |")
    return "\n".join(lines)


def format_container_issue_body(container: ContainerFinding) -> str:
    """Markdown body for an outdated container image."""
    return f"""## Outdated Container Image Detected

| Field | Value |
|-------|-------|
| Image | `{container.name}` |
| Current Tag | `{container.current_tag}` |
| Latest Tag | `{container.latest_tag}` |

### Affected Workloads

{format_workload_table(container)}

## Update Checklist

- [ ] Review release notes for breaking changes
- [ ] Update image tag in deployment manifest
- [ ] Commit and push to trigger Flux reconciliation
- [ ] Verify pods restart with new image
- [ ] Check application health

---
*This issue was automatically created by nova-scanner*
"""


def format_issue_body(finding: Finding) -> str:
    if isinstance(finding, HelmFinding):
        return format_helm_issue_body(finding)
    return format_container_issue_body(finding)


class IssueManager:
    """
    Creates one issue per actionable finding.

    Before creating, GitHub is searched for an open issue carrying the
    marker label whose title contains the canonical title. Nothing is
    cached between runs, so every invocation re-queries. Two invocations
    running at the same time can both miss each other's issue and create
    a duplicate; runs must not overlap.
    """

    def __init__(
        self,
        client,
        owner: str,
        repo: str,
        marker_label: str = "nova-scan",
        extra_labels: list[str] | None = None,
        dry_run: bool = False,
    ):
        self.client = client
        self.owner = owner
        self.repo = repo
        self.marker_label = marker_label
        self.labels = [marker_label, *(extra_labels or [])]
        self.dry_run = dry_run

    def build_search_query(self, title: str) -> str:
        return (
            f"repo:{self.owner}/{self.repo} is:issue is:open "
            f"label:{self.marker_label} in:title \"{escape_search_query(title)}\""
        )

    def issue_exists(self, title: str) -> bool:
        """Check for an open, labelled issue with this title."""
        return self.client.search_issues(self.build_search_query(title)) > 0

    def process(self, finding: Finding) -> IssueOutcome:
        """Create an issue for a finding unless one already exists."""
        title = format_issue_title(finding)
        outcome = IssueOutcome(
            kind=finding.kind,
            name=finding.name,
            title=title,
            action=IssueAction.ERROR,
        )

        try:
            exists = self.issue_exists(title)
        except TrackerError as e:
            logger.error(f"Failed to check existing issues for {title!r}: {e}")
            outcome.operation = e.operation
            outcome.error = str(e)
            return outcome

        if exists:
            logger.debug(f"Skipping issue {title!r}: duplicate")
            outcome.action = IssueAction.SKIPPED_DUPLICATE
            return outcome

        if self.dry_run:
            logger.info(f"Would create issue {title!r} (dry-run mode)")
            outcome.action = IssueAction.DRY_RUN
            return outcome

        try:
            url = self.client.create_issue(title, format_issue_body(finding), self.labels)
        except TrackerError as e:
            logger.error(f"Failed to create issue {title!r}: {e}")
            outcome.operation = e.operation
            outcome.error = str(e)
            return outcome

        logger.info(f"Created issue {title!r}: {url}")
        outcome.action = IssueAction.CREATED
        outcome.url = url
        return outcome

    def process_all(self, findings: list[Finding]) -> list[IssueOutcome]:
        """Process findings in order; a failure never stops the rest."""
        return [self.process(finding) for finding in findings]
