"""Orchestrates one scan run: Helm, then containers, then issues and metrics."""

import logging
from dataclasses import dataclass, field

from .config import Config
from .exceptions import MetricsPushError, ScanError
from .issues import IssueAction, IssueManager, IssueOutcome
from .metrics import Metrics
from .models import ContainerScanResult, HelmScanResult

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    """Everything that happened during one run."""

    helm: HelmScanResult | None = None
    containers: ContainerScanResult | None = None
    scan_errors: list[ScanError] = field(default_factory=list)
    outcomes: list[IssueOutcome] = field(default_factory=list)
    metrics_error: str = ""

    def count(self, action: IssueAction, kind: str | None = None) -> int:
        return sum(
            1 for o in self.outcomes
            if o.action == action and (kind is None or o.kind == kind)
        )

    @property
    def created(self) -> int:
        return self.count(IssueAction.CREATED)

    @property
    def duplicates(self) -> int:
        return self.count(IssueAction.SKIPPED_DUPLICATE)

    @property
    def would_create(self) -> int:
        return self.count(IssueAction.DRY_RUN)

    @property
    def issue_errors(self) -> list[IssueOutcome]:
        return [o for o in self.outcomes if o.failed]

    @property
    def had_error(self) -> bool:
        return bool(self.scan_errors or self.issue_errors or self.metrics_error)


def scan_inventory(config: Config, scanner, report: RunReport, metrics: Metrics | None = None) -> RunReport:
    """
    Run the enabled scan types into ``report``.

    The Helm scan runs first because its outdated namespaces decide which
    containers are skipped. A failing scan type is recorded and does not
    stop the other one.
    """
    helm_namespaces: set[str] = set()

    if config.scan_helm:
        try:
            report.helm = scanner.scan_helm()
        except ScanError as e:
            logger.error(f"Helm scan failed: {e}")
            report.scan_errors.append(e)
            if metrics:
                metrics.record_error()
        else:
            helm_namespaces = report.helm.outdated_namespaces()

    if config.scan_containers:
        try:
            report.containers = scanner.scan_containers(helm_namespaces)
        except ScanError as e:
            logger.error(f"Container scan failed: {e}")
            report.scan_errors.append(e)
            if metrics:
                metrics.record_error()

    return report


def _record_outcomes(report: RunReport, outcomes: list[IssueOutcome], metrics: Metrics) -> None:
    for outcome in outcomes:
        if outcome.action == IssueAction.CREATED:
            metrics.record_issue_created(outcome.kind)
    report.outcomes.extend(outcomes)


def run(config: Config, scanner, issue_manager: IssueManager, metrics: Metrics) -> RunReport:
    """
    Scan, record metrics, and create issues for actionable findings.

    Returns:
        RunReport; the caller decides what a failure means for the process.
    """
    metrics.reset()
    report = scan_inventory(config, scanner, RunReport(), metrics)

    if report.helm is not None:
        helm = report.helm
        metrics.record_helm_scan(len(helm.outdated), helm.duration)
        for release in helm.outdated:
            metrics.record_helm_chart_info(
                release.release,
                release.namespace,
                release.chart,
                release.installed_version,
                release.latest_version,
                release.deprecated,
            )
        _record_outcomes(report, issue_manager.process_all(helm.outdated), metrics)

    if report.containers is not None:
        containers = report.containers
        metrics.record_container_scan(len(containers.outdated), containers.duration)
        for container in containers.outdated:
            metrics.record_container_info(container.name, container.current_tag, container.latest_tag)
        _record_outcomes(report, issue_manager.process_all(containers.outdated), metrics)

    try:
        metrics.push()
    except MetricsPushError as e:
        logger.error(str(e))
        report.metrics_error = str(e)

    logger.info(
        f"Run completed: {report.created} created, {report.duplicates} duplicates, "
        f"{report.would_create} dry-run, {len(report.issue_errors)} issue errors, "
        f"{len(report.scan_errors)} scan errors"
    )
    return report
