"""Tests for the scan run orchestration."""

import json
import subprocess
from unittest import mock

import pytest

from novascan.config import Config
from novascan.exceptions import InventoryParseError, MetricsPushError, SourceUnavailableError
from novascan.inventory import scanner as scanner_module
from novascan.inventory.filters import InventoryFilter
from novascan.inventory.scanner import NovaScanner
from novascan.issues import IssueAction, IssueManager
from novascan.metrics import Metrics
from novascan.models import (
    AffectedWorkload,
    ContainerFinding,
    ContainerScanResult,
    HelmFinding,
    HelmScanResult,
)
from novascan.runner import RunReport, run, scan_inventory

HELM_INVENTORY = [
    HelmFinding("r1", "c1", "default", "1.0.0", "2.0.0", outdated=True),
    HelmFinding("r2", "c2", "monitoring", "3.1.0", "3.1.0", outdated=False),
]

CONTAINER_INVENTORY = [
    ContainerFinding("nginx", "1.20", "1.25", outdated=True, affected_workloads=[
        AffectedWorkload("web", "default", "Deployment", "nginx"),
    ]),
    ContainerFinding("redis", "6.0", "7.0", outdated=True, affected_workloads=[
        AffectedWorkload("cache", "default", "StatefulSet", "redis"),
        AffectedWorkload("cache", "backend", "StatefulSet", "redis"),
    ]),
]


class FakeScanner:
    """Runs the real filters over canned inventory instead of calling Nova."""

    def __init__(self, config: Config, helm_error=None, container_error=None):
        self.filter = InventoryFilter(config)
        self.helm_error = helm_error
        self.container_error = container_error
        self.container_namespaces = None

    def scan_helm(self) -> HelmScanResult:
        if self.helm_error:
            raise self.helm_error
        kept, outdated = self.filter.filter_releases(HELM_INVENTORY)
        return HelmScanResult(kept, outdated, duration=1.5)

    def scan_containers(self, helm_namespaces=None) -> ContainerScanResult:
        self.container_namespaces = helm_namespaces
        if self.container_error:
            raise self.container_error
        kept, outdated, skipped = self.filter.filter_containers(CONTAINER_INVENTORY, helm_namespaces)
        return ContainerScanResult(kept, outdated, skipped, duration=0.5)


@pytest.fixture
def config() -> Config:
    return Config(scan_helm=True, scan_containers=True)


def make_manager(tracker, dry_run: bool = False) -> IssueManager:
    return IssueManager(tracker, owner="org", repo="repo", dry_run=dry_run)


def sample(metrics: Metrics, name: str, labels: dict | None = None):
    return metrics.registry.get_sample_value(name, labels or {})


class TestScanInventory:
    """Tests for scan ordering and failure isolation."""

    def test_helm_namespaces_feed_container_scan(self, config):
        scanner = FakeScanner(config)

        report = scan_inventory(config, scanner, RunReport())

        assert scanner.container_namespaces == {"default"}
        assert [c.name for c in report.containers.skipped] == ["nginx"]
        assert [c.name for c in report.containers.outdated] == ["redis"]

    def test_helm_failure_does_not_stop_container_scan(self, config):
        scanner = FakeScanner(config, helm_error=SourceUnavailableError("helm", "timed out"))
        metrics = Metrics()

        report = scan_inventory(config, scanner, RunReport(), metrics)

        assert report.helm is None
        assert scanner.container_namespaces == set()
        assert [c.name for c in report.containers.outdated] == ["nginx", "redis"]
        assert len(report.scan_errors) == 1
        assert sample(metrics, "nova_scan_errors_total") == 1

    def test_disabled_scan_types(self):
        config = Config(scan_helm=False, scan_containers=False)

        report = scan_inventory(config, FakeScanner(config), RunReport())

        assert report.helm is None
        assert report.containers is None
        assert not report.had_error


class TestRun:
    """Tests for a full run."""

    def test_creates_issues_and_records_metrics(self, config, tracker):
        metrics = Metrics()

        report = run(config, FakeScanner(config), make_manager(tracker), metrics)

        assert [issue["title"] for issue in tracker.created] == [
            "[Nova] Update Helm chart: r1 (1.0.0 → 2.0.0)",
            "[Nova] Update container image: redis (6.0 → 7.0)",
        ]
        assert report.created == 2
        assert not report.had_error
        assert sample(metrics, "nova_outdated_helm_charts_total") == 1
        assert sample(metrics, "nova_outdated_containers_total") == 1
        assert sample(metrics, "nova_issues_created_total", {"type": "helm"}) == 1
        assert sample(metrics, "nova_issues_created_total", {"type": "container"}) == 1
        assert sample(metrics, "nova_container_version_info", {
            "image": "redis", "current_tag": "6.0", "latest_tag": "7.0",
        }) == 1

    def test_second_run_skips_duplicates(self, config, tracker):
        run(config, FakeScanner(config), make_manager(tracker), Metrics())
        metrics = Metrics()

        report = run(config, FakeScanner(config), make_manager(tracker), metrics)

        assert report.created == 0
        assert report.duplicates == 2
        assert len(tracker.created) == 2
        assert sample(metrics, "nova_issues_created_total", {"type": "helm"}) is None

    def test_dry_run(self, config, tracker):
        report = run(config, FakeScanner(config), make_manager(tracker, dry_run=True), Metrics())

        assert report.would_create == 2
        assert tracker.created == []

    def test_issue_errors_mark_run_failed(self, config, make_tracker):
        report = run(config, FakeScanner(config), make_manager(make_tracker(fail_search=True)), Metrics())

        assert len(report.issue_errors) == 2
        assert all(o.action == IssueAction.ERROR for o in report.outcomes)
        assert report.had_error

    def test_failed_scan_creates_no_issues_for_it(self, config, tracker):
        scanner = FakeScanner(config, container_error=InventoryParseError("container", "bad json"))

        report = run(config, scanner, make_manager(tracker), Metrics())

        assert [o.kind for o in report.outcomes] == ["helm"]
        assert report.had_error

    def test_metrics_push_failure_is_reported(self, config, tracker):
        metrics = Metrics("http://pushgateway:9091")

        with mock.patch.object(metrics, "push", side_effect=MetricsPushError("refused")):
            report = run(config, FakeScanner(config), make_manager(tracker), metrics)

        assert report.metrics_error == "refused"
        assert report.had_error


class TestRunWithNova:
    """Runs the real NovaScanner against a patched subprocess."""

    @pytest.fixture(autouse=True)
    def in_cluster(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("KUBERNETES_SERVICE_HOST", "10.0.0.1")

    def install_nova(self, monkeypatch: pytest.MonkeyPatch, helm_stdout: bytes = b"", helm_exc=None):
        containers = {"container_images": [{
            "name": "nginx",
            "current_version": "1.20",
            "latest_version": "1.25",
            "outdated": True,
            "affectedWorkloads": [{"name": "web", "namespace": "default"}],
        }]}

        def fake_run(cmd, **kwargs):
            if "--helm" in cmd:
                if helm_exc:
                    raise helm_exc
                return subprocess.CompletedProcess(cmd, 0, stdout=helm_stdout, stderr=b"")
            return subprocess.CompletedProcess(cmd, 0, stdout=json.dumps(containers).encode(), stderr=b"")

        monkeypatch.setattr(scanner_module.subprocess, "run", fake_run)

    @pytest.mark.parametrize(
        "helm_stdout, helm_exc",
        [
            (b"\xff", None),
            (b"", PermissionError(13, "Permission denied")),
        ],
    )
    def test_broken_helm_scan_still_scans_containers(self, config, tracker, monkeypatch, helm_stdout, helm_exc):
        self.install_nova(monkeypatch, helm_stdout, helm_exc)
        metrics = Metrics()

        report = run(config, NovaScanner(config), make_manager(tracker), metrics)

        assert report.helm is None
        assert len(report.scan_errors) == 1
        assert [o.name for o in report.outcomes] == ["nginx"]
        assert report.created == 1
        assert sample(metrics, "nova_scan_errors_total") == 1
        assert report.had_error
