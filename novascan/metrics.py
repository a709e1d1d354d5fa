"""Prometheus metrics pushed to a Pushgateway after each run."""

import logging
from http.client import HTTPException

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, push_to_gateway
from prometheus_client.utils import INF

from .exceptions import MetricsPushError

logger = logging.getLogger(__name__)

# 1s to ~2m
SCAN_DURATION_BUCKETS = tuple(float(2 ** i) for i in range(8)) + (INF,)


class Metrics:
    """All metrics emitted by nova-scanner, in a private registry."""

    def __init__(self, pushgateway_url: str = "", job_name: str = "nova-scanner"):
        self.pushgateway_url = pushgateway_url
        self.job_name = job_name
        self.registry = CollectorRegistry()

        self.outdated_helm_charts = Gauge(
            "nova_outdated_helm_charts_total",
            "Total number of outdated Helm releases detected",
            registry=self.registry,
        )
        self.outdated_containers = Gauge(
            "nova_outdated_containers_total",
            "Total number of outdated container images detected",
            registry=self.registry,
        )
        self.last_success_timestamp = Gauge(
            "nova_scan_last_success_timestamp",
            "Unix timestamp of the last successful scan",
            registry=self.registry,
        )
        self.helm_chart_version_info = Gauge(
            "nova_helm_chart_version_info",
            "Information about Helm chart versions (value is always 1)",
            ["release", "namespace", "chart", "current_version", "latest_version", "deprecated"],
            registry=self.registry,
        )
        self.container_version_info = Gauge(
            "nova_container_version_info",
            "Information about container image versions (value is always 1)",
            ["image", "current_tag", "latest_tag"],
            registry=self.registry,
        )
        self.scan_duration = Histogram(
            "nova_scan_duration_seconds",
            "Duration of scans in seconds",
            ["type"],
            buckets=SCAN_DURATION_BUCKETS,
            registry=self.registry,
        )
        self.issues_created = Counter(
            "nova_issues_created_total",
            "Total number of GitHub issues created",
            ["type"],
            registry=self.registry,
        )
        self.scan_errors = Counter(
            "nova_scan_errors_total",
            "Total number of scan errors",
            registry=self.registry,
        )

    def record_helm_scan(self, outdated: int, duration: float) -> None:
        self.outdated_helm_charts.set(outdated)
        self.scan_duration.labels(type="helm").observe(duration)
        self.last_success_timestamp.set_to_current_time()

    def record_container_scan(self, outdated: int, duration: float) -> None:
        self.outdated_containers.set(outdated)
        self.scan_duration.labels(type="container").observe(duration)
        self.last_success_timestamp.set_to_current_time()

    def record_helm_chart_info(
        self,
        release: str,
        namespace: str,
        chart: str,
        current_version: str,
        latest_version: str,
        deprecated: bool,
    ) -> None:
        self.helm_chart_version_info.labels(
            release=release,
            namespace=namespace,
            chart=chart,
            current_version=current_version,
            latest_version=latest_version,
            deprecated="true" if deprecated else "false",
        ).set(1)

    def record_container_info(self, image: str, current_tag: str, latest_tag: str) -> None:
        self.container_version_info.labels(
            image=image,
            current_tag=current_tag,
            latest_tag=latest_tag,
        ).set(1)

    def record_issue_created(self, issue_type: str) -> None:
        self.issues_created.labels(type=issue_type).inc()

    def record_error(self) -> None:
        self.scan_errors.inc()

    def reset(self) -> None:
        """Clear version info series left over from a previous scan."""
        self.helm_chart_version_info.clear()
        self.container_version_info.clear()

    def push(self) -> bool:
        """
        Push all metrics to the Pushgateway.

        Returns:
            False if no Pushgateway is configured, True once pushed.

        Raises:
            MetricsPushError: if the push fails.
        """
        if not self.pushgateway_url:
            return False

        try:
            push_to_gateway(self.pushgateway_url, job=self.job_name, registry=self.registry)
        except (OSError, HTTPException, ValueError) as e:
            raise MetricsPushError(f"failed to push metrics: {e}") from e

        logger.info(f"Metrics pushed to Pushgateway at {self.pushgateway_url}")
        return True
