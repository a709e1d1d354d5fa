"""Nova scanner for detecting outdated Helm releases and container images."""

import json
import logging
import os
import subprocess
import time
from pathlib import Path
from typing import Any, Callable, TypeVar

from ..config import Config
from ..exceptions import InventoryParseError, SourceUnavailableError
from ..models import (
    CONTAINER,
    HELM,
    AffectedWorkload,
    ContainerFinding,
    ContainerScanResult,
    HelmFinding,
    HelmScanResult,
)
from .filters import InventoryFilter

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecordError(ValueError):
    """A single inventory record does not have the expected shape."""


def _str_field(record: dict, key: str, required: bool = False) -> str:
    value = record.get(key)
    if value is None:
        if required:
            raise RecordError(f"missing required field {key!r}")
        return ""
    if not isinstance(value, str):
        raise RecordError(f"field {key!r} must be a string, got {type(value).__name__}")
    return value


def _bool_field(record: dict, key: str) -> bool:
    value = record.get(key, False)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise RecordError(f"field {key!r} must be a boolean, got {type(value).__name__}")
    return value


def _dict_field(record: dict, key: str) -> dict:
    value = record.get(key) or {}
    if not isinstance(value, dict):
        raise RecordError(f"field {key!r} must be an object")
    return value


def parse_helm_release(record: Any) -> HelmFinding:
    """Build a HelmFinding from one Nova JSON record."""
    if not isinstance(record, dict):
        raise RecordError("helm release record must be an object")

    installed = _dict_field(record, "Installed")
    latest = _dict_field(record, "Latest")

    return HelmFinding(
        release=_str_field(record, "release", required=True),
        chart=_str_field(record, "chartName"),
        namespace=_str_field(record, "namespace"),
        installed_version=_str_field(installed, "version"),
        latest_version=_str_field(latest, "version"),
        outdated=_bool_field(record, "outdated"),
        deprecated=_bool_field(record, "deprecated"),
        installed_app_version=_str_field(installed, "appVersion"),
        latest_app_version=_str_field(latest, "appVersion"),
        description=_str_field(record, "description"),
        home=_str_field(record, "home"),
    )


def parse_container(record: Any) -> ContainerFinding:
    """Build a ContainerFinding from one Nova JSON record."""
    if not isinstance(record, dict):
        raise RecordError("container record must be an object")

    workloads = record.get("affectedWorkloads") or []
    if not isinstance(workloads, list):
        raise RecordError("field 'affectedWorkloads' must be a list")

    affected = []
    for workload in workloads:
        if not isinstance(workload, dict):
            raise RecordError("affected workload must be an object")
        affected.append(AffectedWorkload(
            name=_str_field(workload, "name"),
            namespace=_str_field(workload, "namespace"),
            kind=_str_field(workload, "kind"),
            container=_str_field(workload, "container"),
        ))

    return ContainerFinding(
        name=_str_field(record, "name", required=True),
        current_tag=_str_field(record, "current_version"),
        latest_tag=_str_field(record, "latest_version"),
        outdated=_bool_field(record, "outdated"),
        affected_workloads=affected,
    )


def decode_inventory(
    output: str | bytes,
    scan_type: str,
    key: str,
    parse_record: Callable[[Any], T],
) -> list[T]:
    """
    Decode Nova JSON output into findings.

    The current Nova format is an object holding the records under ``key``;
    older releases print a bare array of records. Both are tried in that
    order. Any malformed record fails the whole decode.

    Raises:
        InventoryParseError: if the output is not UTF-8 JSON or neither
            format matches.
    """
    try:
        if isinstance(output, bytes):
            output = output.decode("utf-8")
        data = json.loads(output)
    except UnicodeDecodeError as e:
        raise InventoryParseError(scan_type, f"nova output is not valid UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise InventoryParseError(scan_type, f"failed to parse nova output: {e}") from e

    if isinstance(data, dict):
        if key not in data:
            raise InventoryParseError(scan_type, f"nova output has no {key!r} field")
        records = [] if data[key] is None else data[key]
    elif isinstance(data, list):
        records = data
    else:
        raise InventoryParseError(scan_type, "nova output is neither an object nor an array")

    if not isinstance(records, list):
        raise InventoryParseError(scan_type, f"{key!r} must be an array")

    try:
        return [parse_record(record) for record in records]
    except RecordError as e:
        raise InventoryParseError(scan_type, f"malformed record in nova output: {e}") from e


def is_running_in_cluster() -> bool:
    """Check whether we run inside a Kubernetes pod."""
    return bool(os.getenv("KUBERNETES_SERVICE_HOST"))


def resolve_kubeconfig(configured_path: str) -> str:
    """
    Determine the kubeconfig path to pass to Nova.

    Returns an empty string in-cluster so Nova uses the service account.
    """
    if is_running_in_cluster():
        return ""
    if configured_path:
        return os.path.expanduser(configured_path)
    env_path = os.getenv("KUBECONFIG")
    if env_path:
        return os.path.expanduser(env_path)
    return str(Path.home() / ".kube" / "config")


class NovaScanner:
    """Runs the Nova CLI and classifies its inventory."""

    def __init__(self, config: Config):
        self.config = config
        self.filter = InventoryFilter(config)

    def _cluster_args(self) -> list[str]:
        args = []
        kubeconfig = resolve_kubeconfig(self.config.kubeconfig)
        if kubeconfig:
            args.extend(["--kubeconfig", kubeconfig])
        if self.config.context:
            args.extend(["--context", self.config.context])
        return args

    def helm_args(self) -> list[str]:
        """Build the Nova arguments for a Helm scan."""
        args = ["find", "--format", "json", "--helm"]
        if self.config.poll_artifacthub:
            args.append("--poll-artifacthub")
        args.extend(self._cluster_args())
        # All releases, not only outdated ones, for reporting totals
        args.append("--include-all")
        return args

    def container_args(self) -> list[str]:
        """Build the Nova arguments for a container scan."""
        return ["find", "--format", "json", "--containers", *self._cluster_args()]

    def _run_nova(self, scan_type: str, args: list[str]) -> bytes:
        """Run Nova and return its raw stdout."""
        cmd = [self.config.nova_binary, *args]
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                check=True,
                timeout=self.config.nova_timeout,
            )
        except FileNotFoundError as e:
            raise SourceUnavailableError(scan_type, f"nova binary not found: {self.config.nova_binary}") from e
        except OSError as e:
            raise SourceUnavailableError(scan_type, f"failed to run nova: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise SourceUnavailableError(
                scan_type, f"nova timed out after {self.config.nova_timeout}s"
            ) from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b"").decode(errors="replace").strip()
            logger.error(f"Nova command failed (exit {e.returncode}): {stderr}")
            raise SourceUnavailableError(scan_type, f"nova exited with status {e.returncode}") from e

        return result.stdout

    def scan_helm(self) -> HelmScanResult:
        """
        Scan the cluster for outdated Helm releases.

        Raises:
            SourceUnavailableError: if Nova could not be run.
            InventoryParseError: if its output could not be decoded.
        """
        logger.info("Starting helm scan")
        start = time.monotonic()

        output = self._run_nova(HELM, self.helm_args())
        releases = decode_inventory(output, HELM, "helm_releases", parse_helm_release)
        kept, outdated = self.filter.filter_releases(releases)

        duration = time.monotonic() - start
        logger.info(
            f"Helm scan completed in {duration:.1f}s: "
            f"{len(kept)} releases, {len(outdated)} outdated"
        )
        return HelmScanResult(all_releases=kept, outdated=outdated, duration=duration)

    def scan_containers(self, helm_namespaces: set[str] | None = None) -> ContainerScanResult:
        """
        Scan the cluster for outdated container images.

        Containers whose workloads all live in ``helm_namespaces`` are
        skipped, since upgrading the Helm release updates them too.

        Raises:
            SourceUnavailableError: if Nova could not be run.
            InventoryParseError: if its output could not be decoded.
        """
        logger.info("Starting container scan")
        start = time.monotonic()

        output = self._run_nova(CONTAINER, self.container_args())
        containers = decode_inventory(output, CONTAINER, "container_images", parse_container)
        kept, outdated, skipped = self.filter.filter_containers(containers, helm_namespaces)

        duration = time.monotonic() - start
        logger.info(
            f"Container scan completed in {duration:.1f}s: "
            f"{len(kept)} images, {len(outdated)} outdated"
        )
        if skipped:
            logger.info(f"Skipped {len(skipped)} containers in namespaces with outdated Helm releases")

        return ContainerScanResult(
            all_containers=kept,
            outdated=outdated,
            skipped=skipped,
            duration=duration,
        )
