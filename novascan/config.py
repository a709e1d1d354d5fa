"""Configuration management via YAML file and environment variables."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import find_dotenv, load_dotenv

from .exceptions import ConfigError
from .versions import UpdateSeverity

logger = logging.getLogger(__name__)

VALID_SEVERITIES = ("minor", "major", "critical")
VALID_OUTPUT_MODES = ("github", "markdown")

# YAML key -> attribute name
YAML_KEYS = {
    "kubeconfig": "kubeconfig",
    "context": "context",
    "scanHelm": "scan_helm",
    "scanContainers": "scan_containers",
    "ignoreReleases": "ignore_releases",
    "ignoreCharts": "ignore_charts",
    "ignoreImages": "ignore_images",
    "ignoreVersionPatterns": "ignore_version_patterns",
    "chartVersionIgnorePatterns": "chart_version_ignore_patterns",
    "minSeverity": "min_severity",
    "githubToken": "github_token",
    "githubOwner": "github_owner",
    "githubRepo": "github_repo",
    "githubApiUrl": "github_api_url",
    "issueLabel": "issue_label",
    "extraIssueLabels": "extra_issue_labels",
    "dryRun": "dry_run",
    "outputMode": "output_mode",
    "markdownOutput": "markdown_output",
    "pushgatewayUrl": "pushgateway_url",
    "jobName": "job_name",
    "logLevel": "log_level",
    "pollArtifactHub": "poll_artifacthub",
    "novaBinary": "nova_binary",
    "novaTimeout": "nova_timeout",
}

LIST_FIELDS = {
    "ignore_releases",
    "ignore_charts",
    "ignore_images",
    "ignore_version_patterns",
    "extra_issue_labels",
}
BOOL_FIELDS = {"scan_helm", "scan_containers", "dry_run", "poll_artifacthub"}

# Environment variable -> attribute name
ENV_OVERRIDES = {
    "KUBECONFIG": "kubeconfig",
    "KUBE_CONTEXT": "context",
    "GITHUB_TOKEN": "github_token",
    "GITHUB_OWNER": "github_owner",
    "GITHUB_REPO": "github_repo",
    "PUSHGATEWAY_URL": "pushgateway_url",
    "JOB_NAME": "job_name",
    "LOG_LEVEL": "log_level",
    "DRY_RUN": "dry_run",
    "SCAN_HELM": "scan_helm",
    "SCAN_CONTAINERS": "scan_containers",
    "MIN_SEVERITY": "min_severity",
    "OUTPUT_MODE": "output_mode",
    "MARKDOWN_OUTPUT": "markdown_output",
}


def _parse_bool(value: str) -> bool:
    return value.lower() == "true" or value == "1"


@dataclass
class Config:
    """Application configuration."""

    # Kubernetes
    kubeconfig: str = ""
    context: str = ""

    # Scanning
    scan_helm: bool = True
    scan_containers: bool = False
    ignore_releases: list[str] = field(default_factory=list)
    ignore_charts: list[str] = field(default_factory=list)
    ignore_images: list[str] = field(default_factory=list)
    # Substrings blacklisted in target versions (e.g. "-rc", "-develop")
    ignore_version_patterns: list[str] = field(default_factory=list)
    chart_version_ignore_patterns: dict[str, list[str]] = field(default_factory=dict)
    min_severity: str = "minor"

    # GitHub
    github_token: str = ""
    github_owner: str = ""
    github_repo: str = ""
    github_api_url: str = "https://api.github.com"
    issue_label: str = "nova-scan"
    extra_issue_labels: list[str] = field(default_factory=list)
    dry_run: bool = False

    # Output mode: "github" or "markdown"
    output_mode: str = "github"
    markdown_output: str = ""

    # Metrics
    pushgateway_url: str = ""
    job_name: str = "nova-scanner"

    log_level: str = "info"

    # Nova
    poll_artifacthub: bool = True
    nova_binary: str = "nova"
    nova_timeout: int = 300

    @classmethod
    def load(cls, path: str | Path | None = None, overrides: dict | None = None) -> "Config":
        """
        Load configuration.

        Defaults are overlaid with the YAML file at ``path`` (if given), then
        with environment variables (a ``.env`` file is honoured), then with
        ``overrides`` (attribute name -> value, e.g. from CLI flags). The
        result is validated before being returned.

        Raises:
            ConfigError: if the file cannot be read or the result is invalid.
        """
        load_dotenv(find_dotenv(usecwd=True))
        config = cls()

        if path:
            config._apply_file(Path(path))

        config._apply_env()

        for attr, value in (overrides or {}).items():
            if not hasattr(config, attr):
                raise ConfigError(f"unknown config override: {attr}")
            setattr(config, attr, value)

        config.validate()
        return config

    def _apply_file(self, path: Path) -> None:
        """Overlay values from a YAML config file."""
        try:
            data = yaml.safe_load(path.read_text())
        except OSError as e:
            raise ConfigError(f"failed to read config file: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"failed to parse config file: {e}") from e

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"config file {path} must contain a mapping")

        for key, value in data.items():
            attr = YAML_KEYS.get(key)
            if attr is None:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            setattr(self, attr, self._coerce(key, attr, value))

    def _coerce(self, key: str, attr: str, value):
        """Check a YAML value against the type of its attribute."""
        if value is None:
            return getattr(type(self)(), attr)

        if attr in LIST_FIELDS:
            if not isinstance(value, list):
                raise ConfigError(f"{key} must be a list")
            return [str(v) for v in value]

        if attr == "chart_version_ignore_patterns":
            if not isinstance(value, dict) or not all(isinstance(v, list) for v in value.values()):
                raise ConfigError(f"{key} must map chart names to lists of patterns")
            return {str(k): [str(p) for p in v] for k, v in value.items()}

        if attr in BOOL_FIELDS:
            if not isinstance(value, bool):
                raise ConfigError(f"{key} must be a boolean")
            return value

        if attr == "nova_timeout":
            try:
                return int(value)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"{key} must be an integer") from e

        return str(value)

    def _apply_env(self) -> None:
        """Apply environment variable overrides."""
        for env_name, attr in ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if not value:
                continue
            if attr in BOOL_FIELDS:
                setattr(self, attr, _parse_bool(value))
            else:
                setattr(self, attr, value)

    def validate(self) -> None:
        """Validate required fields and enumerations."""
        if not self.is_markdown_mode:
            if not self.github_token:
                raise ConfigError("github token is required (set GITHUB_TOKEN or githubToken in config)")
            if not self.github_owner:
                raise ConfigError("github owner is required (set GITHUB_OWNER or githubOwner in config)")
            if not self.github_repo:
                raise ConfigError("github repo is required (set GITHUB_REPO or githubRepo in config)")

        if self.min_severity not in VALID_SEVERITIES:
            raise ConfigError(
                f"invalid minSeverity: {self.min_severity} (must be minor, major, or critical)"
            )

        if self.output_mode not in VALID_OUTPUT_MODES:
            raise ConfigError(
                f"invalid outputMode: {self.output_mode} (must be github or markdown)"
            )

        if self.nova_timeout <= 0:
            raise ConfigError("novaTimeout must be a positive number of seconds")

    @property
    def is_markdown_mode(self) -> bool:
        return self.output_mode == "markdown"

    def severity_level(self) -> UpdateSeverity:
        """Numeric severity threshold; unknown values fall back to minor."""
        return UpdateSeverity.from_threshold(self.min_severity)

    def should_ignore_version(self, version: str) -> bool:
        """Check a version against the global blacklist (substring match)."""
        return any(pattern in version for pattern in self.ignore_version_patterns)

    def should_ignore_chart_version(self, name: str, version: str) -> bool:
        """
        Check a version against the global and the per-name blacklists.

        A substring match in either list is enough to ignore the version.
        """
        if self.should_ignore_version(version):
            return True
        patterns = self.chart_version_ignore_patterns.get(name, [])
        return any(pattern in version for pattern in patterns)
