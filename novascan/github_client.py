"""GitHub REST API client for searching and creating issues."""

import logging

import requests

from .config import Config
from .exceptions import TrackerCreateError, TrackerQueryError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30


class GitHubClient:
    """Client for the GitHub issues and search APIs."""

    def __init__(self, config: Config):
        self.owner = config.github_owner
        self.repo = config.github_repo
        self.base_url = config.github_api_url.rstrip("/")
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {config.github_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        })

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    def search_issues(self, query: str) -> int:
        """
        Count issues matching a GitHub search query.

        Raises:
            TrackerQueryError: if the request fails or the response has no count.
        """
        try:
            response = self.session.get(
                f"{self.base_url}/search/issues",
                params={"q": query, "per_page": 1},
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise TrackerQueryError(f"issue search failed: {e}") from e

        total = data.get("total_count") if isinstance(data, dict) else None
        if not isinstance(total, int) or isinstance(total, bool):
            raise TrackerQueryError(f"issue search returned no total_count: {data!r}")
        return total

    def create_issue(self, title: str, body: str, labels: list[str]) -> str:
        """
        Create an issue and return its URL.

        Raises:
            TrackerCreateError: if the request fails or the response has no URL.
        """
        url = f"{self.base_url}/repos/{self.owner}/{self.repo}/issues"
        payload = {"title": title, "body": body, "labels": labels}

        try:
            response = self.session.post(url, json=payload, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise TrackerCreateError(f"issue creation failed: {e}") from e

        html_url = data.get("html_url") if isinstance(data, dict) else None
        if not isinstance(html_url, str):
            raise TrackerCreateError(f"issue creation returned no html_url: {data!r}")
        return html_url
