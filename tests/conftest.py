"""Shared test doubles."""

import pytest

from novascan.exceptions import TrackerCreateError, TrackerQueryError


class FakeTracker:
    """In-memory issue tracker that remembers the issues it creates."""

    def __init__(self, fail_search: bool = False, fail_create: bool = False):
        self.fail_search = fail_search
        self.fail_create = fail_create
        self.queries: list[str] = []
        self.created: list[dict] = []

    def search_issues(self, query: str) -> int:
        self.queries.append(query)
        if self.fail_search:
            raise TrackerQueryError("search unavailable")
        return sum(1 for issue in self.created if f'"{issue["title"]}"' in query)

    def create_issue(self, title: str, body: str, labels: list[str]) -> str:
        if self.fail_create:
            raise TrackerCreateError("create rejected")
        self.created.append({"title": title, "body": body, "labels": labels})
        return f"https://github.com/org/repo/issues/{len(self.created)}"


@pytest.fixture
def tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def make_tracker():
    return FakeTracker
