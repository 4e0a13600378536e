"""Snapshot of the GitLab project taken before the import starts"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

import gitlab
import requests

from mantis2gitlab.exceptions import RemoteReadError
from mantis2gitlab.models.remote import Existing, IssueLookup, Missing, RemoteIssue
from mantis2gitlab.services.gitlab_client import GitLabClient

logger = logging.getLogger(__name__)

PAGE_SIZE = 100
# GitLab numbers pages from 1; page=0 is served as page 1.
FIRST_PAGE = 1

T = TypeVar("T")


def fetch_all(
    fetch_page: Callable[[int, int], List[T]],
    *,
    per_page: int = PAGE_SIZE,
    first_page: int = FIRST_PAGE,
) -> List[T]:
    """Request pages until one comes back shorter than `per_page`."""
    results: List[T] = []
    page = first_page
    while True:
        batch = list(fetch_page(page, per_page))
        results.extend(batch)
        if len(batch) < per_page:
            return results
        page += 1


class IssueIndex:
    """Remote issues by issue number (iid)"""

    def __init__(self, issues: Iterable[RemoteIssue] = ()):
        self._issues: Dict[int, RemoteIssue] = {}
        for issue in issues:
            self.register(issue)

    def __len__(self) -> int:
        return len(self._issues)

    def __contains__(self, number: int) -> bool:
        return number in self._issues

    def lookup(self, number: int) -> IssueLookup:
        issue = self._issues.get(number)
        if issue is None:
            return Missing(number)
        return Existing(issue)

    def register(self, issue: RemoteIssue) -> None:
        # Last write wins; GitLab should never return the same iid twice.
        self._issues[issue.iid] = issue

    def issues(self) -> List[RemoteIssue]:
        return [self._issues[number] for number in sorted(self._issues)]

    def highest_below(self, number: int) -> int:
        """Largest known issue number below `number`, 0 if none."""
        return max((n for n in self._issues if n < number), default=0)


class RemoteStateCache:
    """Fetches project, members, milestones and issues once per run"""

    def __init__(self, client: GitLabClient, project_path: str):
        self.client = client
        self.project_path = project_path
        self.project_id: Optional[int] = None
        self.members: List[Any] = []
        self.milestones: List[Any] = []

    def _read(self, what: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except (gitlab.exceptions.GitlabError, requests.exceptions.RequestException) as e:
            raise RemoteReadError.from_transport(what, self.client.url, e) from e

    def load_project(self) -> int:
        logger.info("Fetching project from GitLab...")
        project = self._read(
            f'project "{self.project_path}"', lambda: self.client.get_project(self.project_path)
        )
        self.project_id = project.id
        return self.project_id

    def fetch_members(self) -> List[Any]:
        logger.info("Fetching project members from GitLab...")
        self.members = self._read(
            "list of users",
            lambda: fetch_all(lambda page, per_page: self.client.list_members(self.project_id, page, per_page)),
        )
        if not self.members:
            logger.debug("Found no users at GitLab project.")
        return self.members

    def fetch_milestones(self) -> List[Any]:
        logger.info("Fetching project milestones from GitLab...")
        self.milestones = self._read(
            "list of milestones",
            lambda: fetch_all(
                lambda page, per_page: self.client.list_milestones(self.project_id, page, per_page)
            ),
        )
        if not self.milestones:
            logger.debug("Found no milestones at GitLab project.")
        return self.milestones

    def fetch_issues(self) -> IssueIndex:
        """Full issue inventory; must complete before any sync decision."""

        def _page(page: int, per_page: int) -> List[RemoteIssue]:
            first = (page - FIRST_PAGE) * per_page + 1
            logger.debug(f"Fetching project issues from GitLab [{first}-{first + per_page - 1}]...")
            return self.client.list_issues(self.project_id, page, per_page)

        issues = self._read("list of issues", lambda: fetch_all(_page))
        logger.info(f"Fetched {len(issues)} GitLab issues.")
        return IssueIndex(issues)
