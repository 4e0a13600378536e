"""Issue synchronization service"""

import enum
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import gitlab

from mantis2gitlab.exceptions import RemoteWriteError, UserValidationError
from mantis2gitlab.models.remote import Existing, RemoteIssue
from mantis2gitlab.models.source_issue import SourceIssue
from mantis2gitlab.services.comments import CommentThreadRefresher
from mantis2gitlab.services.gitlab_client import GitLabClient
from mantis2gitlab.services.normalizer import IssuePayload, RecordNormalizer
from mantis2gitlab.services.remote_state import IssueIndex

logger = logging.getLogger(__name__)


class RecordOutcome(str, enum.Enum):
    """How the import of one record ended"""

    UPDATED = "updated"
    INSERTED = "inserted"
    INSERTED_AND_CLOSED = "inserted_and_closed"
    INSERT_FAILED = "insert_failed"
    CLOSE_FAILED = "close_failed"


class SyncService:
    """Imports Mantis records into one GitLab project, one record at a time.

    The issue index is owned by this service for the whole run: it is read
    for every create-vs-update decision and extended after every create.
    """

    def __init__(
        self,
        client: GitLabClient,
        project_id: Any,
        index: IssueIndex,
        normalizer: RecordNormalizer,
        comments: CommentThreadRefresher,
        *,
        fill_gaps: bool = False,
    ):
        self.client = client
        self.project_id = project_id
        self.index = index
        self.normalizer = normalizer
        self.comments = comments
        self.fill_gaps = fill_gaps

    @property
    def identities(self):
        return self.normalizer.identities

    @property
    def taxonomy(self):
        return self.normalizer.taxonomy

    @property
    def placeholder_prefix(self) -> str:
        return f"Skipped {self.normalizer.source_name} Issue"

    def validate(self, records: Sequence[SourceIssue]) -> None:
        """Fail if any reporter or assignee has no configured identity.

        All offending usernames are reported together.
        """
        logger.info("Validating Mantis users...")
        usernames: List[str] = [r.assignee_username for r in records]
        usernames += [r.reporter_username for r in records]
        missing = self.identities.unresolved(usernames)
        if missing:
            for username in missing:
                logger.error(f"Cannot map Mantis user with username: {username}")
            raise UserValidationError(missing)

    def run(self, records: Iterable[SourceIssue]) -> Dict[str, int]:
        """Import every record in ascending id order; returns outcome counts."""
        ordered = sorted(records, key=lambda r: r.id)
        stats = {outcome.value: 0 for outcome in RecordOutcome}
        if ordered:
            logger.info(f"Importing Mantis issues into GitLab from #{ordered[0].id} ...")
        for record in ordered:
            outcome = self.sync_record(record)
            stats[outcome.value] += 1
        logger.info(f"Import completed: {stats}")
        return stats

    def sync_record(self, record: SourceIssue) -> RecordOutcome:
        payload = self.normalizer.to_issue_payload(record)
        closed = self.taxonomy.is_closed(record)

        logger.info(f"Importing: #{record.id} - {record.summary} ...")
        logger.debug(f"Payload for #{record.id}: {payload}")

        lookup = self.index.lookup(record.id)
        if isinstance(lookup, Existing):
            return self._update(lookup.issue, payload, closed, record)

        if self.fill_gaps:
            self._insert_placeholders(record.id)

        outcome, iid = self._insert(payload, closed)
        if outcome == RecordOutcome.INSERTED:
            self._refresh_comments(iid, record)
        return outcome

    def _update(
        self, issue: RemoteIssue, payload: IssuePayload, closed: bool, record: SourceIssue
    ) -> RecordOutcome:
        data = payload.to_api()
        # Sent even when the issue is already open; GitLab ignores a no-op reopen.
        data["state_event"] = "close" if closed else "reopen"
        try:
            self.client.update_issue(self.project_id, issue.iid, data)
        except gitlab.exceptions.GitlabError as e:
            raise RemoteWriteError(f"Failed to update issue #{issue.iid} in GitLab: {e}") from e

        logger.info(f"#{record.id}: Updated successfully.")
        self._refresh_comments(issue.iid, record)
        return RecordOutcome.UPDATED

    def _insert(
        self, payload: IssuePayload, closed: bool
    ) -> Tuple[RecordOutcome, Optional[int]]:
        """Create the issue; returns the outcome and the number GitLab gave it."""
        number = payload.number
        sudo = payload.author.gl_username if payload.author is not None else None
        try:
            created = self.client.create_issue(self.project_id, payload.to_api(), sudo=sudo)
        except gitlab.exceptions.GitlabCreateError as e:
            if getattr(e, "response_code", None) == 409:
                raise RemoteWriteError(
                    f"GitLab refused issue number {number}; it is already taken: {e}"
                ) from e
            logger.error(f"{number}: Failed to insert. {e}")
            return RecordOutcome.INSERT_FAILED, None

        if isinstance(created, RemoteIssue):
            issue = created
            if issue.iid != number:
                logger.warning(f"{number}: GitLab assigned #{issue.iid} instead")
        else:
            issue = RemoteIssue(id=None, iid=number, title=payload.title, project_id=self.project_id)
        self.index.register(issue)

        if closed:
            try:
                self.client.close_issue(self.project_id, issue.iid)
            except gitlab.exceptions.GitlabError as e:
                logger.warning(f"{number}: Inserted successfully but failed to close. #{issue.iid} ({e})")
                return RecordOutcome.CLOSE_FAILED, issue.iid
            logger.info(f"{number}: Inserted and closed successfully. #{issue.iid}")
            return RecordOutcome.INSERTED_AND_CLOSED, issue.iid

        logger.info(f"{number}: Inserted successfully. #{issue.iid}")
        return RecordOutcome.INSERTED, issue.iid

    def _insert_placeholders(self, number: int) -> None:
        """Create closed stand-ins for missing numbers just below `number`."""
        for missing in range(self.index.highest_below(number) + 1, number):
            logger.warning(f"Skipping missing {self.normalizer.source_name} issue (#{missing}) ...")
            self._insert(self.normalizer.placeholder_payload(missing), closed=True)

    def _refresh_comments(self, issue_number: int, record: SourceIssue) -> None:
        try:
            self.comments.refresh(issue_number, record)
        except gitlab.exceptions.GitlabError as e:
            raise RemoteWriteError(f"Failed to refresh comments of issue #{issue_number}: {e}") from e

    def remove_skipped(self) -> int:
        """Delete every placeholder issue created by gap filling."""
        removed = 0
        for issue in self.index.issues():
            if not issue.title.startswith(self.placeholder_prefix):
                continue
            try:
                self.client.delete_issue(self.project_id, issue.iid)
            except gitlab.exceptions.GitlabError as e:
                raise RemoteWriteError(f"Failed to remove issue #{issue.iid} in GitLab: {e}") from e
            logger.info(f"#{issue.iid}: Removed skipped issue.")
            removed += 1
        return removed
