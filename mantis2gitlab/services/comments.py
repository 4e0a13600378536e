"""Delete-then-recreate of imported comments on one issue"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, TypeVar

from mantis2gitlab.exceptions import RemoteWriteError
from mantis2gitlab.models.remote import NoteDeletion, safe_attr
from mantis2gitlab.models.source_issue import CommentEntry, SourceIssue
from mantis2gitlab.services.gitlab_client import GitLabClient
from mantis2gitlab.services.identity import IdentityResolver
from mantis2gitlab.services.normalizer import RecordNormalizer

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class RefreshResult:
    deleted: int = 0
    forbidden: int = 0
    created: int = 0


class CommentThreadRefresher:
    """Replaces previously imported notes with the record's current notes.

    Notes not starting with the attribution marker are never touched.
    """

    def __init__(
        self,
        client: GitLabClient,
        project_id: Any,
        normalizer: RecordNormalizer,
        identities: IdentityResolver,
        max_workers: int = 4,
    ):
        self.client = client
        self.project_id = project_id
        self.normalizer = normalizer
        self.identities = identities
        self.max_workers = max(1, max_workers)

    def _run_batch(self, fn: Callable[[T], R], items: List[T], what: str) -> List[R]:
        """Run `fn` over `items` concurrently; raise after all have finished."""
        if not items:
            return []
        results: List[R] = []
        errors: List[BaseException] = []
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(items))) as executor:
            futures = [executor.submit(fn, item) for item in items]
            for fut in as_completed(futures):
                try:
                    results.append(fut.result())
                except Exception as e:
                    errors.append(e)
        if errors:
            raise RemoteWriteError(
                f"{len(errors)} of {len(items)} {what} failed: {errors[0]}"
            ) from errors[0]
        return results

    def imported_notes(self, notes: Iterable[Any]) -> List[Any]:
        return [n for n in notes if self.normalizer.is_imported_comment(safe_attr(n, "body"))]

    def refresh(self, issue_number: int, record: SourceIssue) -> RefreshResult:
        # Parse first so malformed notes fail before anything is deleted.
        comments = self.normalizer.extract_comments(record)
        result = RefreshResult()

        notes = self.client.get_issue_notes(self.project_id, issue_number)
        stale = self.imported_notes(notes)
        outcomes = self._run_batch(
            lambda note: self.client.delete_issue_note(self.project_id, issue_number, note.id),
            stale,
            "note deletions",
        )
        result.deleted = sum(1 for o in outcomes if o != NoteDeletion.FORBIDDEN)
        result.forbidden = sum(1 for o in outcomes if o == NoteDeletion.FORBIDDEN)
        if result.forbidden:
            logger.warning(
                f"#{issue_number}: kept {result.forbidden} imported note(s) "
                "the operator may not delete"
            )

        if not comments:
            return result

        self._run_batch(
            lambda comment: self._create(issue_number, comment), comments, "note creations"
        )
        result.created = len(comments)
        logger.debug(f"#{issue_number}: replaced {result.deleted} note(s) with {result.created}")
        return result

    def _create(self, issue_number: int, comment: CommentEntry) -> Any:
        author = self.identities.resolve(comment.author_username)
        return self.client.create_issue_note(
            self.project_id,
            issue_number,
            comment.body,
            created_at=comment.created_at,
            sudo=author.gl_username,
        )
