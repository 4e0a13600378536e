"""Mantis record -> GitLab issue payload and comment list"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from mantis2gitlab.exceptions import MalformedNotesError
from mantis2gitlab.models.mapping import IdentityMapping
from mantis2gitlab.models.source_issue import CommentEntry, SourceIssue, has_value
from mantis2gitlab.services.identity import IdentityResolver
from mantis2gitlab.services.taxonomy import TaxonomyMapper

logger = logging.getLogger(__name__)

NOTES_DELIMITER = "$$$$"

# <timestamp>][<author>][<body...>
_NOTE_RE = re.compile(
    r"^(?P<created_at>\d{4}-\d{2}-\d{2}[^\]]*)\]\[(?P<author>[^\]]*)\]\[(?P<body>.*)$",
    re.DOTALL,
)


@dataclass
class IssuePayload:
    """Everything needed to create or overwrite one GitLab issue"""

    number: int
    title: str
    description: str
    labels: List[str] = field(default_factory=list)
    assignee_id: Optional[int] = None
    milestone_id: Union[int, str] = ""
    author: Optional[IdentityMapping] = None
    created_at: Optional[str] = None

    def to_api(self) -> Dict[str, Any]:
        """Request body for POST/PUT /projects/:id/issues."""
        data: Dict[str, Any] = {
            "iid": self.number,
            "title": self.title,
            "description": self.description,
            "assignee_id": self.assignee_id,
            "milestone_id": self.milestone_id,
            "labels": list(self.labels),
        }
        if self.created_at:
            data["created_at"] = self.created_at
        return data


class RecordNormalizer:
    """Builds GitLab payloads from Mantis records"""

    def __init__(
        self,
        identities: IdentityResolver,
        taxonomy: TaxonomyMapper,
        source_url: Optional[str] = None,
        source_name: str = "Mantis",
    ):
        self.identities = identities
        self.taxonomy = taxonomy
        self.source_url = source_url.rstrip("/") if source_url else None
        self.source_name = source_name

    @property
    def attribution_marker(self) -> str:
        """Prefix of every imported comment body."""
        return f"via {self.source_name}:"

    def issue_reference(self, issue_id: int) -> str:
        """`[Mantis Issue N](url/view.php?id=N)`, or plain text without a base URL."""
        text = f"{self.source_name} Issue {issue_id}"
        if self.source_url:
            return f"[{text}]({self.source_url}/view.php?id={issue_id})"
        return text

    def description_for(self, record: SourceIssue) -> str:
        attributes = [self.issue_reference(record.id)]
        if has_value(record.reporter_username):
            attributes.append(f"Reported By: @{record.reporter_username}")
        if has_value(record.assignee_username):
            attributes.append(f"Assigned To: @{record.assignee_username}")
        if has_value(record.created_at):
            attributes.append(f"Created: {record.created_at}")
        if has_value(record.updated_at):
            attributes.append(f"Updated: {record.updated_at}")

        lines = ["_" + ", ".join(attributes) + "_", "", "---", "", record.description, ""]
        if has_value(record.info):
            lines += ["---", "", "Info:", "", record.info]
        return "\n".join(lines)

    def to_issue_payload(self, record: SourceIssue) -> IssuePayload:
        assignee_id = None
        if has_value(record.assignee_username):
            assignee_id = self.identities.resolve(record.assignee_username).gl_id

        return IssuePayload(
            number=record.id,
            title=record.summary,
            description=self.description_for(record),
            labels=self.taxonomy.labels_for(record),
            assignee_id=assignee_id,
            milestone_id=self.taxonomy.milestone_id_for(record.target_version),
            author=self.identities.resolve(record.reporter_username),
            created_at=record.created_at if has_value(record.created_at) else None,
        )

    def placeholder_payload(self, number: int) -> IssuePayload:
        """A closed stand-in for a number missing from the export."""
        return IssuePayload(
            number=number,
            title=f"Skipped {self.source_name} Issue {number}",
            description=f"_Skipped {self.issue_reference(number)}_",
            author=self.identities.fallback,
        )

    def extract_comments(self, record: SourceIssue) -> List[CommentEntry]:
        """Split the notes blob into attributed comments, oldest first.

        Raises MalformedNotesError for any chunk that does not parse.
        """
        if not has_value(record.notes):
            return []

        comments = []
        for chunk in record.notes.split(NOTES_DELIMITER):
            chunk = chunk.strip()
            if not chunk:
                continue
            m = _NOTE_RE.match(chunk)
            if not m:
                raise MalformedNotesError(record.id, chunk)
            comments.append(
                CommentEntry(
                    created_at=m.group("created_at").strip(),
                    author_username=m.group("author").strip(),
                    body=f"{self.attribution_marker}\n\n{m.group('body').strip()}",
                )
            )
        return comments

    def is_imported_comment(self, body: Optional[str]) -> bool:
        return bool(body) and body.startswith(self.attribution_marker)
