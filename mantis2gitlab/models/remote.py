"""GitLab-side state as seen by the migration"""
import enum
from dataclasses import dataclass
from typing import Any, Optional, Union


def safe_attr(obj: Any, name: str, default: Any = None) -> Any:
    """Get attribute or dict key safely."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


@dataclass(frozen=True)
class RemoteIssue:
    """The fields of a GitLab issue the migration cares about"""

    id: Optional[int]
    iid: int
    title: str
    project_id: Optional[int] = None
    state: str = "opened"

    @classmethod
    def from_gitlab(cls, issue: Any) -> "RemoteIssue":
        """Build from a python-gitlab issue resource or a plain dict."""
        return cls(
            id=safe_attr(issue, "id"),
            iid=int(safe_attr(issue, "iid")),
            title=safe_attr(issue, "title") or "",
            project_id=safe_attr(issue, "project_id"),
            state=safe_attr(issue, "state") or "opened",
        )


@dataclass(frozen=True)
class Existing:
    issue: RemoteIssue


@dataclass(frozen=True)
class Missing:
    number: int


IssueLookup = Union[Existing, Missing]


@dataclass(frozen=True)
class DryRunAck:
    """Stand-in result for a write suppressed by dry-run"""

    action: str
    target: Any
    dry_run: bool = True


class NoteDeletion(str, enum.Enum):
    """Result of deleting one imported note"""

    DELETED = "deleted"
    FORBIDDEN = "forbidden"
    DRY_RUN = "dry_run"
