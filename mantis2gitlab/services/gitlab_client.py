"""GitLab API client wrapper"""
import gitlab
import logging
from typing import List, Dict, Any, Optional

from mantis2gitlab.models.remote import DryRunAck, NoteDeletion, RemoteIssue

logger = logging.getLogger(__name__)


class GitLabClient:
    """Wrapper for GitLab API operations.

    Every request carries its own `sudo` value (the operator unless the
    caller asks for another account), so concurrent requests never share
    a delegated identity. With `dry_run` set, POST/PUT/DELETE calls are not
    sent and return a DryRunAck instead; reads still go to the server.
    """

    def __init__(self, url: str, access_token: str, sudo: str, dry_run: bool = False):
        """Initialize GitLab client"""
        self.url = url
        self.sudo = sudo
        self.dry_run = dry_run
        self.gl = gitlab.Gitlab(url, private_token=access_token)
        self.gl.auth()
        self._projects: Dict[str, Any] = {}
        self._dry_run_issues: set[int] = set()

    @staticmethod
    def _normalize_issue_payload(issue_data: Dict[str, Any], *, for_update: bool) -> Dict[str, Any]:
        """Normalize payload fields for GitLab API quirks."""
        data = dict(issue_data)

        # The number is part of the URL on update.
        if for_update:
            data.pop("iid", None)

        # GitLab API expects comma-separated string for `labels`.
        if "labels" in data:
            labels = data.get("labels")
            if isinstance(labels, list):
                labels = ",".join(labels)
            if labels:
                data["labels"] = labels
            elif for_update:
                data["labels"] = ""
            else:
                data.pop("labels", None)

        # Unset assignee/milestone: omit on create, clear with 0 on update.
        for key in ("assignee_id", "milestone_id"):
            if key in data and data[key] in (None, ""):
                if for_update:
                    data[key] = 0
                else:
                    data.pop(key)

        return data

    def _dry_run(self, action: str, target: Any, description: str) -> DryRunAck:
        logger.info(f"DryRun: {description}")
        return DryRunAck(action=action, target=target)

    def get_project(self, project_id: str):
        """Get project by ID or namespaced path"""
        key = str(project_id)
        if key not in self._projects:
            try:
                self._projects[key] = self.gl.projects.get(project_id, sudo=self.sudo)
            except gitlab.exceptions.GitlabGetError as e:
                logger.error(f"Failed to get project {project_id}: {e}")
                raise
        return self._projects[key]

    def list_members(self, project_id: str, page: int, per_page: int) -> List[Any]:
        """One page of project members, inherited ones included"""
        project = self.get_project(project_id)
        return project.members_all.list(page=page, per_page=per_page, get_all=False, sudo=self.sudo)

    def list_milestones(self, project_id: str, page: int, per_page: int) -> List[Any]:
        """One page of project milestones"""
        project = self.get_project(project_id)
        return project.milestones.list(page=page, per_page=per_page, get_all=False, sudo=self.sudo)

    def list_issues(self, project_id: str, page: int, per_page: int) -> List[RemoteIssue]:
        """One page of project issues, open and closed"""
        project = self.get_project(project_id)
        issues = project.issues.list(
            scope="all",
            # GitLab defaults to state=opened on some versions.
            state="all",
            order_by="created_at",
            sort="asc",
            page=page,
            per_page=per_page,
            get_all=False,
            sudo=self.sudo,
        )
        return [RemoteIssue.from_gitlab(issue) for issue in issues]

    def create_issue(
        self, project_id: str, issue_data: Dict[str, Any], sudo: Optional[str] = None
    ) -> RemoteIssue | DryRunAck:
        """Create a new issue, acting as `sudo` (defaults to the operator)"""
        iid = issue_data.get("iid")
        if self.dry_run:
            if iid is not None:
                self._dry_run_issues.add(int(iid))
            return self._dry_run(
                "INSERT", iid, f"Create issue; send POST-request to /projects/{project_id}/issues"
            )

        project = self.get_project(project_id)
        payload = self._normalize_issue_payload(issue_data, for_update=False)
        try:
            issue = project.issues.create(payload, sudo=sudo or self.sudo)
        except gitlab.exceptions.GitlabCreateError as e:
            logger.debug(f"Failed to create issue in project {project_id}: {e}")
            raise
        remote = RemoteIssue.from_gitlab(issue)
        logger.debug(f"Created issue #{remote.iid} in project {project_id}")
        return remote

    def update_issue(
        self, project_id: str, issue_iid: int, issue_data: Dict[str, Any]
    ) -> Any:
        """Overwrite an existing issue"""
        if self.dry_run:
            return self._dry_run(
                "UPDATE",
                issue_iid,
                f"Update issue; send PUT-request to /projects/{project_id}/issues/{issue_iid} "
                f"{issue_data}",
            )

        project = self.get_project(project_id)
        payload = self._normalize_issue_payload(issue_data, for_update=True)
        try:
            result = project.issues.update(issue_iid, payload, sudo=self.sudo)
        except gitlab.exceptions.GitlabUpdateError as e:
            logger.error(f"Failed to update issue {issue_iid} in project {project_id}: {e}")
            raise
        logger.debug(f"Updated issue #{issue_iid} in project {project_id}")
        return result

    def close_issue(
        self, project_id: str, issue_iid: int, extra: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Close an issue, optionally changing other fields in the same request"""
        data = {"state_event": "close", **(extra or {})}
        if self.dry_run:
            return self._dry_run(
                "CLOSE",
                issue_iid,
                f"Close issue; send PUT-request to /projects/{project_id}/issues/{issue_iid}",
            )

        project = self.get_project(project_id)
        result = project.issues.update(issue_iid, data, sudo=self.sudo)
        logger.debug(f"Closed issue #{issue_iid}")
        return result

    def delete_issue(self, project_id: str, issue_iid: int) -> Any:
        """Delete an issue (admins and project owners only)"""
        if self.dry_run:
            return self._dry_run(
                "DELETE",
                issue_iid,
                f"Delete issue; send DELETE-request to /projects/{project_id}/issues/{issue_iid}",
            )

        project = self.get_project(project_id)
        try:
            project.issues.delete(issue_iid, sudo=self.sudo)
        except gitlab.exceptions.GitlabDeleteError as e:
            logger.error(f"Failed to remove issue {issue_iid} in project {project_id}: {e}")
            raise
        logger.debug(f"Removed issue #{issue_iid}")
        return None

    def get_issue_notes(self, project_id: str, issue_iid: int) -> List[Any]:
        """Get all notes (comments) for an issue"""
        if self.dry_run and int(issue_iid) in self._dry_run_issues:
            # Only "created" by this dry run; GitLab has never seen it.
            return []

        project = self.get_project(project_id)
        issue = project.issues.get(issue_iid, lazy=True)
        try:
            return issue.notes.list(
                get_all=True, per_page=100, order_by="created_at", sort="asc", sudo=self.sudo
            )
        except gitlab.exceptions.GitlabListError as e:
            logger.error(f"Failed to get notes for issue {issue_iid}: {e}")
            raise

    def delete_issue_note(self, project_id: str, issue_iid: int, note_id: int) -> NoteDeletion:
        """Delete a note; a 403 is reported as NoteDeletion.FORBIDDEN, not raised"""
        if self.dry_run:
            self._dry_run(
                "DELETE_NOTE",
                note_id,
                f"Delete note; send DELETE-request to "
                f"/projects/{project_id}/issues/{issue_iid}/notes/{note_id}",
            )
            return NoteDeletion.DRY_RUN

        project = self.get_project(project_id)
        issue = project.issues.get(issue_iid, lazy=True)
        try:
            issue.notes.delete(note_id, sudo=self.sudo)
        except gitlab.exceptions.GitlabDeleteError as e:
            if getattr(e, "response_code", None) == 403:
                logger.warning(f"Not allowed to delete note {note_id} on issue #{issue_iid}")
                return NoteDeletion.FORBIDDEN
            raise
        return NoteDeletion.DELETED

    def create_issue_note(
        self,
        project_id: str,
        issue_iid: int,
        note_body: str,
        created_at: Optional[str] = None,
        sudo: Optional[str] = None,
    ) -> Any:
        """Create a note (comment) on an issue, acting as `sudo`"""
        if self.dry_run:
            return self._dry_run(
                "INSERT_NOTE",
                issue_iid,
                f"Create note as {sudo or self.sudo}; send POST-request to "
                f"/projects/{project_id}/issues/{issue_iid}/notes",
            )

        project = self.get_project(project_id)
        issue = project.issues.get(issue_iid, lazy=True)
        data = {"body": note_body}
        if created_at:
            data["created_at"] = created_at
        note = issue.notes.create(data, sudo=sudo or self.sudo)
        logger.debug(f"Created note on issue #{issue_iid}")
        return note
