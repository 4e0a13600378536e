import unittest
from unittest.mock import Mock, patch
import logging

import gitlab

logging.disable(logging.CRITICAL)


def _client(dry_run=False):
    from mantis2gitlab.services.gitlab_client import GitLabClient

    # Avoid running GitLabClient.__init__ (auth/network).
    client = GitLabClient.__new__(GitLabClient)
    client.url = "https://gitlab.example"
    client.sudo = "importer"
    client.dry_run = dry_run
    client._projects = {}
    client._dry_run_issues = set()
    return client


class GitLabClientApiCallTests(unittest.TestCase):
    def test_init_constructs_client_and_auths(self):
        from mantis2gitlab.services.gitlab_client import GitLabClient

        with patch("mantis2gitlab.services.gitlab_client.gitlab.Gitlab") as gitlab_ctor:
            gl = Mock()
            gitlab_ctor.return_value = gl

            client = GitLabClient("https://gitlab.example", "token", "importer")

            self.assertEqual(client.url, "https://gitlab.example")
            self.assertEqual(client.sudo, "importer")
            self.assertFalse(client.dry_run)
            gitlab_ctor.assert_called_once_with("https://gitlab.example", private_token="token")
            gl.auth.assert_called_once_with()

    def test_get_project_is_fetched_once_as_operator(self):
        client = _client()
        client.gl = Mock()
        project = object()
        client.gl.projects.get = Mock(return_value=project)

        self.assertIs(client.get_project("group/proj"), project)
        self.assertIs(client.get_project("group/proj"), project)
        client.gl.projects.get.assert_called_once_with("group/proj", sudo="importer")

    def test_get_project_raises_gitlab_get_error(self):
        client = _client()
        client.gl = Mock()
        client.gl.projects.get = Mock(side_effect=gitlab.exceptions.GitlabGetError("nope", 404))

        with self.assertRaises(gitlab.exceptions.GitlabGetError):
            client.get_project("missing")

    def test_list_issues_requests_one_page_of_all_issues(self):
        client = _client()
        project = Mock()
        project.issues.list = Mock(
            return_value=[{"id": 10, "iid": 1, "title": "T", "project_id": 3, "state": "closed"}]
        )
        client.get_project = Mock(return_value=project)

        issues = client.list_issues(3, 2, 100)

        self.assertEqual(len(issues), 1)
        self.assertEqual(issues[0].iid, 1)
        self.assertEqual(issues[0].state, "closed")
        _, kwargs = project.issues.list.call_args
        self.assertEqual(kwargs["scope"], "all")
        self.assertEqual(kwargs["state"], "all")
        self.assertEqual(kwargs["order_by"], "created_at")
        self.assertEqual(kwargs["page"], 2)
        self.assertEqual(kwargs["per_page"], 100)
        self.assertFalse(kwargs["get_all"])
        self.assertEqual(kwargs["sudo"], "importer")

    def test_list_members_and_milestones(self):
        client = _client()
        project = Mock()
        project.members_all.list = Mock(return_value=["m"])
        project.milestones.list = Mock(return_value=["ms"])
        client.get_project = Mock(return_value=project)

        self.assertEqual(client.list_members(3, 1, 100), ["m"])
        self.assertEqual(client.list_milestones(3, 1, 100), ["ms"])
        project.members_all.list.assert_called_once_with(
            page=1, per_page=100, get_all=False, sudo="importer"
        )
        project.milestones.list.assert_called_once_with(
            page=1, per_page=100, get_all=False, sudo="importer"
        )

    def test_create_issue_acts_as_author_and_normalizes_payload(self):
        client = _client()
        created = Mock(id=100, iid=12, title="T", project_id=3, state="opened")
        project = Mock()
        project.issues.create = Mock(return_value=created)
        client.get_project = Mock(return_value=project)

        out = client.create_issue(
            3,
            {"iid": 12, "title": "T", "labels": ["a", "b"], "assignee_id": None, "milestone_id": ""},
            sudo="alice",
        )

        self.assertEqual(out.iid, 12)
        self.assertEqual(out.id, 100)
        project.issues.create.assert_called_once_with(
            {"iid": 12, "title": "T", "labels": "a,b"}, sudo="alice"
        )

    def test_create_issue_defaults_to_operator(self):
        client = _client()
        project = Mock()
        project.issues.create = Mock(return_value={"id": 1, "iid": 1, "title": "T"})
        client.get_project = Mock(return_value=project)

        out = client.create_issue(3, {"iid": 1, "title": "T"})

        _, kwargs = project.issues.create.call_args
        self.assertEqual(kwargs["sudo"], "importer")
        self.assertEqual(out.iid, 1)
        self.assertEqual(out.title, "T")

    def test_update_issue_puts_and_clears_unset_fields(self):
        client = _client()
        project = Mock()
        project.issues.update = Mock(return_value={"ok": True})
        client.get_project = Mock(return_value=project)

        client.update_issue(
            3,
            9,
            {"iid": 9, "title": "New", "labels": [], "assignee_id": None, "milestone_id": "",
             "state_event": "reopen"},
        )

        project.issues.update.assert_called_once_with(
            9,
            {"title": "New", "labels": "", "assignee_id": 0, "milestone_id": 0, "state_event": "reopen"},
            sudo="importer",
        )

    def test_close_issue_sends_state_event(self):
        client = _client()
        project = Mock()
        client.get_project = Mock(return_value=project)

        client.close_issue(3, 9)

        project.issues.update.assert_called_once_with(9, {"state_event": "close"}, sudo="importer")

    def test_delete_issue(self):
        client = _client()
        project = Mock()
        client.get_project = Mock(return_value=project)

        client.delete_issue(3, 9)

        project.issues.delete.assert_called_once_with(9, sudo="importer")

    def test_get_issue_notes_calls_notes_list(self):
        client = _client()
        notes = Mock()
        notes.list = Mock(return_value=["n"])
        issue = Mock()
        issue.notes = notes
        project = Mock()
        project.issues.get = Mock(return_value=issue)
        client.get_project = Mock(return_value=project)

        out = client.get_issue_notes(3, 5)

        self.assertEqual(out, ["n"])
        project.issues.get.assert_called_once_with(5, lazy=True)
        notes.list.assert_called_once_with(
            get_all=True, per_page=100, order_by="created_at", sort="asc", sudo="importer"
        )

    def test_create_issue_note_acts_as_author(self):
        client = _client()
        notes = Mock()
        notes.create = Mock(return_value="note")
        issue = Mock()
        issue.notes = notes
        project = Mock()
        project.issues.get = Mock(return_value=issue)
        client.get_project = Mock(return_value=project)

        out = client.create_issue_note(3, 5, "hello", created_at="2020-01-01T00:00:00Z", sudo="bob")

        self.assertEqual(out, "note")
        notes.create.assert_called_once_with(
            {"body": "hello", "created_at": "2020-01-01T00:00:00Z"}, sudo="bob"
        )

    def test_delete_issue_note_deleted(self):
        from mantis2gitlab.models.remote import NoteDeletion

        client = _client()
        issue = Mock()
        project = Mock()
        project.issues.get = Mock(return_value=issue)
        client.get_project = Mock(return_value=project)

        self.assertEqual(client.delete_issue_note(3, 5, 77), NoteDeletion.DELETED)
        issue.notes.delete.assert_called_once_with(77, sudo="importer")

    def test_delete_issue_note_raises_on_non_403(self):
        client = _client()
        issue = Mock()
        issue.notes.delete = Mock(side_effect=gitlab.exceptions.GitlabDeleteError("gone", 404))
        project = Mock()
        project.issues.get = Mock(return_value=issue)
        client.get_project = Mock(return_value=project)

        with self.assertRaises(gitlab.exceptions.GitlabDeleteError):
            client.delete_issue_note(3, 5, 77)


class DryRunTests(unittest.TestCase):
    def test_writes_are_suppressed_and_acknowledged(self):
        from mantis2gitlab.models.remote import DryRunAck, NoteDeletion

        client = _client(dry_run=True)
        client.get_project = Mock(side_effect=AssertionError("no network in dry run writes"))

        self.assertEqual(client.create_issue(3, {"iid": 12}), DryRunAck("INSERT", 12))
        self.assertEqual(client.update_issue(3, 9, {}), DryRunAck("UPDATE", 9))
        self.assertEqual(client.close_issue(3, 9), DryRunAck("CLOSE", 9))
        self.assertEqual(client.delete_issue(3, 9), DryRunAck("DELETE", 9))
        self.assertEqual(client.create_issue_note(3, 9, "x"), DryRunAck("INSERT_NOTE", 9))
        self.assertEqual(client.delete_issue_note(3, 9, 1), NoteDeletion.DRY_RUN)

    def test_reads_still_run_except_for_issues_created_in_the_dry_run(self):
        client = _client(dry_run=True)
        issue = Mock()
        issue.notes.list = Mock(return_value=["n"])
        project = Mock()
        project.issues.get = Mock(return_value=issue)
        client.get_project = Mock(return_value=project)

        client.create_issue(3, {"iid": 12})

        self.assertEqual(client.get_issue_notes(3, 12), [])
        self.assertEqual(client.get_issue_notes(3, 5), ["n"])
        project.issues.get.assert_called_once_with(5, lazy=True)


if __name__ == "__main__":
    unittest.main()
