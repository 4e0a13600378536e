import unittest
from types import SimpleNamespace
from unittest.mock import Mock
import logging

import gitlab

logging.disable(logging.CRITICAL)


class FetchAllTests(unittest.TestCase):
    def test_stops_after_first_short_page(self):
        from mantis2gitlab.services.remote_state import fetch_all

        sizes = {1: 100, 2: 100, 3: 37}
        calls = []

        def fetch_page(page, per_page):
            calls.append((page, per_page))
            return list(range(sizes[page]))

        items = fetch_all(fetch_page)

        self.assertEqual(len(items), 237)
        self.assertEqual(calls, [(1, 100), (2, 100), (3, 100)])

    def test_empty_first_page(self):
        from mantis2gitlab.services.remote_state import fetch_all

        fetch_page = Mock(return_value=[])

        self.assertEqual(fetch_all(fetch_page), [])
        fetch_page.assert_called_once_with(1, 100)

    def test_exactly_full_pages_need_one_more_request(self):
        from mantis2gitlab.services.remote_state import fetch_all

        fetch_page = Mock(side_effect=[[1, 2], [3, 4], []])

        self.assertEqual(fetch_all(fetch_page, per_page=2, first_page=0), [1, 2, 3, 4])
        self.assertEqual([c.args for c in fetch_page.call_args_list], [(0, 2), (1, 2), (2, 2)])


class IssueIndexTests(unittest.TestCase):
    def test_lookup_is_tagged(self):
        from mantis2gitlab.models.remote import Existing, Missing, RemoteIssue
        from mantis2gitlab.services.remote_state import IssueIndex

        issue = RemoteIssue(id=100, iid=3, title="T")
        index = IssueIndex([issue])

        self.assertEqual(index.lookup(3), Existing(issue))
        self.assertEqual(index.lookup(4), Missing(4))

    def test_register_and_highest_below(self):
        from mantis2gitlab.models.remote import RemoteIssue
        from mantis2gitlab.services.remote_state import IssueIndex

        index = IssueIndex([RemoteIssue(id=1, iid=2, title="a"), RemoteIssue(id=2, iid=9, title="b")])
        self.assertEqual(index.highest_below(9), 2)
        self.assertEqual(index.highest_below(2), 0)

        index.register(RemoteIssue(id=3, iid=5, title="c"))

        self.assertIn(5, index)
        self.assertEqual(len(index), 3)
        self.assertEqual([i.iid for i in index.issues()], [2, 5, 9])


class RemoteStateCacheTests(unittest.TestCase):
    def test_fetch_issues_pages_through_client_and_indexes_by_iid(self):
        from mantis2gitlab.models.remote import Existing, RemoteIssue
        from mantis2gitlab.services.remote_state import RemoteStateCache

        client = Mock()
        client.get_project.return_value = SimpleNamespace(id=42)
        pages = {
            1: [RemoteIssue(id=n, iid=n, title=f"#{n}") for n in range(1, 101)],
            2: [RemoteIssue(id=n, iid=n, title=f"#{n}") for n in range(101, 138)],
        }
        client.list_issues.side_effect = lambda project_id, page, per_page: pages[page]

        state = RemoteStateCache(client, "group/proj")
        self.assertEqual(state.load_project(), 42)
        index = state.fetch_issues()

        self.assertEqual(len(index), 137)
        self.assertIsInstance(index.lookup(137), Existing)
        self.assertEqual(client.list_issues.call_count, 2)
        client.list_issues.assert_called_with(42, 2, 100)

    def test_members_and_milestones(self):
        from mantis2gitlab.services.remote_state import RemoteStateCache

        client = Mock()
        client.get_project.return_value = SimpleNamespace(id=7)
        client.list_members.return_value = [SimpleNamespace(id=1, username="a")]
        client.list_milestones.return_value = []

        state = RemoteStateCache(client, "group/proj")
        state.load_project()

        self.assertEqual(len(state.fetch_members()), 1)
        self.assertEqual(state.fetch_milestones(), [])
        client.list_members.assert_called_once_with(7, 1, 100)
        client.list_milestones.assert_called_once_with(7, 1, 100)

    def test_read_failures_become_remote_read_errors(self):
        from mantis2gitlab.exceptions import RemoteReadError
        from mantis2gitlab.services.remote_state import RemoteStateCache

        client = Mock()
        client.url = "https://gitlab.example"
        client.get_project.side_effect = gitlab.exceptions.GitlabGetError("nope", 404)

        state = RemoteStateCache(client, "group/missing")

        with self.assertRaises(RemoteReadError) as ctx:
            state.load_project()
        self.assertIn("404", str(ctx.exception))

        client.get_project.side_effect = None
        client.get_project.return_value = SimpleNamespace(id=7)
        state.load_project()
        client.list_issues.side_effect = gitlab.exceptions.GitlabListError("boom", 500)

        with self.assertRaises(RemoteReadError):
            state.fetch_issues()

    def test_transport_failures_become_remote_read_errors(self):
        import requests

        from mantis2gitlab.exceptions import RemoteReadError
        from mantis2gitlab.services.remote_state import RemoteStateCache

        client = Mock()
        client.url = "https://gitlab.example"
        client.get_project.side_effect = requests.exceptions.ConnectionError("refused")

        state = RemoteStateCache(client, "group/proj")

        with self.assertRaises(RemoteReadError) as ctx:
            state.load_project()
        self.assertIn("refused", str(ctx.exception))
        self.assertIn("https://gitlab.example", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
