"""One end-to-end import run"""

import logging
from typing import Any, Dict, Optional

import gitlab
import requests

from mantis2gitlab.config import Settings, load_migration_config
from mantis2gitlab.exceptions import RemoteReadError
from mantis2gitlab.services.comments import CommentThreadRefresher
from mantis2gitlab.services.export_reader import read_source_issues
from mantis2gitlab.services.gitlab_client import GitLabClient
from mantis2gitlab.services.identity import IdentityResolver
from mantis2gitlab.services.normalizer import RecordNormalizer
from mantis2gitlab.services.remote_state import RemoteStateCache
from mantis2gitlab.services.sync_service import SyncService
from mantis2gitlab.services.taxonomy import TaxonomyMapper

logger = logging.getLogger(__name__)

REQUIRED_SETTINGS = ("input_file", "config_file", "gitlab_url", "project", "private_token", "sudo")


class Migration:
    """Reads local inputs, snapshots GitLab, validates, then imports or cleans up"""

    def __init__(self, settings: Settings, client: Optional[GitLabClient] = None):
        settings.require(*REQUIRED_SETTINGS)
        self.settings = settings
        self._client = client

    @property
    def client(self) -> GitLabClient:
        if self._client is None:
            try:
                self._client = GitLabClient(
                    self.settings.api_url,
                    self.settings.private_token,
                    self.settings.sudo,
                    dry_run=self.settings.dry_run,
                )
            except (gitlab.exceptions.GitlabError, requests.exceptions.RequestException) as e:
                raise RemoteReadError.from_transport(
                    "authenticated session", self.settings.api_url, e
                ) from e
        return self._client

    def run(self) -> Dict[str, Any]:
        s = self.settings

        # Local inputs first: a bad file must fail before any network call.
        logger.info("Reading configuration...")
        config = load_migration_config(s.config_file, s.sudo)
        logger.info("Reading Mantis export file...")
        records = read_source_issues(s.input_file, start_id=s.from_id)
        logger.info(f"Read {len(records)} Mantis issues.")

        identities = IdentityResolver(config.users)
        taxonomy = TaxonomyMapper(config.taxonomy(), config.milestones())
        normalizer = RecordNormalizer(
            identities, taxonomy, source_url=config.source_url, source_name=s.source_name
        )

        state = RemoteStateCache(self.client, s.project)
        project_id = state.load_project()
        identities.match_members(state.fetch_members())
        taxonomy.match_milestones(state.fetch_milestones())

        comments = CommentThreadRefresher(
            self.client, project_id, normalizer, identities, max_workers=s.comment_workers
        )
        service = SyncService(
            self.client,
            project_id,
            state.fetch_issues(),
            normalizer,
            comments,
            fill_gaps=s.fill_gaps,
        )
        # Before any write.
        service.validate(records)

        if s.remove_skipped:
            removed = service.remove_skipped()
            logger.info(f"Removed {removed} skipped issue(s).")
            return {"removed": removed}

        return service.run(records)
