"""Services"""

from mantis2gitlab.services.gitlab_client import GitLabClient
from mantis2gitlab.services.sync_service import SyncService

__all__ = ["GitLabClient", "SyncService"]
