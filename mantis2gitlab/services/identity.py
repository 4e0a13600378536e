"""Mantis username -> GitLab account resolution"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from mantis2gitlab.models.mapping import FALLBACK_USERNAME, IdentityMapping
from mantis2gitlab.models.remote import safe_attr
from mantis2gitlab.models.source_issue import has_value

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Looks up configured identities, falling back to the "Unknown" entry"""

    def __init__(self, identities: Dict[str, IdentityMapping]):
        if FALLBACK_USERNAME not in identities:
            raise ValueError("identity table has no fallback entry")
        self._identities = identities

    @property
    def fallback(self) -> IdentityMapping:
        return self._identities[FALLBACK_USERNAME]

    def resolve(self, username: Optional[str]) -> IdentityMapping:
        """Never fails: unknown or empty usernames give the fallback identity."""
        if not has_value(username):
            return self.fallback
        return self._identities.get(username, self.fallback)

    def is_known(self, username: Optional[str]) -> bool:
        """Empty usernames are known (via the fallback); others need an entry."""
        if not has_value(username):
            return True
        return username in self._identities

    def unresolved(self, usernames: Iterable[Optional[str]]) -> List[str]:
        """Distinct unknown usernames, in first-seen order."""
        missing: List[str] = []
        for username in usernames:
            if not self.is_known(username) and username not in missing:
                missing.append(username)
        return missing

    def match_members(self, members: Iterable[Any]) -> int:
        """Record the GitLab user id of every identity found among `members`.

        Returns the number of matched identities. Unmatched identities keep
        gl_id=None, which is only a problem if they end up as an assignee.
        """
        ids_by_username = {}
        for member in members:
            username = safe_attr(member, "username")
            member_id = safe_attr(member, "id")
            if username:
                ids_by_username[username] = member_id

        matched = 0
        for identity in self._identities.values():
            identity.gl_id = ids_by_username.get(identity.gl_username)
            if identity.gl_id is not None:
                matched += 1
            else:
                logger.debug(f"No project member for GitLab user '{identity.gl_username}'")
        return matched
