"""Identity, milestone and taxonomy mappings loaded from the mapping document"""
from typing import Dict, Optional, Union

from pydantic import BaseModel, Field, field_validator

FALLBACK_USERNAME = ""


class IdentityMapping(BaseModel):
    """Mantis username -> GitLab account"""

    source_username: str = ""
    name: str = ""
    gl_username: str
    # Filled in from the project member list; None means "no such member".
    gl_id: Optional[int] = None

    def __repr__(self):
        return f"<IdentityMapping({self.source_username!r} -> {self.gl_username})>"


class MilestoneMapping(BaseModel):
    """Mantis target version -> GitLab milestone"""

    version_label: str
    milestone_id: Union[int, str]
    # Informational only: the milestone whose title equals the version label.
    resolved_id: Optional[int] = None


class TaxonomyRules(BaseModel):
    """Category/priority/severity label tables and the closed-status table"""

    category_labels: Dict[str, str] = Field(default_factory=dict)
    priority_labels: Dict[str, str] = Field(default_factory=dict)
    severity_labels: Dict[str, str] = Field(default_factory=dict)
    closed_statuses: Dict[str, bool] = Field(default_factory=dict)

    class Config:
        frozen = True


class MigrationConfig(BaseModel):
    """The JSON mapping document"""

    users: Dict[str, IdentityMapping]
    source_url: Optional[str] = Field(default=None, alias="mantisUrl")
    category_labels: Dict[str, str] = Field(default_factory=dict)
    priority_labels: Dict[str, str] = Field(default_factory=dict)
    severity_labels: Dict[str, str] = Field(default_factory=dict)
    closed_statuses: Dict[str, bool] = Field(default_factory=dict)
    version_milestones: Dict[str, Union[int, str]] = Field(default_factory=dict)

    class Config:
        populate_by_name = True

    @field_validator("users")
    @classmethod
    def _key_identities(cls, users: Dict[str, IdentityMapping]) -> Dict[str, IdentityMapping]:
        for username, identity in users.items():
            identity.source_username = username
        return users

    @field_validator("source_url")
    @classmethod
    def _strip_trailing_slash(cls, value: Optional[str]) -> Optional[str]:
        return value.rstrip("/") if value else None

    def with_fallback_identity(self, operator_username: str) -> "MigrationConfig":
        """Ensure the sentinel empty-username identity exists."""
        if FALLBACK_USERNAME not in self.users:
            self.users = {
                FALLBACK_USERNAME: IdentityMapping(
                    source_username=FALLBACK_USERNAME,
                    name="Unknown",
                    gl_username=operator_username,
                ),
                **self.users,
            }
        return self

    def taxonomy(self) -> TaxonomyRules:
        return TaxonomyRules(
            category_labels=self.category_labels,
            priority_labels=self.priority_labels,
            severity_labels=self.severity_labels,
            closed_statuses=self.closed_statuses,
        )

    def milestones(self) -> Dict[str, MilestoneMapping]:
        return {
            label: MilestoneMapping(version_label=label, milestone_id=milestone_id)
            for label, milestone_id in self.version_milestones.items()
        }
