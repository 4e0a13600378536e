"""Data models"""

from mantis2gitlab.models.mapping import (
    IdentityMapping,
    MigrationConfig,
    MilestoneMapping,
    TaxonomyRules,
)
from mantis2gitlab.models.remote import (
    DryRunAck,
    Existing,
    IssueLookup,
    Missing,
    NoteDeletion,
    RemoteIssue,
)
from mantis2gitlab.models.source_issue import CommentEntry, SourceIssue

__all__ = [
    "CommentEntry",
    "DryRunAck",
    "Existing",
    "IdentityMapping",
    "IssueLookup",
    "MigrationConfig",
    "MilestoneMapping",
    "Missing",
    "NoteDeletion",
    "RemoteIssue",
    "SourceIssue",
    "TaxonomyRules",
]
