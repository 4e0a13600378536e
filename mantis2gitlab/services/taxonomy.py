"""Category/priority/severity/status/version translation"""
import logging
from typing import Any, Dict, Iterable, List, Union

from mantis2gitlab.models.mapping import MilestoneMapping, TaxonomyRules
from mantis2gitlab.models.remote import safe_attr
from mantis2gitlab.models.source_issue import SourceIssue

logger = logging.getLogger(__name__)


class TaxonomyMapper:
    """Maps Mantis classifications onto GitLab labels, state and milestones"""

    def __init__(self, rules: TaxonomyRules, milestones: Dict[str, MilestoneMapping]):
        self.rules = rules
        self.milestones = milestones

    def labels_for(self, record: SourceIssue) -> List[str]:
        """Record tags, then category, priority and severity labels.

        Unmapped codes are skipped; duplicates are kept.
        """
        labels = list(record.tags)
        for table, code in (
            (self.rules.category_labels, record.category_id),
            (self.rules.priority_labels, record.priority),
            (self.rules.severity_labels, record.severity),
        ):
            label = table.get(code)
            if label:
                labels.append(label)
        return labels

    def is_closed(self, record: SourceIssue) -> bool:
        return bool(self.rules.closed_statuses.get(record.status, False))

    def milestone_id_for(self, version_label: str) -> Union[int, str]:
        """Configured milestone id, or "" for an unmapped version."""
        milestone = self.milestones.get(version_label)
        return milestone.milestone_id if milestone is not None else ""

    def match_milestones(self, remote_milestones: Iterable[Any]) -> int:
        """Cross-check configured versions against remote milestone titles."""
        ids_by_title = {}
        for milestone in remote_milestones:
            title = safe_attr(milestone, "title")
            milestone_id = safe_attr(milestone, "id")
            if title:
                ids_by_title[title] = milestone_id

        matched = 0
        for mapping in self.milestones.values():
            mapping.resolved_id = ids_by_title.get(mapping.version_label)
            if mapping.resolved_id is not None:
                matched += 1
                if str(mapping.resolved_id) != str(mapping.milestone_id):
                    logger.debug(
                        f"Version '{mapping.version_label}' is configured as milestone "
                        f"{mapping.milestone_id} but titled milestone {mapping.resolved_id}"
                    )
        return matched
