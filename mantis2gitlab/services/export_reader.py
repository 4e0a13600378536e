"""Mantis CSV export reader"""
import csv
import logging
from typing import List

from pydantic import ValidationError

from mantis2gitlab.exceptions import ConfigurationError
from mantis2gitlab.models.source_issue import SourceIssue

logger = logging.getLogger(__name__)


def read_source_issues(path: str, start_id: int = 0) -> List[SourceIssue]:
    """Parse the export, drop ids below `start_id` and sort by id."""
    logger.debug(f"Reading Mantis export file from {path}")
    try:
        with open(path, newline="", encoding="utf-8-sig") as fh:
            rows = list(csv.DictReader(fh, delimiter=",", quotechar='"'))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise ConfigurationError(f"Cannot read input file: {path} - {e}") from e

    issues = []
    for line_no, row in enumerate(rows, start=2):
        row = {key.strip(): value for key, value in row.items() if key is not None}
        if "Id" in row and row["Id"] is not None:
            row["Id"] = row["Id"].strip()
        try:
            issues.append(SourceIssue.model_validate(row))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid record on line {line_no} of {path}: {e}") from e

    if start_id:
        issues = [issue for issue in issues if issue.id >= start_id]

    return sorted(issues, key=lambda issue: issue.id)
