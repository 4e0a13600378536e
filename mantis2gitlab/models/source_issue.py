"""Mantis export records"""
from dataclasses import dataclass
from typing import List

from pydantic import BaseModel, Field, field_validator

# Mantis writes this literal for empty columns.
NULL_VALUE = "NULL"


def has_value(value) -> bool:
    """True unless the column is empty or the literal NULL."""
    return bool(value) and value != NULL_VALUE


class SourceIssue(BaseModel):
    """One row of the Mantis CSV export"""

    id: int = Field(alias="Id")
    summary: str = Field(default="", alias="Summary")
    description: str = Field(default="", alias="Description")
    info: str = Field(default="", alias="Info")
    notes: str = Field(default="", alias="Notes")
    reporter_username: str = Field(default="", alias="Reporter")
    assignee_username: str = Field(default="", alias="Assigned To")
    category_id: str = Field(default="", alias="CategoryId")
    priority: str = Field(default="", alias="Priority")
    severity: str = Field(default="", alias="Severity")
    status: str = Field(default="", alias="Status")
    target_version: str = Field(default="", alias="TargetVersion")
    created_at: str = Field(default="", alias="Created")
    updated_at: str = Field(default="", alias="Updated")
    tags: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("id")
    @classmethod
    def _positive_id(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("issue id must be a positive integer")
        return value

    @field_validator(
        "summary",
        "description",
        "info",
        "notes",
        "reporter_username",
        "assignee_username",
        "category_id",
        "priority",
        "severity",
        "status",
        "target_version",
        "created_at",
        "updated_at",
        mode="before",
    )
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value


@dataclass(frozen=True)
class CommentEntry:
    """One note parsed out of SourceIssue.notes"""

    created_at: str
    author_username: str
    body: str
