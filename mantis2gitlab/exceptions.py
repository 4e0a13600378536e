"""Migration errors"""

from typing import Iterable


class MigrationError(Exception):
    """Base exception for all migration errors."""


class ConfigurationError(MigrationError):
    """Missing or unreadable configuration or input file."""


class UserValidationError(MigrationError):
    """Source usernames that have no configured identity."""

    def __init__(self, usernames: Iterable[str]):
        self.usernames = list(usernames)
        super().__init__(
            "User validation failed, cannot map Mantis users: " + ", ".join(self.usernames)
        )


class MalformedNotesError(MigrationError):
    """A notes chunk that does not look like `<timestamp>][<author>][<body>`."""

    def __init__(self, record_id: int, chunk: str):
        self.record_id = record_id
        self.chunk = chunk
        preview = chunk if len(chunk) <= 60 else chunk[:57] + "..."
        super().__init__(f"Malformed notes in issue {record_id}: {preview!r}")


class RemoteReadError(MigrationError):
    """Listing or fetching from GitLab failed."""

    @classmethod
    def from_transport(cls, what: str, url: str, error: Exception) -> "RemoteReadError":
        code = getattr(error, "response_code", None)
        return cls(f"Cannot get {what} from GitLab: {url} (error code: {code}) {error}")


class RemoteWriteError(MigrationError):
    """A write to GitLab failed where the run cannot continue."""
