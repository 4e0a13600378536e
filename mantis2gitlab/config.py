"""Application configuration"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError
from pydantic_settings import BaseSettings

from mantis2gitlab.exceptions import ConfigurationError
from mantis2gitlab.models.mapping import MigrationConfig

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Runtime settings; command line flags override these"""

    # GitLab
    gitlab_url: str | None = None
    # An admin's private token; needed for Sudo and explicit issue numbers.
    private_token: str | None = None
    # The operator account. Used for reads, updates and the "Unknown" identity.
    sudo: str | None = None
    # Namespaced project path, e.g. "mycorp/myproj"
    project: str | None = None

    # Input
    input_file: str | None = None
    config_file: str | None = None
    from_id: int = 0

    # Behaviour
    dry_run: bool = False
    remove_skipped: bool = False
    fill_gaps: bool = False
    comment_workers: int = 4
    source_name: str = "Mantis"

    # Logging
    log_level: str = "INFO"
    verbose: bool = False

    class Config:
        env_prefix = "M2GL_"
        env_file = ".env"
        case_sensitive = False

    @property
    def api_url(self) -> str:
        return (self.gitlab_url or "").rstrip("/")

    def require(self, *names: str) -> None:
        """Raise ConfigurationError naming every unset setting."""
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            raise ConfigurationError("Missing required settings: " + ", ".join(missing))


def load_migration_config(path: str, operator_username: str) -> MigrationConfig:
    """Read and validate the JSON mapping document."""
    logger.debug(f"Read from file {path}")
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file: {path}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Config file is not valid JSON: {path} ({e})") from e

    try:
        config = MigrationConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}") from e

    return config.with_fallback_identity(operator_username)
