"""Settings for contribsync."""

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError, field_validator

from contribsync.errors import ConfigurationError

DEFAULT_HOME = Path.home() / ".contribsync"

# Environment variable -> settings field
ENV_VARS = {
    "CONTRIBSYNC_DATABASE_URL": "database_url",
    "CONTRIBSYNC_BRANCH": "branch",
    "CONTRIBSYNC_BATCH_SIZE": "batch_size",
    "CONTRIBSYNC_CACHE_DIR": "cache_dir",
    "CONTRIBSYNC_LOCK_DIR": "lock_dir",
    "CONTRIBSYNC_NAMES_FILE": "names_file",
}


class Settings(BaseModel):
    """Runtime configuration of an update."""

    database_url: str = f"sqlite+pysqlite:///{DEFAULT_HOME / 'contribsync.db'}"
    branch: str = "HEAD"
    batch_size: int = 100
    cache_dir: Path = DEFAULT_HOME / "cache" / "views"
    lock_dir: Path = DEFAULT_HOME / "tmp"
    names_file: Optional[Path] = None

    @field_validator("batch_size")
    @classmethod
    def _positive_batch_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("batch_size must be at least 1")
        return value

    @field_validator("branch", "database_url")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


def load_settings(config_file: Optional[Path] = None) -> Settings:
    """Build settings from defaults, an optional JSON file and the environment.

    Environment variables win over the config file, which wins over defaults.
    """
    values = {}

    config_file = config_file or os.getenv("CONTRIBSYNC_CONFIG")
    if config_file:
        config_path = Path(config_file)
        try:
            values.update(json.loads(config_path.read_text()))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Cannot read config file {config_path}: {e}"
            ) from e

    for env_var, field in ENV_VARS.items():
        value = os.getenv(env_var)
        if value:
            values[field] = value

    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e
