"""Configuration for taskledger.

Policy lives in ``todo-config.json`` next to the store. Only the keys this
package understands are read; the file may carry settings for other tools.
"""

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from taskledger.domain.archive.models import ArchivePolicy
from taskledger.domain.deletion.models import CancellationPolicy

logger = logging.getLogger(__name__)

STORE_DIR_ENV = "TASKLEDGER_DIR"
DEFAULT_STORE_DIR = ".claude"


class LockConfig(BaseModel):
    """Advisory lock settings for the commit phase."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    timeout_seconds: float = Field(default=5.0, gt=0, alias="timeoutSeconds")


class AuditConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    enabled: bool = True
    actor: str = "claude"


class TodoConfig(BaseModel):
    """Root of ``todo-config.json``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    cancellation: CancellationPolicy = Field(default_factory=CancellationPolicy)
    archive: ArchivePolicy = Field(default_factory=ArchivePolicy)
    lock: LockConfig = Field(default_factory=LockConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)


def resolve_store_dir(explicit: str | Path | None = None) -> Path:
    """Resolve the store directory.

    Resolution order:
    1. Explicit path (from --dir)
    2. TASKLEDGER_DIR environment variable
    3. ./.claude
    """
    if explicit:
        return Path(explicit)
    env_dir = os.environ.get(STORE_DIR_ENV)
    if env_dir:
        return Path(env_dir)
    return Path.cwd() / DEFAULT_STORE_DIR


def load_config(config_file: Path) -> TodoConfig:
    """Load configuration, falling back to defaults.

    A missing file is normal. An unreadable or invalid file is logged and
    ignored so a bad config never blocks the store.
    """
    if not config_file.exists():
        return TodoConfig()
    try:
        data = json.loads(config_file.read_text(encoding="utf-8"))
        return TodoConfig.model_validate(data)
    except (json.JSONDecodeError, ValidationError, OSError) as e:
        logger.warning("Ignoring invalid config %s: %s", config_file, e)
        return TodoConfig()

