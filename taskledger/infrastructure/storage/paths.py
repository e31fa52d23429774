"""File layout of a store directory."""

from dataclasses import dataclass
from pathlib import Path

TODO_FILE = "todo.json"
CONFIG_FILE = "todo-config.json"
LOG_FILE = "todo-log.json"
ARCHIVE_FILE = "todo-archive.json"
BACKUP_DIR = ".backups"


@dataclass(frozen=True)
class StorePaths:
    """Paths of every file kept in one store directory (default ``.claude/``)."""

    root: Path

    @property
    def todo_file(self) -> Path:
        return self.root / TODO_FILE

    @property
    def config_file(self) -> Path:
        return self.root / CONFIG_FILE

    @property
    def log_file(self) -> Path:
        return self.root / LOG_FILE

    @property
    def archive_file(self) -> Path:
        return self.root / ARCHIVE_FILE

    @property
    def backup_dir(self) -> Path:
        return self.root / BACKUP_DIR
