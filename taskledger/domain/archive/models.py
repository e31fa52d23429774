"""Archive store models.

``todo-archive.json`` keeps tasks that have left the live store. Archived
entries are stored as plain dicts: they are whatever the task looked like
when it was archived, plus an ``_archive`` block, and are never edited
again.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ArchiveMode(str, Enum):
    """How strictly the retention rules apply to a run.

    RETENTION: age and preserve-count rules both apply.
    FORCE: age is ignored; the most recent done tasks are still preserved.
    ALL: every done and cancelled task goes.
    """

    RETENTION = "retention"
    FORCE = "force"
    ALL = "all"


class ArchivePolicy(BaseModel):
    """The ``archive`` section of ``todo-config.json``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    days_until_archive: int = Field(default=7, ge=0, alias="daysUntilArchive")
    max_completed_tasks: int = Field(default=15, ge=0, alias="maxCompletedTasks")
    preserve_recent_count: int = Field(default=3, ge=0, alias="preserveRecentCount")


class ArchiveMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    total_archived: int = Field(default=0, alias="totalArchived")
    last_archived: str | None = Field(default=None, alias="lastArchived")
    oldest_task: str | None = Field(default=None, alias="oldestTask")
    newest_task: str | None = Field(default=None, alias="newestTask")


class ArchiveStatistics(BaseModel):
    """Running counters over everything ever archived. Unknown keys pass through."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    completed: int = 0
    cancelled: int = 0
    by_phase: dict[str, int] = Field(default_factory=dict, alias="byPhase")
    by_priority: dict[str, int] = Field(default_factory=dict, alias="byPriority")
    by_label: dict[str, int] = Field(default_factory=dict, alias="byLabel")
    average_cycle_time: float | None = Field(default=None, alias="averageCycleTime")


class ArchiveStore(BaseModel):
    """The whole archive file."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    meta: ArchiveMeta = Field(default_factory=ArchiveMeta, alias="_meta")
    archived_tasks: list[dict[str, Any]] = Field(default_factory=list, alias="archivedTasks")
    statistics: ArchiveStatistics = Field(default_factory=ArchiveStatistics)

    def archived_ids(self) -> list[str]:
        return [entry["id"] for entry in self.archived_tasks if "id" in entry]

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
