from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from src.domain.entities.record import merge_record, optional_str, split_known_fields
from src.utils.time_window import format_timestamp, parse_timestamp, to_local


TASK_DOCTYPE = "GP Task"

TASK_STATUS_OPEN = "Open"
TASK_STATUS_IN_PROGRESS = "In Progress"
TASK_STATUS_COMPLETED = "Completed"
TASK_STATUS_CLOSED = "Closed"

TERMINAL_STATUSES = {TASK_STATUS_COMPLETED, TASK_STATUS_CLOSED}
IN_PROGRESS_STATUSES = {TASK_STATUS_IN_PROGRESS, TASK_STATUS_OPEN}
# 担当タスク一覧のみ小文字正規化して判定する
INACTIVE_STATUSES_NORMALIZED = {"completed", "closed", "done"}

_TASK_FIELDS = (
    "name",
    "title",
    "status",
    "priority",
    "assigned_to",
    "due_date",
    "creation",
    "modified",
    "project",
    "team",
    "description",
)


@dataclass
class Task:
    """GamePlanタスクエンティティ"""
    name: str
    title: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    assigned_to: Optional[str] = None
    due_date: Optional[datetime] = None
    creation: Optional[datetime] = None
    modified: Optional[datetime] = None
    project: Optional[str] = None
    team: Optional[str] = None
    description: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def is_terminal(self) -> bool:
        """完了/クローズ済みかどうか"""
        return self.status in TERMINAL_STATUSES

    def is_in_progress(self) -> bool:
        return self.status in IN_PROGRESS_STATUSES

    def is_active(self) -> bool:
        """小文字正規化したステータスで未完了かどうか"""
        return (self.status or "").lower() not in INACTIVE_STATUSES_NORMALIZED

    def is_overdue(self, reference_time: datetime) -> bool:
        """納期超過（バックログ）かどうか"""
        if self.due_date is None or self.is_terminal():
            return False
        return to_local(self.due_date) < to_local(reference_time)

    @classmethod
    def from_api_response(cls, payload: Dict[str, Any]) -> "Task":
        """APIレスポンスからエンティティを作成"""
        named, extra = split_known_fields(payload, _TASK_FIELDS)
        return cls(
            name=str(named.get("name") or ""),
            title=optional_str(named.get("title")),
            status=optional_str(named.get("status")),
            priority=optional_str(named.get("priority")),
            assigned_to=optional_str(named.get("assigned_to")) or None,
            due_date=parse_timestamp(named.get("due_date")),
            creation=parse_timestamp(named.get("creation")),
            modified=parse_timestamp(named.get("modified")),
            project=optional_str(named.get("project")) or None,
            team=optional_str(named.get("team")),
            description=optional_str(named.get("description")),
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        """辞書形式で返す（API用）"""
        return merge_record(
            {
                "name": self.name,
                "title": self.title,
                "status": self.status,
                "priority": self.priority,
                "assigned_to": self.assigned_to,
                "due_date": format_timestamp(self.due_date),
                "creation": format_timestamp(self.creation),
                "modified": format_timestamp(self.modified),
                "project": self.project,
                "team": self.team,
                "description": self.description,
            },
            self.extra,
        )
