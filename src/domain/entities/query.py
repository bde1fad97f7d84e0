from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from src.domain.entities.task import Task
from src.utils.time_window import format_timestamp


class QueryType(str, Enum):
    NOT_UPDATED_TODAY = "NOT_UPDATED_TODAY"
    NOT_UPDATED_YESTERDAY = "NOT_UPDATED_YESTERDAY"
    TASKS_BY_DATE = "TASKS_BY_DATE"
    NOT_COMMENTED_TODAY = "NOT_COMMENTED_TODAY"
    BACKLOG = "BACKLOG"
    COMPLETION_RATE = "COMPLETION_RATE"


@dataclass(frozen=True)
class QueryFilters:
    team: Optional[str] = None
    project: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    def has_date_range(self) -> bool:
        return self.start_date is not None and self.end_date is not None


@dataclass(slots=True)
class EmployeeIdentity:
    email: str
    name: Optional[str] = None
    full_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"email": self.email}
        if self.name is not None:
            data["name"] = self.name
        if self.full_name is not None:
            data["full_name"] = self.full_name
        return data


@dataclass(slots=True)
class EmployeeTaskBreakdown:
    total_tasks: Optional[int] = None
    completed_tasks: Optional[int] = None
    overdue_tasks: Optional[int] = None
    in_progress_tasks: Optional[int] = None

    def to_dict(self) -> Dict[str, int]:
        return {
            key: value
            for key, value in (
                ("total_tasks", self.total_tasks),
                ("completed_tasks", self.completed_tasks),
                ("overdue_tasks", self.overdue_tasks),
                ("in_progress_tasks", self.in_progress_tasks),
            )
            if value is not None
        }


@dataclass(slots=True)
class EmployeeQueryResult:
    employee: EmployeeIdentity
    task_count: Optional[int] = None
    backlog_count: Optional[int] = None
    completion_rate: Optional[float] = None
    # グループ先頭タスクの更新日時（並び順に依存する値）
    last_update_date: Optional[datetime] = None
    latest_update_date: Optional[datetime] = None
    last_comment_date: Optional[datetime] = None
    tasks: Optional[List[Task]] = None
    metrics: Optional[EmployeeTaskBreakdown] = None

    def with_employee(self, employee: EmployeeIdentity) -> "EmployeeQueryResult":
        return replace(self, employee=employee)

    def to_dict(self) -> Dict[str, Any]:
        """辞書形式で返す（API用、未設定の項目は含めない）"""
        data: Dict[str, Any] = {"employee": self.employee.to_dict()}
        optional_values = {
            "task_count": self.task_count,
            "backlog_count": self.backlog_count,
            "completion_rate": self.completion_rate,
            "last_update_date": format_timestamp(self.last_update_date),
            "latest_update_date": format_timestamp(self.latest_update_date),
            "last_comment_date": format_timestamp(self.last_comment_date),
        }
        data.update({key: value for key, value in optional_values.items() if value is not None})
        if self.tasks is not None:
            data["tasks"] = [task.to_dict() for task in self.tasks]
        if self.metrics is not None:
            data["metrics"] = self.metrics.to_dict()
        return data


@dataclass(slots=True)
class QueryExecutionResult:
    results: List[EmployeeQueryResult] = field(default_factory=list)
    error: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.error is None
