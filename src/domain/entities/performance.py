from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from src.domain.entities.query import EmployeeIdentity
from src.utils.time_window import format_timestamp


RISK_CATEGORY_OVERDUE = "overdue"
RISK_CATEGORY_INACTIVE = "inactive"
RISK_CATEGORY_OVERLOADED = "overloaded"
RISK_CATEGORY_LOW_PERFORMERS = "low_performers"
RISK_CATEGORY_BURNOUT = "burnout_risk"

RISK_CATEGORIES = (
    RISK_CATEGORY_OVERDUE,
    RISK_CATEGORY_INACTIVE,
    RISK_CATEGORY_OVERLOADED,
    RISK_CATEGORY_LOW_PERFORMERS,
    RISK_CATEGORY_BURNOUT,
)

SEVERITY_LOW = "low"
SEVERITY_MEDIUM = "medium"
SEVERITY_HIGH = "high"


@dataclass(slots=True)
class PerformanceMetrics:
    employee: EmployeeIdentity
    score: float
    rank: int
    tasks_completed: int
    tasks_total: int
    comments_count: int
    activities_count: int
    last_activity_date: Optional[datetime] = None
    trend: str = "stable"
    activity_window_days: int = 7
    recent_activities_count: int = 0
    active_days_count: int = 0
    avg_activities_per_day: float = 0.0

    def with_employee(self, employee: EmployeeIdentity) -> "PerformanceMetrics":
        return replace(self, employee=employee)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employee": self.employee.to_dict(),
            "score": self.score,
            "rank": self.rank,
            "tasks_completed": self.tasks_completed,
            "tasks_total": self.tasks_total,
            "comments_count": self.comments_count,
            "activities_count": self.activities_count,
            "last_activity_date": format_timestamp(self.last_activity_date),
            "trend": self.trend,
            "activity_window_days": self.activity_window_days,
            "recent_activities_count": self.recent_activities_count,
            "active_days_count": self.active_days_count,
            "avg_activities_per_day": self.avg_activities_per_day,
        }


@dataclass(slots=True)
class RiskEmployee:
    email: str
    reason: str
    severity: str
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "name": self.name,
            "reason": self.reason,
            "severity": self.severity,
        }


@dataclass(slots=True)
class RiskIndicator:
    category: str
    count: int
    employees: List[RiskEmployee] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "count": self.count,
            "employees": [employee.to_dict() for employee in self.employees],
        }


@dataclass(slots=True)
class RiskDistribution:
    overdue: int = 0
    inactive: int = 0
    overloaded: int = 0
    low_performers: int = 0
    burnout_risk: int = 0

    @classmethod
    def from_indicators(cls, indicators: List[RiskIndicator]) -> "RiskDistribution":
        counts = {indicator.category: indicator.count for indicator in indicators}
        return cls(
            overdue=counts.get(RISK_CATEGORY_OVERDUE, 0),
            inactive=counts.get(RISK_CATEGORY_INACTIVE, 0),
            overloaded=counts.get(RISK_CATEGORY_OVERLOADED, 0),
            low_performers=counts.get(RISK_CATEGORY_LOW_PERFORMERS, 0),
            burnout_risk=counts.get(RISK_CATEGORY_BURNOUT, 0),
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "overdue": self.overdue,
            "inactive": self.inactive,
            "overloaded": self.overloaded,
            "low_performers": self.low_performers,
            "burnout_risk": self.burnout_risk,
        }


@dataclass(slots=True)
class TopPerformer:
    email: str
    score: float
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"email": self.email, "name": self.name, "score": self.score}


@dataclass(slots=True)
class TeamMetrics:
    team_name: str
    team_title: Optional[str]
    total_employees: int
    total_tasks: int
    completed_tasks: int
    overdue_tasks: int
    average_completion_rate: float
    risk_distribution: RiskDistribution
    top_performers: List[TopPerformer] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "team_name": self.team_name,
            "team_title": self.team_title,
            "total_employees": self.total_employees,
            "total_tasks": self.total_tasks,
            "completed_tasks": self.completed_tasks,
            "overdue_tasks": self.overdue_tasks,
            "average_completion_rate": self.average_completion_rate,
            "risk_distribution": self.risk_distribution.to_dict(),
            "top_performers": [performer.to_dict() for performer in self.top_performers],
        }


@dataclass(slots=True)
class TrendPoint:
    date: date
    value: int
    label: str

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date.isoformat(), "value": self.value, "label": self.label}
