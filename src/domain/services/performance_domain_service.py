from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from src.domain.entities.activity import Activity
from src.domain.entities.comment import Comment
from src.domain.entities.performance import (
    RISK_CATEGORY_BURNOUT,
    RISK_CATEGORY_INACTIVE,
    RISK_CATEGORY_LOW_PERFORMERS,
    RISK_CATEGORY_OVERDUE,
    RISK_CATEGORY_OVERLOADED,
    SEVERITY_HIGH,
    SEVERITY_LOW,
    SEVERITY_MEDIUM,
    PerformanceMetrics,
    RiskDistribution,
    RiskEmployee,
    RiskIndicator,
    TeamMetrics,
    TopPerformer,
    TrendPoint,
)
from src.domain.entities.project import Project, Team
from src.domain.entities.query import EmployeeIdentity
from src.domain.entities.task import Task
from src.domain.services.record_filters import (
    activities_by_user,
    activities_today,
    backlog,
    comments_by_user,
    group_by_employee,
)
from src.utils.rounding import finite_or_zero, round2, round_half_up
from src.utils.time_window import days_ago, format_label, is_on_date, reference_now, to_local

ACTIVITY_WINDOW_DAYS = 7

COMPLETION_WEIGHT = 50
ACTIVITY_WEIGHT = 30
COMMENT_WEIGHT = 20
ACTIVITY_SATURATION = 10
COMMENT_SATURATION = 5

OVERLOAD_THRESHOLD = 20
OVERLOAD_HIGH_THRESHOLD = 30
LOW_PERFORMER_MIN_TASKS = 5
LOW_PERFORMER_RATE = 30
LOW_PERFORMER_HIGH_RATE = 10
BURNOUT_TASK_THRESHOLD = 15
BURNOUT_OVERDUE_THRESHOLD = 3
TOP_PERFORMER_LIMIT = 5


def _completion_rate(tasks: Sequence[Task]) -> float:
    if not tasks:
        return 0.0
    completed = sum(1 for task in tasks if task.is_terminal())
    return (completed / len(tasks)) * 100


def _overdue_severity(count: int) -> str:
    if count > 5:
        return SEVERITY_HIGH
    if count > 2:
        return SEVERITY_MEDIUM
    return SEVERITY_LOW


class PerformanceDomainService:
    """パフォーマンススコア・リスク指標・チーム集計・トレンドのドメインロジック"""

    def calculate_performance_metrics(
        self,
        tasks: Sequence[Task],
        comments: Sequence[Comment],
        activities: Sequence[Activity],
        reference_time: Optional[datetime] = None,
    ) -> List[PerformanceMetrics]:
        if not tasks:
            return []

        now = reference_now(reference_time)
        cutoff = days_ago(ACTIVITY_WINDOW_DAYS, now)
        metrics: List[PerformanceMetrics] = []

        for email, employee_tasks in group_by_employee(tasks).items():
            trimmed_email = email.strip()
            if not trimmed_email or not employee_tasks:
                continue

            total = len(employee_tasks)
            completed = sum(1 for task in employee_tasks if task.is_terminal())
            user_comments = comments_by_user(comments, email)
            user_activities = activities_by_user(activities, email)

            recent = [a for a in user_activities if a.creation is not None and to_local(a.creation) >= cutoff]
            active_days = {to_local(a.creation).date() for a in recent}

            completion_score = (completed / total) * COMPLETION_WEIGHT
            activity_score = min(len(user_activities) / ACTIVITY_SATURATION, 1) * ACTIVITY_WEIGHT
            comment_score = min(len(user_comments) / COMMENT_SATURATION, 1) * COMMENT_WEIGHT
            score = finite_or_zero(round2(completion_score + activity_score + comment_score))

            dated = [a.creation for a in user_activities if a.creation is not None]

            metrics.append(
                PerformanceMetrics(
                    employee=EmployeeIdentity(email=trimmed_email),
                    score=score,
                    rank=0,
                    tasks_completed=completed,
                    tasks_total=total,
                    comments_count=len(user_comments),
                    activities_count=len(user_activities),
                    last_activity_date=max(dated) if dated else None,
                    activity_window_days=ACTIVITY_WINDOW_DAYS,
                    recent_activities_count=len(recent),
                    active_days_count=len(active_days),
                    avg_activities_per_day=round2(len(recent) / ACTIVITY_WINDOW_DAYS),
                )
            )

        # sorted は安定ソートなので同点は元の順序のまま
        ranked = sorted(metrics, key=lambda m: m.score, reverse=True)
        for index, metric in enumerate(ranked, start=1):
            metric.rank = index
        return ranked

    def calculate_risk_indicators(
        self,
        tasks: Sequence[Task],
        activities: Sequence[Activity],
        reference_time: Optional[datetime] = None,
    ) -> List[RiskIndicator]:
        now = reference_now(reference_time)
        tasks_by_employee = group_by_employee(tasks)
        backlog_by_employee = group_by_employee(backlog(tasks, now))
        active_today = {a.owner for a in activities_today(activities, now) if a.owner}

        overdue = [
            RiskEmployee(
                email=email,
                reason=f"{len(overdue_tasks)} overdue task(s)",
                severity=_overdue_severity(len(overdue_tasks)),
            )
            for email, overdue_tasks in backlog_by_employee.items()
            if overdue_tasks
        ]

        inactive = [
            RiskEmployee(email=email, reason="No activity today", severity=SEVERITY_MEDIUM)
            for email, employee_tasks in tasks_by_employee.items()
            if employee_tasks and email not in active_today
        ]

        overloaded = [
            RiskEmployee(
                email=email,
                reason=f"{len(employee_tasks)} active tasks",
                severity=SEVERITY_HIGH if len(employee_tasks) > OVERLOAD_HIGH_THRESHOLD else SEVERITY_MEDIUM,
            )
            for email, employee_tasks in tasks_by_employee.items()
            if len(employee_tasks) > OVERLOAD_THRESHOLD
        ]

        low_performers: List[RiskEmployee] = []
        for email, employee_tasks in tasks_by_employee.items():
            rate = _completion_rate(employee_tasks)
            if len(employee_tasks) >= LOW_PERFORMER_MIN_TASKS and rate < LOW_PERFORMER_RATE:
                low_performers.append(
                    RiskEmployee(
                        email=email,
                        reason=f"{int(round_half_up(rate))}% completion rate",
                        severity=SEVERITY_HIGH if rate < LOW_PERFORMER_HIGH_RATE else SEVERITY_MEDIUM,
                    )
                )

        burnout: List[RiskEmployee] = []
        for email, employee_tasks in tasks_by_employee.items():
            overdue_count = len(backlog_by_employee.get(email, []))
            if len(employee_tasks) > BURNOUT_TASK_THRESHOLD and overdue_count > BURNOUT_OVERDUE_THRESHOLD:
                burnout.append(
                    RiskEmployee(
                        email=email,
                        reason=f"{overdue_count} overdue out of {len(employee_tasks)} tasks",
                        severity=SEVERITY_HIGH,
                    )
                )

        return [
            RiskIndicator(category=RISK_CATEGORY_OVERDUE, count=len(overdue), employees=overdue),
            RiskIndicator(category=RISK_CATEGORY_INACTIVE, count=len(inactive), employees=inactive),
            RiskIndicator(category=RISK_CATEGORY_OVERLOADED, count=len(overloaded), employees=overloaded),
            RiskIndicator(
                category=RISK_CATEGORY_LOW_PERFORMERS,
                count=len(low_performers),
                employees=low_performers,
            ),
            RiskIndicator(category=RISK_CATEGORY_BURNOUT, count=len(burnout), employees=burnout),
        ]

    def group_tasks_by_team(
        self,
        tasks: Iterable[Task],
        projects: Iterable[Project],
    ) -> Dict[str, List[Task]]:
        """タスク → プロジェクト → チームの結合でチームごとにまとめる"""
        team_by_project = {project.name: project.team for project in projects if project.team}
        grouped: Dict[str, List[Task]] = {}
        for task in tasks:
            team_name = team_by_project.get(task.project) if task.project else None
            if team_name:
                grouped.setdefault(team_name, []).append(task)
        return grouped

    def calculate_team_metrics(
        self,
        tasks: Sequence[Task],
        projects: Sequence[Project],
        teams: Sequence[Team],
        comments: Sequence[Comment] = (),
        activities: Sequence[Activity] = (),
        reference_time: Optional[datetime] = None,
    ) -> List[TeamMetrics]:
        now = reference_now(reference_time)
        tasks_by_team = self.group_tasks_by_team(tasks, projects)

        team_metrics: List[TeamMetrics] = []
        for team in teams:
            team_tasks = tasks_by_team.get(team.name, [])
            completed = sum(1 for task in team_tasks if task.is_terminal())
            employees = {task.assigned_to for task in team_tasks if task.assigned_to}
            indicators = self.calculate_risk_indicators(team_tasks, activities, now)
            performers = self.calculate_performance_metrics(team_tasks, comments, activities, now)

            team_metrics.append(
                TeamMetrics(
                    team_name=team.name,
                    team_title=team.title,
                    total_employees=len(employees),
                    total_tasks=len(team_tasks),
                    completed_tasks=completed,
                    overdue_tasks=len(backlog(team_tasks, now)),
                    average_completion_rate=round2(_completion_rate(team_tasks)),
                    risk_distribution=RiskDistribution.from_indicators(indicators),
                    top_performers=[
                        TopPerformer(email=metric.employee.email, score=metric.score)
                        for metric in performers[:TOP_PERFORMER_LIMIT]
                    ],
                )
            )
        return team_metrics

    def calculate_task_trends(
        self,
        tasks: Sequence[Task],
        days: int = 30,
        reference_time: Optional[datetime] = None,
    ) -> List[TrendPoint]:
        """更新日時ベースの日別タスク件数（古い日付から）"""
        return self._daily_counts([task.modified for task in tasks], days, reference_time)

    def calculate_activity_trends(
        self,
        activities: Sequence[Activity],
        days: int = 7,
        reference_time: Optional[datetime] = None,
    ) -> List[TrendPoint]:
        """作成日時ベースの日別アクティビティ件数（古い日付から）"""
        return self._daily_counts([activity.creation for activity in activities], days, reference_time)

    @staticmethod
    def _daily_counts(
        timestamps: Sequence[Optional[datetime]],
        days: int,
        reference_time: Optional[datetime],
    ) -> List[TrendPoint]:
        now = reference_now(reference_time)
        points: List[TrendPoint] = []
        for offset in range(days, -1, -1):
            day = days_ago(offset, now).date()
            value = sum(1 for timestamp in timestamps if is_on_date(timestamp, day))
            points.append(TrendPoint(date=day, value=value, label=format_label(day)))
        return points
