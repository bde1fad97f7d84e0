from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, TypeVar

from src.domain.entities.activity import Activity
from src.domain.entities.comment import Comment
from src.domain.entities.project import Project
from src.domain.entities.query import QueryFilters
from src.domain.entities.task import Task
from src.utils.time_window import (
    is_in_range,
    is_on_date,
    is_today,
    is_yesterday,
    reference_now,
)

T = TypeVar("T")


def filter_by_assignee(tasks: Iterable[Task], email: str) -> List[Task]:
    return [task for task in tasks if task.assigned_to == email]


def filter_by_status(tasks: Iterable[Task], status: str) -> List[Task]:
    return [task for task in tasks if task.status == status]


def filter_by_project(tasks: Iterable[Task], project: str) -> List[Task]:
    return [task for task in tasks if task.project == project]


def team_project_names(team: str, projects: Iterable[Project]) -> set[str]:
    """チームに所属するプロジェクト名の集合"""
    return {project.name for project in projects if project.team == team}


def filter_by_team(tasks: Iterable[Task], team: str, projects: Iterable[Project]) -> List[Task]:
    """チーム → プロジェクト → タスクの順に解決して絞り込む"""
    names = team_project_names(team, projects)
    return [task for task in tasks if task.project and task.project in names]


def apply_filters(
    tasks: Sequence[Task],
    filters: Optional[QueryFilters],
    projects: Sequence[Project] = (),
) -> List[Task]:
    """チーム → プロジェクトの順でフィルタを適用（入力は変更しない）"""
    filtered = list(tasks)
    if filters is None:
        return filtered
    if filters.team:
        filtered = filter_by_team(filtered, filters.team, projects)
    if filters.project:
        filtered = filter_by_project(filtered, filters.project)
    return filtered


def group_by_employee(tasks: Iterable[Task]) -> Dict[str, List[Task]]:
    """担当者メールごとにタスクをまとめる（担当者なしは除外、挿入順を保持）"""
    grouped: Dict[str, List[Task]] = {}
    for task in tasks:
        if not task.assigned_to:
            continue
        grouped.setdefault(task.assigned_to, []).append(task)
    return grouped


def backlog(tasks: Iterable[Task], now: Optional[datetime] = None) -> List[Task]:
    """納期超過かつ未完了のタスク"""
    reference_time = reference_now(now)
    return [task for task in tasks if task.is_overdue(reference_time)]


def tasks_modified_today(tasks: Iterable[Task], now: Optional[datetime] = None) -> List[Task]:
    return [task for task in tasks if is_today(task.modified, now)]


def tasks_modified_yesterday(tasks: Iterable[Task], now: Optional[datetime] = None) -> List[Task]:
    return [task for task in tasks if is_yesterday(task.modified, now)]


def tasks_modified_in_range(tasks: Iterable[Task], start: datetime, end: datetime) -> List[Task]:
    return [task for task in tasks if is_in_range(task.modified, start, end)]


def tasks_not_modified_in_range(tasks: Iterable[Task], start: datetime, end: datetime) -> List[Task]:
    # 更新日時がないタスクは「未更新」とみなす
    return [
        task
        for task in tasks
        if task.modified is None or not is_in_range(task.modified, start, end)
    ]


def comments_by_user(comments: Iterable[Comment], email: str) -> List[Comment]:
    return [comment for comment in comments if comment.owner == email]


def comments_today(comments: Iterable[Comment], now: Optional[datetime] = None) -> List[Comment]:
    return [comment for comment in comments if is_today(comment.creation, now)]


def comments_on_date(comments: Iterable[Comment], day: date) -> List[Comment]:
    return [comment for comment in comments if is_on_date(comment.creation, day)]


def comments_for_task(comments: Iterable[Comment], task_name: str) -> List[Comment]:
    return [
        comment
        for comment in comments
        if comment.references_task() and comment.reference_name == task_name
    ]


def comments_in_range(comments: Iterable[Comment], start: datetime, end: datetime) -> List[Comment]:
    return [comment for comment in comments if is_in_range(comment.creation, start, end)]


def activities_by_user(activities: Iterable[Activity], email: str) -> List[Activity]:
    return [activity for activity in activities if activity.owner == email]


def activities_today(activities: Iterable[Activity], now: Optional[datetime] = None) -> List[Activity]:
    return [activity for activity in activities if is_today(activity.creation, now)]


def activities_by_action(activities: Iterable[Activity], action: str) -> List[Activity]:
    return [activity for activity in activities if activity.action == action]


def activities_in_range(activities: Iterable[Activity], start: datetime, end: datetime) -> List[Activity]:
    return [activity for activity in activities if is_in_range(activity.creation, start, end)]


def sort_by_count(items: Iterable[T], key: str) -> List[T]:
    """指定属性の数値で降順ソート（同数は元の順序を保持）"""

    def _value(item: T) -> float:
        raw = item.get(key) if isinstance(item, dict) else getattr(item, key, None)
        try:
            return float(raw or 0)
        except (TypeError, ValueError):
            return 0.0

    return sorted(items, key=_value, reverse=True)
