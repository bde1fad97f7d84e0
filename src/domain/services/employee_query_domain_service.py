from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence

from src.domain.entities.comment import Comment
from src.domain.entities.project import Project
from src.domain.entities.query import (
    EmployeeIdentity,
    EmployeeQueryResult,
    EmployeeTaskBreakdown,
    QueryFilters,
)
from src.domain.entities.task import Task
from src.domain.services.record_filters import (
    apply_filters,
    backlog,
    comments_by_user,
    comments_today,
    group_by_employee,
    tasks_modified_today,
    tasks_modified_yesterday,
    tasks_not_modified_in_range,
)
from src.utils.rounding import round2
from src.utils.time_window import reference_now


def _latest_modified(tasks: Iterable[Task]) -> Optional[datetime]:
    modified = [task.modified for task in tasks if task.modified is not None]
    return max(modified) if modified else None


def _first_modified(tasks: Sequence[Task]) -> Optional[datetime]:
    return tasks[0].modified if tasks else None


class EmployeeQueryDomainService:
    """従業員クエリ（未更新・未コメント・バックログ・完了率）のドメインロジック

    取得済みのレコードだけを受け取り、自分では取得しない。
    """

    def not_updated_today(
        self,
        filters: Optional[QueryFilters],
        tasks: Sequence[Task],
        projects: Sequence[Project] = (),
        reference_time: Optional[datetime] = None,
    ) -> List[EmployeeQueryResult]:
        """今日タスクを一件も更新していない従業員"""
        now = reference_now(reference_time)
        return self._not_updated_on(
            filters,
            tasks,
            projects,
            lambda employee_tasks: tasks_modified_today(employee_tasks, now),
        )

    def not_updated_yesterday(
        self,
        filters: Optional[QueryFilters],
        tasks: Sequence[Task],
        projects: Sequence[Project] = (),
        reference_time: Optional[datetime] = None,
    ) -> List[EmployeeQueryResult]:
        """昨日タスクを一件も更新していない従業員"""
        now = reference_now(reference_time)
        return self._not_updated_on(
            filters,
            tasks,
            projects,
            lambda employee_tasks: tasks_modified_yesterday(employee_tasks, now),
        )

    def _not_updated_on(
        self,
        filters: Optional[QueryFilters],
        tasks: Sequence[Task],
        projects: Sequence[Project],
        modified_in_window: Callable[[List[Task]], List[Task]],
    ) -> List[EmployeeQueryResult]:
        filtered = apply_filters(tasks, filters, projects)
        results: List[EmployeeQueryResult] = []
        for email, employee_tasks in group_by_employee(filtered).items():
            if modified_in_window(employee_tasks):
                continue
            results.append(
                EmployeeQueryResult(
                    employee=EmployeeIdentity(email=email),
                    task_count=len(employee_tasks),
                    last_update_date=_first_modified(employee_tasks),
                    latest_update_date=_latest_modified(employee_tasks),
                )
            )
        return results

    def not_commented_today(
        self,
        filters: Optional[QueryFilters],
        tasks: Sequence[Task],
        comments: Sequence[Comment],
        projects: Sequence[Project] = (),
        reference_time: Optional[datetime] = None,
    ) -> List[EmployeeQueryResult]:
        """今日コメントしていない従業員と、本人コメントのないタスク"""
        now = reference_now(reference_time)
        filtered = apply_filters(tasks, filters, projects)

        commented_today = {comment.owner for comment in comments_today(comments, now) if comment.owner}

        # タスク名 → コメントした従業員
        commenters_by_task: dict[str, set[str]] = {}
        for comment in comments:
            if comment.references_task() and comment.owner:
                commenters_by_task.setdefault(comment.reference_name, set()).add(comment.owner)

        results: List[EmployeeQueryResult] = []
        for email, employee_tasks in group_by_employee(filtered).items():
            if email in commented_today:
                continue

            dated_comments = [c for c in comments_by_user(comments, email) if c.creation is not None]
            last_comment = max(dated_comments, key=lambda c: c.creation, default=None)

            uncommented = [
                task
                for task in employee_tasks
                if email not in commenters_by_task.get(task.name, set())
            ]
            results.append(
                EmployeeQueryResult(
                    employee=EmployeeIdentity(email=email),
                    task_count=len(employee_tasks),
                    last_comment_date=last_comment.creation if last_comment else None,
                    tasks=uncommented,
                )
            )
        return results

    def backlog_by_employee(
        self,
        filters: Optional[QueryFilters],
        tasks: Sequence[Task],
        projects: Sequence[Project] = (),
        reference_time: Optional[datetime] = None,
    ) -> List[EmployeeQueryResult]:
        """納期超過タスクを従業員ごとに集計（件数の多い順）"""
        filtered = apply_filters(tasks, filters, projects)
        overdue_by_employee = group_by_employee(backlog(filtered, reference_time))
        total_by_employee = group_by_employee(filtered)

        results = [
            EmployeeQueryResult(
                employee=EmployeeIdentity(email=email),
                backlog_count=len(overdue),
                task_count=len(total_by_employee.get(email, [])),
                tasks=overdue,
                metrics=EmployeeTaskBreakdown(overdue_tasks=len(overdue)),
            )
            for email, overdue in overdue_by_employee.items()
        ]
        results.sort(key=lambda result: result.backlog_count or 0, reverse=True)
        return results

    def completion_rate_by_employee(
        self,
        filters: Optional[QueryFilters],
        tasks: Sequence[Task],
        projects: Sequence[Project] = (),
    ) -> List[EmployeeQueryResult]:
        """従業員ごとの完了率（低い順）"""
        filtered = apply_filters(tasks, filters, projects)
        results: List[EmployeeQueryResult] = []
        for email, employee_tasks in group_by_employee(filtered).items():
            total = len(employee_tasks)
            completed = sum(1 for task in employee_tasks if task.is_terminal())
            in_progress = sum(1 for task in employee_tasks if task.is_in_progress())
            rate = (completed / total) * 100 if total > 0 else 0.0
            results.append(
                EmployeeQueryResult(
                    employee=EmployeeIdentity(email=email),
                    task_count=total,
                    completion_rate=round2(rate),
                    metrics=EmployeeTaskBreakdown(
                        total_tasks=total,
                        completed_tasks=completed,
                        in_progress_tasks=in_progress,
                    ),
                )
            )
        results.sort(key=lambda result: result.completion_rate or 0)
        return results

    def tasks_not_updated_in_range(
        self,
        start: datetime,
        end: datetime,
        filters: Optional[QueryFilters],
        tasks: Sequence[Task],
        projects: Sequence[Project] = (),
    ) -> List[EmployeeQueryResult]:
        """期間内に更新されていないタスクを従業員ごとに集計"""
        filtered = apply_filters(tasks, filters, projects)
        not_updated = tasks_not_modified_in_range(filtered, start, end)
        return [
            EmployeeQueryResult(
                employee=EmployeeIdentity(email=email),
                task_count=len(employee_tasks),
                tasks=employee_tasks,
                last_update_date=_first_modified(employee_tasks),
                latest_update_date=_latest_modified(employee_tasks),
            )
            for email, employee_tasks in group_by_employee(not_updated).items()
        ]

    def active_tasks_by_employee(
        self,
        filters: Optional[QueryFilters],
        tasks: Sequence[Task],
        projects: Sequence[Project] = (),
    ) -> List[EmployeeQueryResult]:
        """未完了タスクを従業員ごとに一覧化（件数の多い順）"""
        filtered = apply_filters(tasks, filters, projects)
        active = [task for task in filtered if task.is_active()]
        results = [
            EmployeeQueryResult(
                employee=EmployeeIdentity(email=email),
                task_count=len(employee_tasks),
                tasks=employee_tasks,
                metrics=EmployeeTaskBreakdown(
                    total_tasks=len(employee_tasks),
                    in_progress_tasks=sum(1 for task in employee_tasks if task.is_in_progress()),
                ),
            )
            for email, employee_tasks in group_by_employee(active).items()
        ]
        results.sort(key=lambda result: result.task_count or 0, reverse=True)
        return results
