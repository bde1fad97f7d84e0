from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Union

from src.domain.entities.performance import PerformanceMetrics, RiskIndicator, TeamMetrics, TrendPoint
from src.domain.entities.query import (
    EmployeeIdentity,
    EmployeeQueryResult,
    QueryExecutionResult,
    QueryFilters,
    QueryType,
)
from src.domain.entities.user_profile import UserProfile
from src.domain.exceptions import (
    API_KEY_REQUIRED_MESSAGE,
    GamePlanAuthError,
    GamePlanError,
    QueryValidationError,
    classify_http_error,
    is_auth_error,
)
from src.domain.repositories.gameplan_record_repository import GamePlanRecordRepositoryInterface
from src.domain.services.employee_query_domain_service import EmployeeQueryDomainService
from src.domain.services.performance_domain_service import PerformanceDomainService
from src.domain.services.record_filters import apply_filters
from src.infrastructure.cache.record_cache import RecordCache, RecordSnapshot
from src.utils.concurrency import settle_all

logger = logging.getLogger(__name__)

# ユーザープロフィール以外の取得失敗は空コレクションで代替する
_PRIMARY_COLLECTIONS = ("tasks", "comments", "activities", "projects", "teams")


def build_profile_index(profiles: Sequence[UserProfile]) -> Dict[str, UserProfile]:
    """メール（小文字）→ プロフィールの索引"""
    index: Dict[str, UserProfile] = {}
    for profile in profiles:
        key = profile.lookup_key()
        if key:
            index[key] = profile
    return index


def enrich_identity(identity: EmployeeIdentity, profiles: Dict[str, UserProfile]) -> EmployeeIdentity:
    """メールアドレスに表示名を付与（該当プロフィールがなければそのまま）"""
    email = identity.email
    if not email:
        return identity
    profile = profiles.get(email.lower())
    if profile is None:
        return identity
    return EmployeeIdentity(
        email=email,
        name=profile.name or email,
        full_name=profile.full_name or profile.name or email,
    )


class EmployeeQueryApplicationService:
    """従業員クエリのアプリケーションサービス

    キャッシュ確認 → 必要なら6コレクションを並行取得 → ドメインサービスで集計
    → プロフィールで表示名を付与、までを1回の問い合わせごとに行う。
    """

    def __init__(
        self,
        record_repository: GamePlanRecordRepositoryInterface,
        record_cache: RecordCache,
        api_key_provider: Callable[[], Optional[str]],
        query_domain_service: Optional[EmployeeQueryDomainService] = None,
        performance_domain_service: Optional[PerformanceDomainService] = None,
    ):
        self.record_repository = record_repository
        self.record_cache = record_cache
        self.api_key_provider = api_key_provider
        self.query_domain_service = query_domain_service or EmployeeQueryDomainService()
        self.performance_domain_service = performance_domain_service or PerformanceDomainService()
        self._refresh_lock = asyncio.Lock()

    def _require_api_key(self) -> None:
        if not self.api_key_provider():
            raise GamePlanAuthError(API_KEY_REQUIRED_MESSAGE, 401, "Unauthorized")

    async def ensure_records(self) -> RecordSnapshot:
        """キャッシュが古いかタスクが空なら全コレクションを取得し直す"""
        self._require_api_key()
        async with self._refresh_lock:
            # タスク取得に失敗した空のスナップショットは次の問い合わせで再取得する
            if not self.record_cache.is_stale and self.record_cache.snapshot.tasks:
                return self.record_cache.snapshot

            logger.info("🔄 Fetching GamePlan collections")
            outcomes = await settle_all(
                {
                    "tasks": self.record_repository.fetch_tasks(),
                    "comments": self.record_repository.fetch_comments(),
                    "activities": self.record_repository.fetch_activities(),
                    "projects": self.record_repository.fetch_projects(),
                    "teams": self.record_repository.fetch_teams(),
                    "user_profiles": self.record_repository.fetch_user_profiles(),
                }
            )

            for name, outcome in outcomes.items():
                if outcome.error is not None and is_auth_error(outcome.error):
                    logger.error(f"❌ Authentication failed while fetching {name}")
                    raise outcome.error

            collections: Dict[str, list] = {}
            for name, outcome in outcomes.items():
                if outcome.ok:
                    collections[name] = outcome.value or []
                    continue
                error = classify_http_error(outcome.error)
                if name in _PRIMARY_COLLECTIONS:
                    logger.warning(f"⚠️ Failed to fetch {name}, continuing with empty data: {error.message}")
                else:
                    logger.warning(f"⚠️ Failed to fetch user profiles: {error.message}")
                collections[name] = []

            self.record_cache.store(RecordSnapshot(**collections))
            return self.record_cache.snapshot

    @staticmethod
    def parse_query_type(query_type: Union[QueryType, str]) -> QueryType:
        if isinstance(query_type, QueryType):
            return query_type
        try:
            return QueryType(query_type)
        except ValueError:
            raise QueryValidationError(f"Unknown query type: {query_type}", payload={"query_type": query_type})

    async def run_query(
        self,
        query_type: Union[QueryType, str],
        filters: Optional[QueryFilters] = None,
        reference_time: Optional[datetime] = None,
    ) -> List[EmployeeQueryResult]:
        """クエリ種別に応じて集計し、表示名を付与した結果を返す"""
        resolved_type = self.parse_query_type(query_type)
        filters = filters or QueryFilters()
        snapshot = await self.ensure_records()

        results = self._dispatch(resolved_type, filters, snapshot, reference_time)
        profiles = build_profile_index(snapshot.user_profiles)
        return [result.with_employee(enrich_identity(result.employee, profiles)) for result in results]

    def _dispatch(
        self,
        query_type: QueryType,
        filters: QueryFilters,
        snapshot: RecordSnapshot,
        reference_time: Optional[datetime],
    ) -> List[EmployeeQueryResult]:
        service = self.query_domain_service
        tasks = snapshot.tasks
        projects = snapshot.projects

        if query_type is QueryType.NOT_UPDATED_TODAY:
            return service.not_updated_today(filters, tasks, projects, reference_time)
        if query_type is QueryType.NOT_UPDATED_YESTERDAY:
            return service.not_updated_yesterday(filters, tasks, projects, reference_time)
        if query_type is QueryType.NOT_COMMENTED_TODAY:
            return service.not_commented_today(filters, tasks, snapshot.comments, projects, reference_time)
        if query_type is QueryType.BACKLOG:
            return service.backlog_by_employee(filters, tasks, projects, reference_time)
        if query_type is QueryType.COMPLETION_RATE:
            return service.completion_rate_by_employee(filters, tasks, projects)
        if query_type is QueryType.TASKS_BY_DATE:
            if not filters.has_date_range():
                logger.info("ℹ️ TASKS_BY_DATE requires both start_date and end_date; returning no results")
                return []
            return service.tasks_not_updated_in_range(
                filters.start_date, filters.end_date, filters, tasks, projects
            )
        raise QueryValidationError(f"Unknown query type: {query_type}")

    async def execute_query(
        self,
        query_type: Union[QueryType, str],
        filters: Optional[QueryFilters] = None,
        reference_time: Optional[datetime] = None,
    ) -> QueryExecutionResult:
        """run_query のエラーをシリアライズ可能な辞書に変換して返す"""
        try:
            results = await self.run_query(query_type, filters, reference_time)
        except GamePlanError as e:
            logger.error(f"❌ Query execution failed: {e.message}")
            return QueryExecutionResult(error=e.to_dict())
        except Exception as e:
            logger.exception("❌ Query execution failed with unexpected error")
            return QueryExecutionResult(error=classify_http_error(e).to_dict())
        return QueryExecutionResult(results=results)

    async def refetch(
        self,
        query_type: Union[QueryType, str],
        filters: Optional[QueryFilters] = None,
        reference_time: Optional[datetime] = None,
    ) -> QueryExecutionResult:
        """キャッシュを破棄して再取得・再実行"""
        self.record_cache.invalidate()
        return await self.execute_query(query_type, filters, reference_time)

    async def _filtered_snapshot(self, filters: Optional[QueryFilters]) -> RecordSnapshot:
        snapshot = await self.ensure_records()
        if filters is None or not (filters.team or filters.project):
            return snapshot
        return RecordSnapshot(
            tasks=apply_filters(snapshot.tasks, filters, snapshot.projects),
            comments=snapshot.comments,
            activities=snapshot.activities,
            projects=snapshot.projects,
            teams=snapshot.teams,
            user_profiles=snapshot.user_profiles,
        )

    async def get_performance_metrics(
        self,
        filters: Optional[QueryFilters] = None,
        reference_time: Optional[datetime] = None,
    ) -> List[PerformanceMetrics]:
        snapshot = await self._filtered_snapshot(filters)
        metrics = self.performance_domain_service.calculate_performance_metrics(
            snapshot.tasks, snapshot.comments, snapshot.activities, reference_time
        )
        profiles = build_profile_index(snapshot.user_profiles)
        return [metric.with_employee(enrich_identity(metric.employee, profiles)) for metric in metrics]

    async def get_risk_indicators(
        self,
        filters: Optional[QueryFilters] = None,
        reference_time: Optional[datetime] = None,
    ) -> List[RiskIndicator]:
        snapshot = await self._filtered_snapshot(filters)
        indicators = self.performance_domain_service.calculate_risk_indicators(
            snapshot.tasks, snapshot.activities, reference_time
        )
        profiles = build_profile_index(snapshot.user_profiles)
        for indicator in indicators:
            for employee in indicator.employees:
                profile = profiles.get(employee.email.lower())
                if profile is not None:
                    employee.name = profile.display_name()
        return indicators

    async def get_team_metrics(self, reference_time: Optional[datetime] = None) -> List[TeamMetrics]:
        snapshot = await self.ensure_records()
        team_metrics = self.performance_domain_service.calculate_team_metrics(
            snapshot.tasks,
            snapshot.projects,
            snapshot.teams,
            snapshot.comments,
            snapshot.activities,
            reference_time,
        )
        profiles = build_profile_index(snapshot.user_profiles)
        for team in team_metrics:
            for performer in team.top_performers:
                profile = profiles.get(performer.email.lower())
                if profile is not None:
                    performer.name = profile.display_name()
        return team_metrics

    async def get_task_trends(
        self,
        days: int = 30,
        filters: Optional[QueryFilters] = None,
        reference_time: Optional[datetime] = None,
    ) -> List[TrendPoint]:
        snapshot = await self._filtered_snapshot(filters)
        return self.performance_domain_service.calculate_task_trends(snapshot.tasks, days, reference_time)

    async def get_activity_trends(
        self,
        days: int = 7,
        reference_time: Optional[datetime] = None,
    ) -> List[TrendPoint]:
        snapshot = await self.ensure_records()
        return self.performance_domain_service.calculate_activity_trends(
            snapshot.activities, days, reference_time
        )

    async def get_active_tasks(self, filters: Optional[QueryFilters] = None) -> List[EmployeeQueryResult]:
        snapshot = await self.ensure_records()
        results = self.query_domain_service.active_tasks_by_employee(filters, snapshot.tasks, snapshot.projects)
        profiles = build_profile_index(snapshot.user_profiles)
        return [result.with_employee(enrich_identity(result.employee, profiles)) for result in results]

    async def test_connection(self) -> bool:
        self._require_api_key()
        return await self.record_repository.test_connection()
