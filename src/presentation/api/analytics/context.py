from dataclasses import dataclass
from typing import Optional

from src.application.services.employee_query_service import EmployeeQueryApplicationService
from src.domain.services.employee_query_domain_service import EmployeeQueryDomainService
from src.domain.services.performance_domain_service import PerformanceDomainService
from src.infrastructure.cache.record_cache import RecordCache
from src.infrastructure.gameplan.gameplan_client import GamePlanClient
from src.infrastructure.repositories.gameplan_record_repository_impl import GamePlanRecordRepositoryImpl
from src.infrastructure.storage.api_key_store import ApiKeyStore
from .config import Settings


@dataclass
class AnalyticsDependencies:
    settings: Settings
    api_key_store: ApiKeyStore
    gameplan_client: GamePlanClient
    record_repository: GamePlanRecordRepositoryImpl
    record_cache: RecordCache
    query_service: EmployeeQueryApplicationService

    def api_key_source(self) -> Optional[str]:
        """保存済みキーを優先し、なければ環境変数のキー"""
        if self.api_key_store.get():
            return "store"
        if self.settings.gameplan_api_key:
            return "settings"
        return None


def build_analytics_dependencies(settings: Optional[Settings] = None) -> AnalyticsDependencies:
    settings = settings or Settings()
    api_key_store = ApiKeyStore(settings.api_key_store_path)

    def api_key_provider() -> Optional[str]:
        return api_key_store.get() or settings.gameplan_api_key or None

    gameplan_client = GamePlanClient(
        base_url=settings.gameplan_api_base_url,
        api_key_provider=api_key_provider,
        auth_header=settings.gameplan_auth_header,
        auth_prefix=settings.gameplan_auth_prefix,
        timeout_s=settings.gameplan_timeout_seconds,
        page_size=settings.gameplan_page_size,
        max_retries=settings.gameplan_max_retries,
        retry_backoff_s=settings.gameplan_retry_backoff_seconds,
    )
    record_repository = GamePlanRecordRepositoryImpl(gameplan_client)
    record_cache = RecordCache(expiry_minutes=settings.cache_expiry_minutes)

    query_service = EmployeeQueryApplicationService(
        record_repository=record_repository,
        record_cache=record_cache,
        api_key_provider=api_key_provider,
        query_domain_service=EmployeeQueryDomainService(),
        performance_domain_service=PerformanceDomainService(),
    )

    return AnalyticsDependencies(
        settings=settings,
        api_key_store=api_key_store,
        gameplan_client=gameplan_client,
        record_repository=record_repository,
        record_cache=record_cache,
        query_service=query_service,
    )
