import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from src.application.dto.query_dto import (
    ApiKeyDto,
    ApiKeyStatusDto,
    ConnectionTestDto,
    QueryRequestDto,
    QueryResponseDto,
)
from src.domain.entities.query import QueryExecutionResult, QueryFilters
from src.domain.exceptions import ErrorKind, GamePlanError
from src.infrastructure.storage.api_key_store import API_KEY_STORAGE_KEY
from src.presentation.api.analytics.context import AnalyticsDependencies, build_analytics_dependencies

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])


@lru_cache(maxsize=1)
def get_analytics_dependencies() -> AnalyticsDependencies:
    return build_analytics_dependencies()


def _status_for(error: Dict[str, Any]) -> int:
    kind = error.get("kind")
    if kind == ErrorKind.AUTH.value:
        return 401
    if kind == ErrorKind.VALIDATION.value:
        return 400
    return 502


def _error_response(error: GamePlanError) -> JSONResponse:
    payload = error.to_dict()
    return JSONResponse(status_code=_status_for(payload), content={"error": payload})


def _filters(team: Optional[str], project: Optional[str]) -> QueryFilters:
    return QueryFilters(team=team or None, project=project or None)


def _query_response(query_type: str, execution: QueryExecutionResult):
    if not execution.ok:
        body = QueryResponseDto(query_type=query_type, error=execution.error)
        return JSONResponse(status_code=_status_for(execution.error), content=body.model_dump(mode="json"))
    results = [result.to_dict() for result in execution.results]
    return QueryResponseDto(query_type=query_type, results=results, count=len(results))


@router.post("/queries", response_model=QueryResponseDto)
async def run_query(
    request: QueryRequestDto,
    deps: AnalyticsDependencies = Depends(get_analytics_dependencies),
):
    """従業員クエリを実行（キャッシュが新しければ再取得しない）"""
    execution = await deps.query_service.execute_query(request.query_type, request.filters.to_domain())
    return _query_response(request.query_type, execution)


@router.post("/queries/refetch", response_model=QueryResponseDto)
async def refetch_query(
    request: QueryRequestDto,
    deps: AnalyticsDependencies = Depends(get_analytics_dependencies),
):
    """キャッシュを破棄してからクエリを実行"""
    execution = await deps.query_service.refetch(request.query_type, request.filters.to_domain())
    return _query_response(request.query_type, execution)


@router.get("/performance")
async def performance_metrics(
    team: Optional[str] = None,
    project: Optional[str] = None,
    deps: AnalyticsDependencies = Depends(get_analytics_dependencies),
):
    try:
        metrics = await deps.query_service.get_performance_metrics(_filters(team, project))
    except GamePlanError as e:
        return _error_response(e)
    return {"metrics": [metric.to_dict() for metric in metrics]}


@router.get("/risks")
async def risk_indicators(
    team: Optional[str] = None,
    project: Optional[str] = None,
    deps: AnalyticsDependencies = Depends(get_analytics_dependencies),
):
    try:
        indicators = await deps.query_service.get_risk_indicators(_filters(team, project))
    except GamePlanError as e:
        return _error_response(e)
    return {"indicators": [indicator.to_dict() for indicator in indicators]}


@router.get("/teams")
async def team_metrics(deps: AnalyticsDependencies = Depends(get_analytics_dependencies)):
    try:
        teams = await deps.query_service.get_team_metrics()
    except GamePlanError as e:
        return _error_response(e)
    return {"teams": [team.to_dict() for team in teams]}


@router.get("/trends/tasks")
async def task_trends(
    days: int = Query(30, ge=0, le=365),
    team: Optional[str] = None,
    project: Optional[str] = None,
    deps: AnalyticsDependencies = Depends(get_analytics_dependencies),
):
    try:
        points = await deps.query_service.get_task_trends(days, _filters(team, project))
    except GamePlanError as e:
        return _error_response(e)
    return {"days": days, "points": [point.to_dict() for point in points]}


@router.get("/trends/activities")
async def activity_trends(
    days: int = Query(7, ge=0, le=365),
    deps: AnalyticsDependencies = Depends(get_analytics_dependencies),
):
    try:
        points = await deps.query_service.get_activity_trends(days)
    except GamePlanError as e:
        return _error_response(e)
    return {"days": days, "points": [point.to_dict() for point in points]}


@router.get("/employees/tasks")
async def employee_active_tasks(
    team: Optional[str] = None,
    project: Optional[str] = None,
    deps: AnalyticsDependencies = Depends(get_analytics_dependencies),
):
    """従業員ごとの未完了タスク一覧"""
    try:
        results = await deps.query_service.get_active_tasks(_filters(team, project))
    except GamePlanError as e:
        return _error_response(e)
    return {"employees": [result.to_dict() for result in results]}


@router.get("/api-key/status", response_model=ApiKeyStatusDto)
async def api_key_status(deps: AnalyticsDependencies = Depends(get_analytics_dependencies)):
    source = deps.api_key_source()
    return ApiKeyStatusDto(configured=source is not None, source=source)


@router.put("/api-key", response_model=ApiKeyStatusDto)
async def save_api_key(
    request: ApiKeyDto,
    deps: AnalyticsDependencies = Depends(get_analytics_dependencies),
):
    """APIキーを保存し、取得済みデータを破棄"""
    deps.api_key_store.set(API_KEY_STORAGE_KEY, request.api_key.strip())
    deps.record_cache.invalidate()
    source = deps.api_key_source()
    return ApiKeyStatusDto(configured=source is not None, source=source)


@router.delete("/api-key", response_model=ApiKeyStatusDto)
async def clear_api_key(deps: AnalyticsDependencies = Depends(get_analytics_dependencies)):
    deps.api_key_store.clear(API_KEY_STORAGE_KEY)
    deps.record_cache.invalidate()
    source = deps.api_key_source()
    return ApiKeyStatusDto(configured=source is not None, source=source)


@router.post("/api-key/test", response_model=ConnectionTestDto)
async def test_api_key(deps: AnalyticsDependencies = Depends(get_analytics_dependencies)):
    """GamePlanへの接続確認"""
    try:
        await deps.query_service.test_connection()
    except GamePlanError as e:
        logger.warning(f"⚠️ 接続テスト失敗: {e.message}")
        return ConnectionTestDto(success=False, error=e.to_dict())
    logger.info("✅ GamePlan connection test succeeded")
    return ConnectionTestDto(success=True)
