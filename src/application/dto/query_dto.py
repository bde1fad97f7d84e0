from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Optional

from src.domain.entities.query import QueryFilters, QueryType


class QueryFiltersDto(BaseModel):
    """クエリフィルタDTO"""
    team: Optional[str] = Field(None, description="チーム名（プロジェクト経由で絞り込み）")
    project: Optional[str] = Field(None, description="プロジェクト名")
    start_date: Optional[datetime] = Field(None, description="期間開始（TASKS_BY_DATE用）")
    end_date: Optional[datetime] = Field(None, description="期間終了（TASKS_BY_DATE用）")

    def to_domain(self) -> QueryFilters:
        return QueryFilters(
            team=self.team or None,
            project=self.project or None,
            start_date=self.start_date,
            end_date=self.end_date,
        )


class QueryRequestDto(BaseModel):
    """従業員クエリリクエストDTO"""
    query_type: str = Field(..., description="クエリ種別", examples=[QueryType.BACKLOG.value])
    filters: QueryFiltersDto = Field(default_factory=QueryFiltersDto, description="絞り込み条件")


class ErrorDto(BaseModel):
    """エラーDTO（シリアライズ済みのエラー情報）"""
    kind: str
    message: str
    detail: Optional[str] = None
    status_code: Optional[int] = None
    status_text: Optional[str] = None
    data: Any = None


class QueryResponseDto(BaseModel):
    """従業員クエリレスポンスDTO"""
    query_type: str
    results: List[Dict[str, Any]] = Field(default_factory=list)
    count: int = 0
    error: Optional[ErrorDto] = None


class ApiKeyDto(BaseModel):
    """APIキー保存DTO"""
    api_key: str = Field(..., min_length=1, description="GamePlan APIキー")


class ApiKeyStatusDto(BaseModel):
    """APIキー設定状況DTO"""
    configured: bool
    source: Optional[str] = Field(None, description="store（保存済み）または settings（環境変数）")


class ConnectionTestDto(BaseModel):
    """接続テスト結果DTO"""
    success: bool
    error: Optional[ErrorDto] = None
