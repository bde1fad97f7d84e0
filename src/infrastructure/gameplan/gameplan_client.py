from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import quote

import httpx

from src.domain.entities.project import TEAM_DOCTYPE
from src.domain.exceptions import (
    API_KEY_REQUIRED_MESSAGE,
    GamePlanAuthError,
    GamePlanError,
    GamePlanTransientError,
    classify_http_error,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000
DEFAULT_MAX_RETRIES = 3


@dataclass
class GamePlanClient:
    """GamePlan（Frappe）リソースAPIの非同期クライアント"""

    base_url: str
    api_key_provider: Callable[[], Optional[str]]
    auth_header: str = "Authorization"
    auth_prefix: str = "token"
    timeout_s: float = 30.0
    page_size: int = DEFAULT_PAGE_SIZE
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_backoff_s: float = 1.0
    transport: Optional[httpx.AsyncBaseTransport] = None
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)

    def _headers(self) -> Dict[str, str]:
        api_key = self.api_key_provider()
        if not api_key:
            raise GamePlanAuthError(API_KEY_REQUIRED_MESSAGE, 401, "Unauthorized")
        value = api_key if not self.auth_prefix else f"{self.auth_prefix} {api_key}"
        return {
            self.auth_header: value,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        base_url = self.base_url if self.base_url.endswith("/") else f"{self.base_url}/"
        return httpx.AsyncClient(
            base_url=base_url,
            headers=self._headers(),
            timeout=self.timeout_s,
            transport=self.transport,
        )

    @staticmethod
    def _params(
        fields: Optional[List[str]],
        filters: Optional[Dict[str, Any]],
        limit_start: Optional[int],
        limit_page_length: Optional[int],
    ) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if fields:
            params["fields"] = json.dumps(fields)
        if limit_start is not None:
            params["limit_start"] = str(limit_start)
        if limit_page_length is not None:
            params["limit_page_length"] = str(limit_page_length)
        # フィルタはキーごとにクエリパラメータとして渡す
        for key, value in (filters or {}).items():
            params[key] = value if isinstance(value, str) else json.dumps(value)
        return params

    @staticmethod
    def _extract_records(payload: Any) -> List[Dict[str, Any]]:
        # 配列 / { data: [...] } の両形式に対応
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict) and "data" in payload:
            data = payload.get("data")
            return data if isinstance(data, list) else []
        return []

    async def _get_page(
        self,
        client: httpx.AsyncClient,
        collection: str,
        params: Dict[str, str],
    ) -> List[Dict[str, Any]]:
        consecutive_failures = 0
        while True:
            try:
                response = await client.get(quote(collection), params=params)
                response.raise_for_status()
                return self._extract_records(response.json())
            except (httpx.HTTPError, ValueError) as e:
                error = classify_http_error(e)
                if not isinstance(error, GamePlanTransientError):
                    logger.error(f"❌ GamePlan API error for {collection}: {error.message}")
                    raise error from e
                consecutive_failures += 1
                if consecutive_failures >= self.max_retries:
                    logger.error(
                        f"❌ GamePlan API gave up on {collection} after {consecutive_failures} failures: {error.message}"
                    )
                    raise error from e
                logger.warning(
                    f"⚠️ GamePlan API transient error for {collection} "
                    f"({consecutive_failures}/{self.max_retries}): {error.message}"
                )
                await self.sleep(self.retry_backoff_s)

    async def fetch_page(
        self,
        collection: str,
        fields: Optional[List[str]] = None,
        filters: Optional[Dict[str, Any]] = None,
        limit_start: int = 0,
        limit_page_length: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """1ページ分のレコードを取得"""
        params = self._params(fields or ["*"], filters, limit_start, limit_page_length or self.page_size)
        async with self._client() as client:
            return await self._get_page(client, collection, params)

    async def fetch_all(
        self,
        collection: str,
        fields: Optional[List[str]] = None,
        filters: Optional[Dict[str, Any]] = None,
        page_size: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """全ページを順番に取得して連結"""
        size = page_size or self.page_size
        records: List[Dict[str, Any]] = []
        limit_start = 0

        async with self._client() as client:
            while True:
                params = self._params(fields or ["*"], filters, limit_start, size)
                page = await self._get_page(client, collection, params)
                if not page:
                    break
                records.extend(page)
                if len(page) < size:
                    break
                limit_start += size

        logger.info(f"📊 {collection} loaded from GamePlan: {len(records)} 件")
        return records

    async def fetch(
        self,
        collection: str,
        fields: Optional[List[str]] = None,
        filters: Optional[Dict[str, Any]] = None,
        limit_start: Optional[int] = None,
        limit_page_length: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """オフセット指定なしなら全件、指定ありならそのページだけ取得"""
        if limit_start is None:
            return await self.fetch_all(collection, fields, filters, limit_page_length)
        return await self.fetch_page(collection, fields, filters, limit_start, limit_page_length)

    async def check_connection(self) -> bool:
        """GP Team を1件取得して接続を確認"""
        try:
            await self.fetch_page(TEAM_DOCTYPE, limit_page_length=1)
        except GamePlanError as e:
            logger.warning(f"⚠️ GamePlan connection test failed: {e.message}")
            raise
        return True
