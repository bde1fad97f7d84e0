from typing import Any, Callable, Dict, List, TypeVar
import logging

from src.domain.entities.activity import ACTIVITY_DOCTYPE, Activity
from src.domain.entities.comment import COMMENT_DOCTYPE, Comment
from src.domain.entities.project import PROJECT_DOCTYPE, TEAM_DOCTYPE, Project, Team
from src.domain.entities.task import TASK_DOCTYPE, Task
from src.domain.entities.user_profile import USER_PROFILE_DOCTYPE, UserProfile
from src.domain.repositories.gameplan_record_repository import GamePlanRecordRepositoryInterface
from src.infrastructure.gameplan.gameplan_client import GamePlanClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GamePlanRecordRepositoryImpl(GamePlanRecordRepositoryInterface):
    """GamePlan APIを使用したレコードリポジトリ実装"""

    def __init__(self, client: GamePlanClient):
        self.client = client

    async def _fetch(
        self,
        doctype: str,
        factory: Callable[[Dict[str, Any]], T],
    ) -> List[T]:
        raw_records = await self.client.fetch_all(doctype)
        records: List[T] = []
        for raw in raw_records:
            if not isinstance(raw, dict):
                logger.warning(f"⚠️ {doctype} レコード形式が不正なためスキップ: {type(raw).__name__}")
                continue
            records.append(factory(raw))
        return records

    async def fetch_tasks(self) -> List[Task]:
        return await self._fetch(TASK_DOCTYPE, Task.from_api_response)

    async def fetch_comments(self) -> List[Comment]:
        return await self._fetch(COMMENT_DOCTYPE, Comment.from_api_response)

    async def fetch_activities(self) -> List[Activity]:
        return await self._fetch(ACTIVITY_DOCTYPE, Activity.from_api_response)

    async def fetch_projects(self) -> List[Project]:
        return await self._fetch(PROJECT_DOCTYPE, Project.from_api_response)

    async def fetch_teams(self) -> List[Team]:
        return await self._fetch(TEAM_DOCTYPE, Team.from_api_response)

    async def fetch_user_profiles(self) -> List[UserProfile]:
        return await self._fetch(USER_PROFILE_DOCTYPE, UserProfile.from_api_response)

    async def test_connection(self) -> bool:
        return await self.client.check_connection()
