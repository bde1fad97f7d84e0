from abc import ABC, abstractmethod
from typing import List

from src.domain.entities.activity import Activity
from src.domain.entities.comment import Comment
from src.domain.entities.project import Project, Team
from src.domain.entities.task import Task
from src.domain.entities.user_profile import UserProfile


class GamePlanRecordRepositoryInterface(ABC):
    """GamePlanレコード取得リポジトリのインターフェース"""

    @abstractmethod
    async def fetch_tasks(self) -> List[Task]:
        """全タスクを取得"""
        pass

    @abstractmethod
    async def fetch_comments(self) -> List[Comment]:
        """全コメントを取得"""
        pass

    @abstractmethod
    async def fetch_activities(self) -> List[Activity]:
        """全アクティビティを取得"""
        pass

    @abstractmethod
    async def fetch_projects(self) -> List[Project]:
        """全プロジェクトを取得"""
        pass

    @abstractmethod
    async def fetch_teams(self) -> List[Team]:
        """全チームを取得"""
        pass

    @abstractmethod
    async def fetch_user_profiles(self) -> List[UserProfile]:
        """全ユーザープロフィールを取得"""
        pass

    @abstractmethod
    async def test_connection(self) -> bool:
        """APIへの接続確認"""
        pass
