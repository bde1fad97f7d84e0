from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from src.domain.entities.activity import Activity
from src.domain.entities.comment import Comment
from src.domain.entities.project import Project, Team
from src.domain.entities.task import Task
from src.domain.entities.user_profile import UserProfile
from src.utils.time_window import local_now

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_MINUTES = 5.0


@dataclass(frozen=True)
class RecordSnapshot:
    """一度の取得で揃えたレコード一式"""
    tasks: List[Task] = field(default_factory=list)
    comments: List[Comment] = field(default_factory=list)
    activities: List[Activity] = field(default_factory=list)
    projects: List[Project] = field(default_factory=list)
    teams: List[Team] = field(default_factory=list)
    user_profiles: List[UserProfile] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "tasks": len(self.tasks),
            "comments": len(self.comments),
            "activities": len(self.activities),
            "projects": len(self.projects),
            "teams": len(self.teams),
            "user_profiles": len(self.user_profiles),
        }


class RecordCache:
    """取得済みレコードのインメモリキャッシュ（有効期限付き）

    未取得または最終取得から expiry_minutes を超えたら STALE。
    store() で全コレクションを置き換えて FRESH に戻る。
    """

    def __init__(
        self,
        expiry_minutes: float = DEFAULT_EXPIRY_MINUTES,
        clock: Callable[[], datetime] = local_now,
    ):
        self._expiry_minutes = expiry_minutes
        self._clock = clock
        self._snapshot = RecordSnapshot()
        self._last_fetch_time: Optional[datetime] = None

    @property
    def expiry_minutes(self) -> float:
        return self._expiry_minutes

    @property
    def last_fetch_time(self) -> Optional[datetime]:
        return self._last_fetch_time

    @property
    def snapshot(self) -> RecordSnapshot:
        return self._snapshot

    @property
    def is_loaded(self) -> bool:
        return self._last_fetch_time is not None

    @property
    def is_stale(self) -> bool:
        if self._last_fetch_time is None:
            return True
        elapsed_minutes = (self._clock() - self._last_fetch_time).total_seconds() / 60
        return elapsed_minutes > self._expiry_minutes

    def store(self, snapshot: RecordSnapshot) -> None:
        self._snapshot = snapshot
        self._last_fetch_time = self._clock()
        logger.info(f"📦 Record cache refreshed: {snapshot.counts()}")

    def invalidate(self) -> None:
        self._snapshot = RecordSnapshot()
        self._last_fetch_time = None
        logger.info("🗑️ Record cache cleared")

    def set_expiry(self, minutes: float) -> None:
        if minutes < 0:
            raise ValueError("expiry minutes must not be negative")
        self._expiry_minutes = minutes
