from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from src.domain.entities.record import merge_record, optional_str, split_known_fields


PROJECT_DOCTYPE = "GP Project"
TEAM_DOCTYPE = "GP Team"

_PROJECT_FIELDS = ("name", "title", "team", "status")
_TEAM_FIELDS = ("name", "title")


@dataclass
class Project:
    """GamePlanプロジェクトエンティティ（チームに所属）"""
    name: str
    title: Optional[str] = None
    team: Optional[str] = None
    status: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api_response(cls, payload: Dict[str, Any]) -> "Project":
        named, extra = split_known_fields(payload, _PROJECT_FIELDS)
        return cls(
            name=str(named.get("name") or ""),
            title=optional_str(named.get("title")),
            team=optional_str(named.get("team")) or None,
            status=optional_str(named.get("status")),
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        return merge_record(
            {"name": self.name, "title": self.title, "team": self.team, "status": self.status},
            self.extra,
        )


@dataclass
class Team:
    """GamePlanチームエンティティ"""
    name: str
    title: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api_response(cls, payload: Dict[str, Any]) -> "Team":
        named, extra = split_known_fields(payload, _TEAM_FIELDS)
        return cls(
            name=str(named.get("name") or ""),
            title=optional_str(named.get("title")),
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        return merge_record({"name": self.name, "title": self.title}, self.extra)
