from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from src.domain.entities.record import merge_record, optional_str, split_known_fields
from src.domain.entities.task import TASK_DOCTYPE
from src.utils.time_window import format_timestamp, parse_timestamp


COMMENT_DOCTYPE = "GP Comment"

_COMMENT_FIELDS = (
    "name",
    "owner",
    "content",
    "creation",
    "modified",
    "reference_name",
    "reference_doctype",
)


@dataclass
class Comment:
    """GamePlanコメントエンティティ"""
    name: str
    owner: Optional[str] = None
    content: Optional[str] = None
    creation: Optional[datetime] = None
    modified: Optional[datetime] = None
    reference_name: Optional[str] = None
    reference_doctype: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def references_task(self) -> bool:
        """タスクに対するコメントかどうか"""
        return bool(self.reference_name) and self.reference_doctype == TASK_DOCTYPE

    @classmethod
    def from_api_response(cls, payload: Dict[str, Any]) -> "Comment":
        named, extra = split_known_fields(payload, _COMMENT_FIELDS)
        return cls(
            name=str(named.get("name") or ""),
            owner=optional_str(named.get("owner")) or None,
            content=optional_str(named.get("content")),
            creation=parse_timestamp(named.get("creation")),
            modified=parse_timestamp(named.get("modified")),
            reference_name=optional_str(named.get("reference_name")),
            reference_doctype=optional_str(named.get("reference_doctype")),
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        return merge_record(
            {
                "name": self.name,
                "owner": self.owner,
                "content": self.content,
                "creation": format_timestamp(self.creation),
                "modified": format_timestamp(self.modified),
                "reference_name": self.reference_name,
                "reference_doctype": self.reference_doctype,
            },
            self.extra,
        )
