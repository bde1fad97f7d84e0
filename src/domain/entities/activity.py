from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from src.domain.entities.record import merge_record, optional_str, split_known_fields
from src.utils.time_window import format_timestamp, parse_timestamp


ACTIVITY_DOCTYPE = "GP Activity"

_ACTIVITY_FIELDS = (
    "name",
    "owner",
    "action",
    "creation",
    "modified",
    "reference_name",
    "reference_doctype",
)


@dataclass
class Activity:
    """GamePlanアクティビティエンティティ"""
    name: str
    owner: Optional[str] = None
    action: Optional[str] = None
    creation: Optional[datetime] = None
    modified: Optional[datetime] = None
    reference_name: Optional[str] = None
    reference_doctype: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api_response(cls, payload: Dict[str, Any]) -> "Activity":
        named, extra = split_known_fields(payload, _ACTIVITY_FIELDS)
        return cls(
            name=str(named.get("name") or ""),
            owner=optional_str(named.get("owner")) or None,
            action=optional_str(named.get("action")),
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
                "action": self.action,
                "creation": format_timestamp(self.creation),
                "modified": format_timestamp(self.modified),
                "reference_name": self.reference_name,
                "reference_doctype": self.reference_doctype,
            },
            self.extra,
        )
