from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from src.domain.entities.record import merge_record, optional_str, split_known_fields


USER_PROFILE_DOCTYPE = "GP User Profile"

_PROFILE_FIELDS = ("name", "email", "full_name")


@dataclass
class UserProfile:
    """GamePlanユーザープロフィールエンティティ"""
    name: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def display_name(self) -> str:
        """表示用名前"""
        return self.name or self.email or ""

    def lookup_key(self) -> Optional[str]:
        """メール照合用のキー（小文字）"""
        if not self.email:
            return None
        return self.email.lower()

    @classmethod
    def from_api_response(cls, payload: Dict[str, Any]) -> "UserProfile":
        named, extra = split_known_fields(payload, _PROFILE_FIELDS)
        return cls(
            name=str(named.get("name") or ""),
            email=optional_str(named.get("email")) or None,
            full_name=optional_str(named.get("full_name")) or None,
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        return merge_record(
            {"name": self.name, "email": self.email, "full_name": self.full_name},
            self.extra,
        )
