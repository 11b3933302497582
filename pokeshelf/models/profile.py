from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class Profile:
    """
    A person using the app.

    Profiles are created by an explicit user action and never mutated
    afterwards. There is no authentication: picking a profile is enough.

    Attributes:
        id: Server-assigned identifier (UUID string)
        name: Display name
        created_at: Creation timestamp
        avatar: Optional avatar reference (emoji, URL or asset name)
    """

    id: str
    name: str
    created_at: datetime
    avatar: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
            "avatar": self.avatar,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Profile":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            avatar=data.get("avatar") or None,
        )
