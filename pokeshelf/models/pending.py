import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pokeshelf.models.collection import CollectionEntry


class OperationKind(str, Enum):
    """Kind of queued collection mutation."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class PendingOperation:
    """
    A collection mutation the remote store has not confirmed yet.

    The payload is the entry as it was when the mutation was attempted;
    creates carry the entry's temporary id.

    Attributes:
        kind: create, update or delete
        payload: Entry snapshot at the time of the attempt
        timestamp: Queueing time (epoch seconds)
        id: Queue item id, unique within the queue
    """

    kind: OperationKind
    payload: CollectionEntry
    timestamp: float
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def entry_id(self) -> str:
        return self.payload.id

    @property
    def profile_id(self) -> str:
        return self.payload.profile_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "payload": self.payload.to_dict(),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PendingOperation":
        return cls(
            id=str(data["id"]),
            kind=OperationKind(data["kind"]),
            payload=CollectionEntry.from_dict(data["payload"]),
            timestamp=float(data["timestamp"]),
        )
