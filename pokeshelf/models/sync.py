from dataclasses import dataclass, field
from enum import Enum

from pokeshelf.models.pending import PendingOperation


class SyncStatus(str, Enum):
    """Coarse sync state broadcast to listeners."""

    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"
    OFFLINE = "offline"


@dataclass
class ReplayReport:
    """
    Outcome of one pass over the pending-operation queue.

    Attributes:
        applied: Operations confirmed by the remote store and removed
        rejected: Operations the store refused for good; removed and rolled back
        failed: Operations that hit a retryable error; still queued
        skipped: Operations not attempted because an earlier operation on
            the same entry is still queued, or because the device is offline
    """

    applied: list[PendingOperation] = field(default_factory=list)
    rejected: list[PendingOperation] = field(default_factory=list)
    failed: list[PendingOperation] = field(default_factory=list)
    skipped: list[PendingOperation] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        """Number of operations still queued after the pass."""
        return len(self.failed) + len(self.skipped)

    @property
    def fully_synced(self) -> bool:
        return self.remaining == 0

    def summary(self) -> dict[str, int]:
        return {
            "applied": len(self.applied),
            "rejected": len(self.rejected),
            "failed": len(self.failed),
            "skipped": len(self.skipped),
        }
