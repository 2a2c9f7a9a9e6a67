from datetime import datetime
from typing import Iterable, List, Optional

from models import ActivityAction, ActivityRecord, User, time_based_id, utcnow

DEFAULT_LIMIT = 50
DEFAULT_RECENT = 5


class ActivityLog:
    """Newest-first log of admin actions, capped at ``limit`` entries.

    Dropping the oldest entry past the cap is normal operation, not an error.
    """

    def __init__(self, records: Optional[Iterable[ActivityRecord]] = None, limit: int = DEFAULT_LIMIT):
        self.limit = limit
        self._records: List[ActivityRecord] = list(records or [])[:limit]

    def append(self, record: ActivityRecord) -> ActivityRecord:
        if record.id is None:
            record.id = time_based_id(self._records[0].id if self._records else None)
        self._records.insert(0, record)
        del self._records[self.limit:]
        return record

    def recent(self, n: int = DEFAULT_RECENT) -> List[ActivityRecord]:
        return self._records[:max(n, 0)]

    def entries(self) -> List[ActivityRecord]:
        return list(self._records)

    def copy(self) -> "ActivityLog":
        return ActivityLog(self._records, limit=self.limit)

    def __len__(self) -> int:
        return len(self._records)


def make_record(
    actor: Optional[User],
    action: ActivityAction,
    description: str,
    reservation_id: Optional[int] = None,
    timestamp: Optional[datetime] = None,
) -> ActivityRecord:
    return ActivityRecord(
        timestamp=timestamp or utcnow(),
        user=actor.name if actor else "Admin",
        user_id=actor.id if actor else None,
        action=action,
        description=description,
        reservation_id=reservation_id,
    )
