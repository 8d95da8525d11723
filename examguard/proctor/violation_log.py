"""
Violation Logger - Append-only record of integrity violations

Each append is mirrored to a LogStore as the full JSON-serialized log.
The in-memory list stays authoritative when the store write fails.
"""

import json
import logging
from enum import Enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Any, List, Optional, Sequence

from .log_store import LogStore
from .utils.logging import log_violation_recorded

logger = logging.getLogger(__name__)

SnapshotProvider = Callable[[], Optional[str]]


class ViolationKind(str, Enum):
    NO_FACE = "no_face"
    MULTIPLE_FACES_TERMINATE = "multiple_faces_terminate"
    LOOKING_AWAY = "looking_away"


def now_iso() -> str:
    """UTC timestamp in ISO-8601 with millisecond precision and Z suffix"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class ViolationRecord:
    timestamp: str
    kind: ViolationKind
    snapshot: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"time": self.timestamp, "type": self.kind.value, "image": self.snapshot}


class ViolationLogger:
    """
    Owns the violation log of one session.

    Records are never mutated or removed; insertion order is chronological.
    """

    def __init__(self, store: LogStore, store_key: str = "examLogs", session_id: str = "-"):
        """
        Args:
            store: Persistent mirror of the log
            store_key: Key the serialized log is written under
            session_id: Used for log messages only
        """
        self.store = store
        self.store_key = store_key
        self.session_id = session_id
        self._records: List[ViolationRecord] = []

    @property
    def records(self) -> Sequence[ViolationRecord]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def count(self, kind: ViolationKind) -> int:
        return sum(1 for r in self._records if r.kind == kind)

    def record(
        self,
        kind: ViolationKind,
        timestamp: Optional[str] = None,
        snapshot_provider: Optional[SnapshotProvider] = None
    ) -> ViolationRecord:
        """
        Append a violation and mirror the full log to the store.

        Args:
            kind: Violation kind
            timestamp: ISO-8601 time of the violation (now if omitted)
            snapshot_provider: Returns an encoded still, or None if not ready

        Returns:
            The appended record
        """
        snapshot = None
        if snapshot_provider is not None:
            try:
                snapshot = snapshot_provider()
            except Exception as e:
                logger.warning(f"Snapshot capture failed for {kind.value}: {e}")

        record = ViolationRecord(
            timestamp=timestamp or now_iso(),
            kind=ViolationKind(kind),
            snapshot=snapshot
        )
        self._records.append(record)
        log_violation_recorded(self.session_id, record.kind.value, snapshot is not None)

        self._persist()
        return record

    def to_list(self) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self._records]

    def _persist(self):
        try:
            saved = self.store.put(self.store_key, json.dumps(self.to_list()))
        except Exception as e:
            logger.warning(f"Failed to save violation log '{self.store_key}': {e}")
            return
        if not saved:
            logger.warning(
                f"Failed to save violation log '{self.store_key}' "
                f"({len(self._records)} records kept in memory)"
            )
