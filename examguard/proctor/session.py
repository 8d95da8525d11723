"""
Exam Session - Mutable state of a single monitored exam

The session is owned by the monitoring core. The UI only ever receives
immutable SessionSnapshot copies, published after every mutation.
"""

import uuid
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Callable, List, Optional, Dict, Any

logger = logging.getLogger(__name__)


# Alert texts shown to the test-taker
CALIBRATION_ALERT = "Please ensure only your face is visible in the camera to begin the exam."
NO_FACE_ALERT = "No face detected"
MULTIPLE_FACES_ALERT = "Unauthorized person detected in the background. The exam has been terminated."
LOOKING_AWAY_ALERT = "You are not allowed to move your face during the exam."
WARNING_LIMIT_ALERT = "You have exceeded the allowed face movement limit. The exam is now terminated."
TERMINATED_FALLBACK_ALERT = "The exam has been terminated. You cannot proceed further."


class Phase(str, Enum):
    AWAITING_INITIAL_CHECK = "awaiting_initial_check"
    IN_PROGRESS = "in_progress"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of an ExamSession handed to the UI layer"""
    session_id: str
    phase: Phase
    time_left_seconds: int
    current_alert: Optional[str]
    warning_count: int
    max_warnings: int

    @property
    def can_submit_answers(self) -> bool:
        """Answers are frozen once the clock hits zero, whatever the phase"""
        return self.time_left_seconds > 0 and self.phase != Phase.TERMINATED

    @property
    def display_alert(self) -> Optional[str]:
        if self.phase == Phase.TERMINATED and not self.current_alert:
            return TERMINATED_FALLBACK_ALERT
        return self.current_alert

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "phase": self.phase.value,
            "time_left_seconds": self.time_left_seconds,
            "current_alert": self.display_alert,
            "warning_count": self.warning_count,
            "max_warnings": self.max_warnings,
            "can_submit_answers": self.can_submit_answers,
        }


SnapshotListener = Callable[[SessionSnapshot], None]


class ExamSession:
    """
    Single source of truth for one exam.

    Invariants:
    - TERMINATED is absorbing and implies time_left_seconds == 0
    - warning_count never decreases
    - time_left_seconds never goes below zero
    """

    def __init__(
        self,
        duration_seconds: int,
        max_warnings: int = 5,
        session_id: Optional[str] = None
    ):
        if duration_seconds < 0:
            raise ValueError("duration_seconds must be non-negative")
        if max_warnings < 1:
            raise ValueError("max_warnings must be at least 1")

        self.id = session_id or f"EXM_{uuid.uuid4().hex[:6].upper()}"
        self.max_warnings = max_warnings
        self._phase = Phase.AWAITING_INITIAL_CHECK
        self._time_left = duration_seconds
        self._warning_count = 0
        self._alert: Optional[str] = None
        self._listeners: List[SnapshotListener] = []

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def time_left_seconds(self) -> int:
        return self._time_left

    @property
    def warning_count(self) -> int:
        return self._warning_count

    @property
    def current_alert(self) -> Optional[str]:
        return self._alert

    @property
    def is_terminated(self) -> bool:
        return self._phase == Phase.TERMINATED

    # ============== Mutations ==============

    def begin(self):
        """Pass the calibration gate"""
        if self._phase != Phase.AWAITING_INITIAL_CHECK:
            return
        self._phase = Phase.IN_PROGRESS
        self._alert = None
        self._publish()

    def set_alert(self, message: Optional[str]):
        if self.is_terminated or self._alert == message:
            return
        self._alert = message
        self._publish()

    def clear_alert(self):
        self.set_alert(None)

    def add_warning(self) -> int:
        """Increment the gaze warning counter and return the new value"""
        if self.is_terminated:
            return self._warning_count
        self._warning_count += 1
        self._publish()
        return self._warning_count

    def terminate(self, alert: str):
        """Terminate for cause. Zeroes the clock before entering the terminal phase."""
        if self.is_terminated:
            return
        self._alert = alert
        self._time_left = 0
        self._phase = Phase.TERMINATED
        self._publish()

    def tick(self) -> bool:
        """
        Decrement remaining time by one second.

        Returns:
            True while time remains after the tick
        """
        if self._time_left <= 0:
            return False
        self._time_left -= 1
        self._publish()
        return self._time_left > 0

    # ============== Read model ==============

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.id,
            phase=self._phase,
            time_left_seconds=self._time_left,
            current_alert=self._alert,
            warning_count=self._warning_count,
            max_warnings=self.max_warnings,
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """
        Register a listener called with a fresh snapshot after every mutation.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self):
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception as e:
                logger.warning(f"Snapshot listener failed for session {self.id}: {e}")
