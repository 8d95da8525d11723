"""
Integrity State Machine - Turns detection results into exam state changes

AWAITING_INITIAL_CHECK --1 face--> IN_PROGRESS --2+ faces--------> TERMINATED
                                               --warning limit---> TERMINATED

Results are handled one at a time in delivery order. TERMINATED absorbs
every later result, including late deliveries of in-flight detections.
"""

import logging
from typing import Optional

from .session import (
    ExamSession,
    Phase,
    CALIBRATION_ALERT,
    NO_FACE_ALERT,
    MULTIPLE_FACES_ALERT,
    LOOKING_AWAY_ALERT,
    WARNING_LIMIT_ALERT,
)
from .violation_log import ViolationLogger, ViolationKind, SnapshotProvider
from .detectors.landmarks import DetectionResult
from .detectors.gaze_heuristic import is_looking_away, gaze_deviation, DEFAULT_DEVIATION_THRESHOLD
from .utils.logging import log_session_terminated

logger = logging.getLogger(__name__)


class IntegrityStateMachine:
    """Applies the proctoring rules to an ExamSession"""

    def __init__(
        self,
        session: ExamSession,
        violations: ViolationLogger,
        snapshot_provider: Optional[SnapshotProvider] = None,
        gaze_threshold: float = DEFAULT_DEVIATION_THRESHOLD
    ):
        self.session = session
        self.violations = violations
        self.snapshot_provider = snapshot_provider
        self.gaze_threshold = gaze_threshold

    def handle(self, result: DetectionResult):
        """Process one detection result"""
        phase = self.session.phase

        if phase == Phase.TERMINATED:
            logger.debug(f"Session {self.session.id} terminated; dropping detection result")
            return

        if phase == Phase.AWAITING_INITIAL_CHECK:
            self._handle_initial_check(result)
        else:
            self._handle_in_progress(result)

    def _handle_initial_check(self, result: DetectionResult):
        if result.face_count == 1:
            self.session.begin()
            logger.info(f"Session {self.session.id} passed calibration; exam in progress")
        else:
            # Calibration gates the exam but is not monitored for compliance
            self.session.set_alert(CALIBRATION_ALERT)

    def _handle_in_progress(self, result: DetectionResult):
        faces = result.face_count

        if faces == 0:
            self.session.set_alert(NO_FACE_ALERT)
            self._log(ViolationKind.NO_FACE)
            return

        if faces > 1:
            self.session.set_alert(MULTIPLE_FACES_ALERT)
            self._log(ViolationKind.MULTIPLE_FACES_TERMINATE)
            self._terminate(MULTIPLE_FACES_ALERT, reason=f"{faces}_faces")
            return

        landmarks = result.faces[0].landmarks
        if is_looking_away(landmarks, self.gaze_threshold):
            warnings = self.session.add_warning()
            self.session.set_alert(LOOKING_AWAY_ALERT)
            self._log(ViolationKind.LOOKING_AWAY)
            deviation = gaze_deviation(landmarks)
            logger.info(
                f"Session {self.session.id} gaze warning {warnings}/{self.session.max_warnings} "
                f"(deviation={deviation:.2f})"
            )

            if warnings >= self.session.max_warnings:
                self._terminate(WARNING_LIMIT_ALERT, reason="warning_limit")
        elif self.session.current_alert == LOOKING_AWAY_ALERT:
            self.session.clear_alert()

    def _log(self, kind: ViolationKind):
        self.violations.record(kind, snapshot_provider=self.snapshot_provider)

    def _terminate(self, alert: str, reason: str):
        self.session.terminate(alert)
        log_session_terminated(self.session.id, reason, self.session.warning_count)
