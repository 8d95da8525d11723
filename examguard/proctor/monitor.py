"""
Exam Monitor - Wires one exam session's components together
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Callable

from ..config import Settings, settings as default_settings
from .session import ExamSession, SessionSnapshot, SnapshotListener
from .state_machine import IntegrityStateMachine
from .violation_log import ViolationLogger
from .log_store import LogStore, create_log_store
from .timers import CountdownTimer, DetectionPoller, AsyncFaceDetector
from .video_source import VideoSource
from .detectors.landmarks import DetectorOptions
from .utils.logging import log_session_start, log_session_end

logger = logging.getLogger(__name__)


class ExamMonitor:
    """
    Runs integrity monitoring for a single exam.

    Owns the ExamSession, violation log, state machine and both timers.
    The UI reads SessionSnapshot copies via snapshot() or subscribe().
    """

    def __init__(
        self,
        student_id: str,
        source: VideoSource,
        detector: Optional[AsyncFaceDetector] = None,
        store: Optional[LogStore] = None,
        duration_seconds: Optional[int] = None,
        session_id: Optional[str] = None,
        store_key: Optional[str] = None,
        config: Optional[Settings] = None
    ):
        """
        Initialize a new exam monitor.

        Args:
            student_id: ID of the test-taker
            source: Video source to poll
            detector: Face detector (dlib FaceDetector when None)
            store: Violation log mirror (configured backend when None)
            duration_seconds: Exam length (EXAM_DURATION_SECONDS when None)
            session_id: Optional custom session ID
            store_key: Key for the serialized log (LOG_STORE_KEY when None)
            config: Settings override
        """
        self.config = config or default_settings
        self.student_id = student_id
        self.source = source
        self.started_at = datetime.now(timezone.utc)

        duration = self.config.EXAM_DURATION_SECONDS if duration_seconds is None else duration_seconds
        self.session = ExamSession(
            duration_seconds=duration,
            max_warnings=self.config.MAX_WARNINGS,
            session_id=session_id
        )

        self.store = store or create_log_store(
            self.config.LOG_STORE_BACKEND,
            self.config.REDIS_URL,
            self.config.LOG_STORE_MAX_BYTES
        )
        self.violations = ViolationLogger(
            self.store,
            store_key=store_key or self.config.LOG_STORE_KEY,
            session_id=self.session.id
        )
        self.machine = IntegrityStateMachine(
            self.session,
            self.violations,
            snapshot_provider=source.snapshot,
            gaze_threshold=self.config.GAZE_DEVIATION_THRESHOLD
        )

        self._detector = detector
        self.countdown = CountdownTimer(self.session, self.config.COUNTDOWN_INTERVAL_SECONDS)
        self._poller: Optional[DetectionPoller] = None

        log_session_start(self.session.id, student_id, duration)

    @property
    def id(self) -> str:
        return self.session.id

    @property
    def detector(self) -> AsyncFaceDetector:
        """Lazy load face detector"""
        if self._detector is None:
            from .detectors.face_detector import FaceDetector
            self._detector = FaceDetector(self.config.SHAPE_PREDICTOR_PATH)
        return self._detector

    @property
    def poller(self) -> DetectionPoller:
        if self._poller is None:
            self._poller = DetectionPoller(
                self.source,
                self.detector,
                self.machine,
                options=DetectorOptions(
                    input_size=self.config.DETECTOR_INPUT_SIZE,
                    score_threshold=self.config.DETECTOR_SCORE_THRESHOLD
                ),
                interval=self.config.POLL_INTERVAL_SECONDS,
                allow_overlap=self.config.ALLOW_OVERLAPPING_DETECTIONS
            )
        return self._poller

    def start(self):
        """Start the countdown and detection polling. Must run inside an event loop."""
        self.countdown.start()
        self.poller.start()
        logger.info(f"Monitoring started for session {self.id}")

    def snapshot(self) -> SessionSnapshot:
        return self.session.snapshot()

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        return self.session.subscribe(listener)

    def dismiss_alert(self) -> SessionSnapshot:
        """User acknowledged the alert dialog; termination reasons stay visible"""
        self.session.clear_alert()
        return self.session.snapshot()

    async def stop(self) -> Dict[str, Any]:
        """
        Stop both timers and return the final session summary.

        Returns:
            Final snapshot, violation count and duration
        """
        await self.countdown.stop()
        if self._poller is not None:
            await self._poller.stop()

        snap = self.session.snapshot()
        log_session_end(self.id, snap.phase.value, snap.warning_count, len(self.violations))
        self.source.release()

        return {
            "session_id": self.id,
            "student_id": self.student_id,
            "snapshot": snap,
            "violation_count": len(self.violations),
            "duration_seconds": (datetime.now(timezone.utc) - self.started_at).total_seconds()
        }
