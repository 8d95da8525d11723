"""
Timers - Countdown and detection polling tasks for one exam session

Both run as independent asyncio tasks on the same event loop, so state
machine updates are applied one at a time.
"""

import asyncio
import logging
from typing import Optional, Set, Protocol

import numpy as np

from .session import ExamSession
from .state_machine import IntegrityStateMachine
from .video_source import VideoSource
from .detectors.landmarks import DetectionResult, DetectorOptions

logger = logging.getLogger(__name__)


class AsyncFaceDetector(Protocol):
    async def detect(self, frame: np.ndarray, options: DetectorOptions) -> DetectionResult:
        ...


class CountdownTimer:
    """
    Decrements remaining time once per interval until it reaches zero.

    Reaching zero freezes answering but does not terminate the session.
    """

    def __init__(self, session: ExamSession, interval: float = 1.0):
        self.session = session
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """
        Start counting down.

        Returns:
            False if already running or no time is left
        """
        if self.running or self.session.time_left_seconds <= 0:
            return False
        self._task = asyncio.create_task(self._run())
        return True

    async def _run(self):
        while self.session.time_left_seconds > 0:
            await asyncio.sleep(self.interval)
            if not self.session.tick():
                break
        logger.info(f"Countdown finished for session {self.session.id}")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


class DetectionPoller:
    """
    Polls the video source and feeds detections to the state machine.

    With allow_overlap=False a tick is skipped while a previous detection
    is still outstanding. In-flight detections are never cancelled.
    """

    def __init__(
        self,
        source: VideoSource,
        detector: AsyncFaceDetector,
        machine: IntegrityStateMachine,
        options: Optional[DetectorOptions] = None,
        interval: float = 0.5,
        allow_overlap: bool = False
    ):
        self.source = source
        self.detector = detector
        self.machine = machine
        self.options = options or DetectorOptions()
        self.interval = interval
        self.allow_overlap = allow_overlap

        self._task: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()
        self.skipped_ticks = 0
        self.failed_detections = 0

    @property
    def session(self) -> ExamSession:
        return self.machine.session

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def start(self) -> bool:
        if self.running or self.session.is_terminated:
            return False
        self._task = asyncio.create_task(self._run())
        return True

    async def _run(self):
        while not self.session.is_terminated:
            await asyncio.sleep(self.interval)
            if self.session.is_terminated:
                break
            self.poll_once()
        logger.info(f"Detection polling stopped for session {self.session.id}")

    def poll_once(self) -> bool:
        """
        Run a single poll tick.

        Returns:
            True if a detection request was started
        """
        try:
            frame = self.source.current_frame()
        except Exception as e:
            logger.warning(f"Video source error: {e}")
            return False

        if frame is None:
            return False

        if self._in_flight and not self.allow_overlap:
            self.skipped_ticks += 1
            logger.debug(f"Detection still in flight; skipping tick for session {self.session.id}")
            return False

        task = asyncio.create_task(self._detect(frame))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return True

    async def _detect(self, frame: np.ndarray):
        try:
            result = await self.detector.detect(frame, self.options)
        except Exception as e:
            self.failed_detections += 1
            logger.warning(f"Face detection failed for session {self.session.id}: {e}")
            return
        self.machine.handle(result)

    async def drain(self):
        """Wait for outstanding detections to deliver their results"""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def stop(self):
        """Stop ticking. Outstanding detections still deliver."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
