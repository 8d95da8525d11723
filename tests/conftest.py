"""
Pytest Configuration for Exam Guard Tests
"""
import asyncio
import pytest
import numpy as np
from typing import List, Optional

from examguard.config import Settings
from examguard.proctor.detectors.landmarks import (
    DetectedFace,
    DetectionResult,
    FaceLandmarks,
)
from examguard.proctor.log_store import MemoryLogStore
from examguard.proctor.session import ExamSession
from examguard.proctor.state_machine import IntegrityStateMachine
from examguard.proctor.video_source import BufferedVideoSource
from examguard.proctor.violation_log import ViolationLogger


def build_landmarks(left_outer: float = 0.0, right_outer: float = 100.0, nose_x: float = 50.0) -> FaceLandmarks:
    """68-point landmarks with the given outer eye corners and nose tip x"""
    points = np.zeros((68, 2))
    points[27:36, 0] = nose_x
    points[27:36, 1] = np.linspace(40, 80, 9)
    points[36:42, 0] = np.linspace(left_outer, left_outer + 30, 6)
    points[36:42, 1] = 30
    points[42:48, 0] = np.linspace(right_outer - 30, right_outer, 6)
    points[42:48, 1] = 30
    return FaceLandmarks.from_68_points(points)


def faces(count: int, nose_x: float = 50.0, with_landmarks: bool = True) -> DetectionResult:
    """DetectionResult with `count` faces, all sharing the same geometry"""
    landmarks = build_landmarks(nose_x=nose_x) if with_landmarks else None
    return DetectionResult(faces=tuple(DetectedFace(landmarks=landmarks) for _ in range(count)))


class ScriptedDetector:
    """Async detector returning queued results, then a default"""

    def __init__(self, results: Optional[List[DetectionResult]] = None, default: Optional[DetectionResult] = None):
        self.results = list(results or [])
        self.default = default or DetectionResult.empty()
        self.calls = 0

    async def detect(self, frame, options):
        self.calls += 1
        await asyncio.sleep(0)
        if self.results:
            return self.results.pop(0)
        return self.default


class GatedDetector:
    """Async detector whose calls block until released one by one"""

    def __init__(self):
        self.pending: List[asyncio.Future] = []
        self.calls = 0

    async def detect(self, frame, options):
        self.calls += 1
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future

    def release(self, index: int, result: DetectionResult):
        self.pending[index].set_result(result)


@pytest.fixture
def frame():
    """Small synthetic BGR frame"""
    img = np.full((48, 64, 3), 127, dtype=np.uint8)
    img[10:30, 20:40] = (0, 0, 255)
    return img


@pytest.fixture
def store():
    return MemoryLogStore()


@pytest.fixture
def session():
    return ExamSession(duration_seconds=30, max_warnings=5, session_id="EXM_TEST01")


@pytest.fixture
def violations(store, session):
    return ViolationLogger(store, store_key="examLogs", session_id=session.id)


@pytest.fixture
def machine(session, violations):
    return IntegrityStateMachine(session, violations, snapshot_provider=lambda: "data:image/jpeg;base64,AAAA")


@pytest.fixture
def started_machine(machine):
    """State machine past the calibration gate"""
    machine.handle(faces(1))
    return machine


@pytest.fixture
def source(frame):
    src = BufferedVideoSource()
    src.push_frame(frame)
    return src


@pytest.fixture
def fast_settings():
    """Settings with millisecond timers for async tests"""
    return Settings(
        EXAM_DURATION_SECONDS=30,
        MAX_WARNINGS=5,
        POLL_INTERVAL_SECONDS=0.005,
        COUNTDOWN_INTERVAL_SECONDS=0.005,
        LOG_STORE_BACKEND="memory",
    )
