"""
Proctoring API - FastAPI endpoints for exam integrity monitoring

Endpoints:
- POST /api/proctor/start - Start monitoring an exam
- POST /api/proctor/frame - Upload the latest webcam frame
- GET /api/proctor/status/{session_id} - Current read model
- GET /api/proctor/violations/{session_id} - Violation log
- POST /api/proctor/dismiss-alert - Acknowledge the current alert
- POST /api/proctor/stop - Stop monitoring and get final results
"""

import logging
from functools import lru_cache
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..config import settings
from .monitor import ExamMonitor
from .session import SessionSnapshot
from .log_store import LogStore, create_log_store
from .video_source import BufferedVideoSource

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/proctor", tags=["Proctoring"])

# In-memory monitor registry
_monitors: Dict[str, ExamMonitor] = {}


@lru_cache(maxsize=1)
def get_face_detector():
    """Shared dlib detector; model weights are loaded once per process"""
    from .detectors.face_detector import FaceDetector
    return FaceDetector(settings.SHAPE_PREDICTOR_PATH)


@lru_cache(maxsize=1)
def get_log_store() -> LogStore:
    return create_log_store(
        settings.LOG_STORE_BACKEND,
        settings.REDIS_URL,
        settings.LOG_STORE_MAX_BYTES
    )


# ============== Request/Response Models ==============

class SnapshotResponse(BaseModel):
    """UI read model of an exam session"""
    session_id: str
    phase: str
    time_left_seconds: int
    current_alert: Optional[str] = None
    warning_count: int
    max_warnings: int
    can_submit_answers: bool

    @classmethod
    def from_snapshot(cls, snap: SessionSnapshot) -> "SnapshotResponse":
        return cls(**snap.to_dict())


class StartSessionRequest(BaseModel):
    """Request to start monitoring"""
    student_id: str = Field(..., description="ID of the student")
    duration_seconds: Optional[int] = Field(None, ge=1, description="Exam length in seconds")


class StartSessionResponse(BaseModel):
    session_id: str
    status: str
    snapshot: SnapshotResponse


class FrameRequest(BaseModel):
    """Latest webcam frame"""
    session_id: str = Field(..., description="Session ID from /start")
    frame_base64: str = Field(..., description="Base64 encoded JPEG frame or data URL")


class SessionRequest(BaseModel):
    session_id: str


class ViolationItem(BaseModel):
    time: str
    type: str
    image: Optional[str] = None


class ViolationsResponse(BaseModel):
    session_id: str
    count: int
    violations: List[ViolationItem]


class StopSessionResponse(BaseModel):
    """Final monitoring results"""
    session_id: str
    snapshot: SnapshotResponse
    violation_count: int
    duration_seconds: float


def _get_monitor(session_id: str) -> ExamMonitor:
    monitor = _monitors.get(session_id)
    if not monitor:
        raise HTTPException(status_code=404, detail="Session not found")
    return monitor


# ============== API Endpoints ==============

@router.post("/start", response_model=StartSessionResponse)
async def start_session(request: StartSessionRequest):
    """
    Start monitoring a new exam.

    The session waits for a single-face calibration frame before the
    exam is considered in progress.
    """
    try:
        monitor = ExamMonitor(
            student_id=request.student_id,
            source=BufferedVideoSource(
                settings.SNAPSHOT_JPEG_QUALITY,
                max_age_seconds=settings.FRAME_MAX_AGE_SECONDS
            ),
            detector=get_face_detector(),
            store=get_log_store(),
            duration_seconds=request.duration_seconds
        )
        # Scope the persisted log per session
        monitor.violations.store_key = f"{settings.LOG_STORE_KEY}:{monitor.id}"
        monitor.start()
    except Exception as e:
        logger.error(f"Failed to start exam monitoring: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    _monitors[monitor.id] = monitor

    return StartSessionResponse(
        session_id=monitor.id,
        status="active",
        snapshot=SnapshotResponse.from_snapshot(monitor.snapshot())
    )


@router.post("/frame", response_model=SnapshotResponse)
async def upload_frame(request: FrameRequest):
    """
    Replace the session's current frame.

    The detection poller picks it up on its next tick.
    """
    monitor = _get_monitor(request.session_id)

    if not monitor.source.push_base64(request.frame_base64):
        raise HTTPException(status_code=400, detail="Invalid frame data")

    return SnapshotResponse.from_snapshot(monitor.snapshot())


@router.get("/status/{session_id}", response_model=SnapshotResponse)
async def get_session_status(session_id: str):
    monitor = _get_monitor(session_id)
    return SnapshotResponse.from_snapshot(monitor.snapshot())


@router.get("/violations/{session_id}", response_model=ViolationsResponse)
async def get_violations(session_id: str):
    monitor = _get_monitor(session_id)
    items = monitor.violations.to_list()
    return ViolationsResponse(
        session_id=session_id,
        count=len(items),
        violations=[ViolationItem(**item) for item in items]
    )


@router.post("/dismiss-alert", response_model=SnapshotResponse)
async def dismiss_alert(request: SessionRequest):
    monitor = _get_monitor(request.session_id)
    return SnapshotResponse.from_snapshot(monitor.dismiss_alert())


@router.post("/stop", response_model=StopSessionResponse)
async def stop_session(request: SessionRequest):
    """
    Stop monitoring and return final results.
    """
    monitor = _get_monitor(request.session_id)

    try:
        result = await monitor.stop()
    except Exception as e:
        logger.error(f"Error stopping session: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    _monitors.pop(request.session_id, None)

    return StopSessionResponse(
        session_id=result["session_id"],
        snapshot=SnapshotResponse.from_snapshot(result["snapshot"]),
        violation_count=result["violation_count"],
        duration_seconds=result["duration_seconds"]
    )


# ============== Health Check ==============

@router.get("/health")
async def health_check():
    """Health check for proctoring module"""
    return {
        "status": "healthy",
        "active_sessions": len(_monitors),
        "module": "proctoring"
    }
