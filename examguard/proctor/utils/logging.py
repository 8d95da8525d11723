"""
Proctoring Logger - Logs proctoring events
"""

import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


def log_proctor_event(
    session_id: str,
    event_type: str,
    details: Optional[Dict[str, Any]] = None,
    level: str = "info"
):
    """
    Log a proctoring event.

    Args:
        session_id: Exam session ID
        event_type: Type of event (start, violation, terminated, stop, etc.)
        details: Optional event details
        level: Log level (debug, info, warning, error)
    """
    message = f"[PROCTOR] session={session_id} event={event_type}"

    if details:
        detail_str = " ".join(f"{k}={v}" for k, v in details.items())
        message += f" {detail_str}"

    if level == "debug":
        logger.debug(message)
    elif level == "warning":
        logger.warning(message)
    elif level == "error":
        logger.error(message)
    else:
        logger.info(message)


def log_session_start(session_id: str, student_id: str, duration_seconds: int):
    """Log session start event"""
    log_proctor_event(
        session_id=session_id,
        event_type="session_start",
        details={
            "student_id": student_id,
            "duration_seconds": duration_seconds
        }
    )


def log_session_end(session_id: str, phase: str, warnings: int, violations: int):
    """Log session end event"""
    log_proctor_event(
        session_id=session_id,
        event_type="session_end",
        details={
            "phase": phase,
            "warnings": warnings,
            "violations": violations
        }
    )


def log_violation_recorded(session_id: str, kind: str, has_snapshot: bool):
    """Log when a violation is appended to the log"""
    log_proctor_event(
        session_id=session_id,
        event_type="violation",
        details={
            "kind": kind,
            "snapshot": "yes" if has_snapshot else "no"
        },
        level="warning"
    )


def log_session_terminated(session_id: str, reason: str, warnings: int):
    """Log termination for cause"""
    log_proctor_event(
        session_id=session_id,
        event_type="terminated",
        details={
            "reason": reason,
            "warnings": warnings
        },
        level="warning"
    )
