"""
Exam Guard Proctoring Module

Monitors exam integrity from periodic face detections:
- Single-face calibration before the exam starts
- Face absence logging
- Immediate termination when another person appears
- Gaze warnings, terminating at the warning limit
"""

from .session import ExamSession, SessionSnapshot, Phase
from .state_machine import IntegrityStateMachine
from .violation_log import ViolationLogger, ViolationRecord, ViolationKind
from .monitor import ExamMonitor

__all__ = [
    "ExamSession",
    "SessionSnapshot",
    "Phase",
    "IntegrityStateMachine",
    "ViolationLogger",
    "ViolationRecord",
    "ViolationKind",
    "ExamMonitor",
]
