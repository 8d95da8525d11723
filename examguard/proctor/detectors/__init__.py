"""Detector modules for proctoring"""

from .landmarks import (
    Point,
    FaceLandmarks,
    DetectedFace,
    DetectionResult,
    DetectorOptions,
)
from .face_detector import FaceDetector
from .gaze_heuristic import is_looking_away, gaze_deviation

__all__ = [
    "Point",
    "FaceLandmarks",
    "DetectedFace",
    "DetectionResult",
    "DetectorOptions",
    "FaceDetector",
    "is_looking_away",
    "gaze_deviation",
]
