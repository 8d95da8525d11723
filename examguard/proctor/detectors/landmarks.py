"""
Detection data types shared by the face detector and the state machine

Landmark layout follows the 68-point iBUG scheme used by dlib:
nose bridge + tip are points 27-35, left eye 36-41, right eye 42-47.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import numpy as np

NOSE_SLICE = slice(27, 36)
LEFT_EYE_SLICE = slice(36, 42)
RIGHT_EYE_SLICE = slice(42, 48)

# Position of the nose tip within the nose point group
NOSE_TIP_INDEX = 3


@dataclass(frozen=True)
class Point:
    x: float
    y: float


def _to_points(rows) -> Tuple[Point, ...]:
    return tuple(Point(float(x), float(y)) for x, y in rows)


@dataclass(frozen=True)
class FaceLandmarks:
    """Nose and eye outline points of one face"""
    nose: Tuple[Point, ...]
    left_eye: Tuple[Point, ...]
    right_eye: Tuple[Point, ...]

    @classmethod
    def from_68_points(cls, points: Sequence) -> "FaceLandmarks":
        """
        Build from a (68, 2) array of (x, y) landmark coordinates.

        Raises:
            ValueError: if fewer than 48 points are supplied
        """
        arr = np.asarray(points, dtype=float)
        if arr.ndim != 2 or arr.shape[0] < 48 or arr.shape[1] != 2:
            raise ValueError(f"Expected (68, 2) landmarks, got shape {arr.shape}")
        return cls(
            nose=_to_points(arr[NOSE_SLICE]),
            left_eye=_to_points(arr[LEFT_EYE_SLICE]),
            right_eye=_to_points(arr[RIGHT_EYE_SLICE]),
        )

    @property
    def nose_tip(self) -> Point:
        return self.nose[NOSE_TIP_INDEX]


@dataclass(frozen=True)
class DetectedFace:
    """One detected face: bounding box (x, y, w, h), detector score, landmarks"""
    bbox: Optional[Tuple[int, int, int, int]] = None
    score: Optional[float] = None
    landmarks: Optional[FaceLandmarks] = None


@dataclass(frozen=True)
class DetectionResult:
    """Faces found in one polled frame, in detector order"""
    faces: Tuple[DetectedFace, ...] = field(default_factory=tuple)

    @property
    def face_count(self) -> int:
        return len(self.faces)

    @classmethod
    def empty(cls) -> "DetectionResult":
        return cls(faces=())


@dataclass(frozen=True)
class DetectorOptions:
    """Per-deployment detector options, not user adjustable"""
    input_size: int = 512
    score_threshold: float = 0.2
