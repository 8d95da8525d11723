"""
Gaze Heuristic - Flags a face as looking away from nose/eye geometry

The nose tip of a face turned towards the screen sits roughly halfway
between the outer corners of the eyes. A horizontal offset larger than a
fraction of the eye span means the head is turned.
"""

import math
import logging
from typing import Optional, Tuple

from .landmarks import FaceLandmarks

logger = logging.getLogger(__name__)

DEFAULT_DEVIATION_THRESHOLD = 0.3


def _nose_offset(landmarks: FaceLandmarks) -> Optional[Tuple[float, float]]:
    """(|noseX - eye midpoint|, eye span), or None for unusable landmarks"""
    try:
        left_outer = landmarks.left_eye[0].x
        eye_span = landmarks.right_eye[-1].x - left_outer
        nose_x = landmarks.nose_tip.x
    except (AttributeError, IndexError, TypeError) as e:
        logger.debug(f"Malformed landmarks: {e}")
        return None

    if not (math.isfinite(eye_span) and math.isfinite(nose_x)) or eye_span <= 0:
        return None

    center_x = left_outer + eye_span / 2
    return abs(nose_x - center_x), eye_span


def gaze_deviation(landmarks: Optional[FaceLandmarks]) -> Optional[float]:
    """Nose-tip offset normalized by eye span, or None"""
    if landmarks is None:
        return None
    geometry = _nose_offset(landmarks)
    if geometry is None:
        return None
    offset, eye_span = geometry
    return offset / eye_span


def is_looking_away(
    landmarks: Optional[FaceLandmarks],
    threshold: float = DEFAULT_DEVIATION_THRESHOLD
) -> bool:
    """
    Classify a face as looking away.

    Args:
        landmarks: Nose and eye points of a single face
        threshold: Allowed nose offset as a fraction of eye span (strict >)

    Returns:
        True if looking away; False for absent or malformed landmarks
    """
    if landmarks is None:
        return False

    geometry = _nose_offset(landmarks)
    if geometry is None:
        return False

    offset, eye_span = geometry
    return offset > eye_span * threshold
