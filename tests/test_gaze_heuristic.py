"""
Tests for the nose/eye gaze heuristic
"""

import pytest
import numpy as np

from examguard.proctor.detectors import FaceLandmarks, Point, is_looking_away, gaze_deviation

from conftest import build_landmarks


class TestIsLookingAway:
    """Tests for is_looking_away"""

    def test_centered_nose(self):
        """Nose on the eye midpoint is not looking away"""
        assert is_looking_away(build_landmarks(nose_x=50)) == False

    def test_exact_threshold_is_not_looking_away(self):
        """|80 - 50| == 0.3 * 100 must not trigger (strict >)"""
        landmarks = build_landmarks(left_outer=0, right_outer=100, nose_x=80)
        assert is_looking_away(landmarks) == False

    def test_just_past_threshold(self):
        """Offset of 31 on a span of 100 triggers"""
        assert is_looking_away(build_landmarks(nose_x=81)) == True

    def test_turned_left(self):
        """Deviation is symmetric"""
        assert is_looking_away(build_landmarks(nose_x=19)) == True
        assert is_looking_away(build_landmarks(nose_x=20)) == False

    def test_custom_threshold(self):
        """Threshold is a tunable sensitivity"""
        landmarks = build_landmarks(nose_x=70)
        assert is_looking_away(landmarks, threshold=0.3) == False
        assert is_looking_away(landmarks, threshold=0.1) == True

    def test_offset_frame(self):
        """Only relative geometry matters"""
        landmarks = build_landmarks(left_outer=200, right_outer=300, nose_x=290)
        assert is_looking_away(landmarks) == True

    def test_missing_landmarks(self):
        """Absent landmarks never count as looking away"""
        assert is_looking_away(None) == False

    def test_empty_point_groups(self):
        """Malformed landmarks return False instead of raising"""
        landmarks = FaceLandmarks(nose=(), left_eye=(), right_eye=())
        assert is_looking_away(landmarks) == False

    def test_short_nose_group(self):
        """Nose group without a tip point is malformed"""
        landmarks = FaceLandmarks(
            nose=(Point(50, 50),),
            left_eye=(Point(0, 0),),
            right_eye=(Point(100, 0),)
        )
        assert is_looking_away(landmarks) == False

    def test_inverted_eyes(self):
        """Non-positive eye span is treated as malformed"""
        landmarks = build_landmarks(left_outer=100, right_outer=0, nose_x=90)
        assert is_looking_away(landmarks) == False

    def test_nan_coordinates(self):
        """NaN coordinates are treated as malformed"""
        landmarks = build_landmarks(nose_x=float("nan"))
        assert is_looking_away(landmarks) == False

    def test_wrong_type(self):
        """Arbitrary objects do not raise"""
        assert is_looking_away("not landmarks") == False


class TestGazeDeviation:
    """Tests for gaze_deviation"""

    def test_ratio(self):
        assert gaze_deviation(build_landmarks(nose_x=75)) == pytest.approx(0.25)

    def test_none_for_missing(self):
        assert gaze_deviation(None) is None


class TestFaceLandmarks:
    """Tests for 68-point landmark grouping"""

    def test_groups(self):
        points = np.arange(136, dtype=float).reshape(68, 2)
        landmarks = FaceLandmarks.from_68_points(points)

        assert len(landmarks.nose) == 9
        assert len(landmarks.left_eye) == 6
        assert len(landmarks.right_eye) == 6
        # Nose tip is point 30 in the 68-point scheme
        assert landmarks.nose_tip == Point(60.0, 61.0)
        assert landmarks.left_eye[0] == Point(72.0, 73.0)
        assert landmarks.right_eye[-1] == Point(94.0, 95.0)

    def test_too_few_points(self):
        with pytest.raises(ValueError):
            FaceLandmarks.from_68_points(np.zeros((20, 2)))
