"""
Face Detector - Detects faces and 68-point landmarks using dlib

The HOG detector and shape predictor are blocking calls, so detect()
runs them in a worker thread and hands the result back to the event loop.
"""

import os
import asyncio
import logging
import threading
from typing import Optional, List

import cv2
import numpy as np

from .landmarks import DetectedFace, DetectionResult, DetectorOptions, FaceLandmarks

logger = logging.getLogger(__name__)

PREDICTOR_FILENAME = "shape_predictor_68_face_landmarks.dat"
MODELS_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "weights")


def find_predictor_path(predictor_path: Optional[str] = None) -> Optional[str]:
    """Return the first existing shape predictor file, or None"""
    candidates = [
        predictor_path,
        os.path.join(MODELS_DIR, PREDICTOR_FILENAME),
        PREDICTOR_FILENAME  # Current directory
    ]
    for path in candidates:
        if path and os.path.exists(path):
            return path
    return None


class FaceDetector:
    """
    Detects faces in video frames using dlib's HOG-based face detector.

    Provides:
    - Face count (0, 1, 2+)
    - Face bounding boxes and detector scores
    - Nose and eye landmarks (when the shape predictor is available)
    """

    def __init__(self, predictor_path: Optional[str] = None):
        """
        Initialize face detector.

        Args:
            predictor_path: Path to dlib's 68-point shape predictor.
                           Looked up in the weights dir when None.
        """
        try:
            import dlib
            self.dlib = dlib
            self.detector = dlib.get_frontal_face_detector()
        except ImportError:
            logger.error("dlib not installed. Run: pip install dlib")
            raise

        self.predictor_path = predictor_path
        self.predictor = None
        self._predictor_loaded = False
        self._predictor_lock = threading.Lock()

    def _ensure_predictor(self):
        """
        Lazy load predictor if not already loaded.

        detect_sync runs in several worker threads at once; the first caller
        loads while the others wait, so none sees a half-initialized detector.
        """
        if self._predictor_loaded:
            return
        with self._predictor_lock:
            if self._predictor_loaded:
                return
            try:
                path = find_predictor_path(self.predictor_path)
                if path is None:
                    logger.warning(
                        f"{PREDICTOR_FILENAME} not found; faces will be reported without landmarks. "
                        f"Download from http://dlib.net/files/{PREDICTOR_FILENAME}.bz2"
                    )
                    return
                try:
                    logger.info(f"Loading dlib predictor from: {path}")
                    self.predictor = self.dlib.shape_predictor(path)
                except Exception as e:
                    logger.warning(f"Could not load dlib predictor: {e}")
            finally:
                self._predictor_loaded = True  # Don't retry

    async def detect(self, frame: np.ndarray, options: DetectorOptions) -> DetectionResult:
        """Detect faces off the event loop"""
        return await asyncio.to_thread(self.detect_sync, frame, options)

    def detect_sync(self, frame: np.ndarray, options: DetectorOptions) -> DetectionResult:
        """
        Detect faces in a frame.

        The frame is scaled so its longer side equals options.input_size.
        Detections scoring below options.score_threshold are dropped.
        Landmarks are mapped back to original frame coordinates.

        Args:
            frame: BGR image from OpenCV
            options: Detector input size and score threshold

        Returns:
            DetectionResult with one DetectedFace per face
        """
        if frame is None or frame.size == 0:
            return DetectionResult.empty()

        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY) if frame.ndim == 3 else frame

        height, width = gray.shape[:2]
        scale = options.input_size / float(max(height, width))
        if scale != 1.0:
            gray = cv2.resize(gray, (int(round(width * scale)), int(round(height * scale))))

        rects, scores, _ = self.detector.run(gray, 0, 0.0)

        self._ensure_predictor()

        faces: List[DetectedFace] = []
        for rect, score in zip(rects, scores):
            if score < options.score_threshold:
                continue

            landmarks = None
            if self.predictor is not None:
                try:
                    marks = self.predictor(gray, rect)
                    points = np.array(
                        [(marks.part(i).x, marks.part(i).y) for i in range(marks.num_parts)],
                        dtype=float
                    ) / scale
                    landmarks = FaceLandmarks.from_68_points(points)
                except Exception as e:
                    logger.warning(f"Error getting landmarks: {e}")

            bbox = (
                int(rect.left() / scale),
                int(rect.top() / scale),
                int(rect.width() / scale),
                int(rect.height() / scale),
            )
            faces.append(DetectedFace(bbox=bbox, score=float(score), landmarks=landmarks))

        return DetectionResult(faces=tuple(faces))
