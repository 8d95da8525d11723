"""
Video Sources - Provide the current live frame and still snapshots

CameraVideoSource reads a local webcam through OpenCV.
BufferedVideoSource holds the latest frame uploaded by a browser client.
"""

import base64
import time
import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:image/jpeg;base64,"


def encode_snapshot(frame: Optional[np.ndarray], quality: int = 90) -> Optional[str]:
    """Encode a BGR frame as a JPEG data URL, or None if it cannot be encoded"""
    if frame is None or frame.size == 0:
        return None
    ok, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    if not ok:
        logger.warning("JPEG encoding of snapshot failed")
        return None
    return DATA_URL_PREFIX + base64.b64encode(buffer.tobytes()).decode("ascii")


def decode_frame(frame_base64: str) -> Optional[np.ndarray]:
    """Decode a base64 JPEG/PNG (optionally a data URL) into a BGR frame"""
    if "," in frame_base64 and frame_base64.startswith("data:"):
        frame_base64 = frame_base64.split(",", 1)[1]
    try:
        frame_bytes = base64.b64decode(frame_base64, validate=True)
    except ValueError:
        return None
    frame_array = np.frombuffer(frame_bytes, dtype=np.uint8)
    if frame_array.size == 0:
        return None
    return cv2.imdecode(frame_array, cv2.IMREAD_COLOR)


class VideoSource(ABC):
    """Capability: current live frame plus on-demand snapshot"""

    def __init__(self, snapshot_quality: int = 90):
        self.snapshot_quality = snapshot_quality

    @abstractmethod
    def current_frame(self) -> Optional[np.ndarray]:
        """Latest frame, or None when no frame is ready yet"""

    def snapshot(self) -> Optional[str]:
        """JPEG data URL of the current frame, or None"""
        return encode_snapshot(self.current_frame(), self.snapshot_quality)

    def release(self):
        pass


class BufferedVideoSource(VideoSource):
    """
    Latest-frame buffer fed by uploaded frames.

    A frame older than max_age_seconds is no longer live and reads as not
    ready, so a client that stops uploading stops being analysed.
    """

    def __init__(self, snapshot_quality: int = 90, max_age_seconds: Optional[float] = None):
        super().__init__(snapshot_quality)
        self.max_age_seconds = max_age_seconds
        self._frame: Optional[np.ndarray] = None
        self._pushed_at = 0.0
        self._lock = threading.Lock()

    def push_frame(self, frame: np.ndarray):
        with self._lock:
            self._frame = frame
            self._pushed_at = time.monotonic()

    def push_base64(self, frame_base64: str) -> bool:
        """
        Decode and store an uploaded frame.

        Returns:
            False if the payload is not a decodable image
        """
        frame = decode_frame(frame_base64)
        if frame is None:
            return False
        self.push_frame(frame)
        return True

    @property
    def frame_age(self) -> Optional[float]:
        """Seconds since the last upload, or None before the first one"""
        with self._lock:
            if self._frame is None:
                return None
            return time.monotonic() - self._pushed_at

    def current_frame(self) -> Optional[np.ndarray]:
        with self._lock:
            if self._frame is None:
                return None
            if self.max_age_seconds is not None and time.monotonic() - self._pushed_at > self.max_age_seconds:
                return None
            return self._frame.copy()

    def release(self):
        with self._lock:
            self._frame = None


class CameraVideoSource(VideoSource):
    """Local webcam read through cv2.VideoCapture"""

    def __init__(self, camera_index: int = 0, snapshot_quality: int = 90):
        super().__init__(snapshot_quality)
        self.camera_index = camera_index
        self.cap: Optional[cv2.VideoCapture] = None
        self._last_frame: Optional[np.ndarray] = None
        self._lock = threading.Lock()

    def open(self) -> bool:
        """Open the camera. Returns False if it is not accessible."""
        if self.cap is not None and self.cap.isOpened():
            return True
        self.cap = cv2.VideoCapture(self.camera_index)
        if not self.cap.isOpened():
            logger.warning(f"Could not open camera {self.camera_index}")
            self.cap = None
            return False
        return True

    def current_frame(self) -> Optional[np.ndarray]:
        if self.cap is None or not self.cap.isOpened():
            return None
        ret, frame = self.cap.read()
        if not ret:
            return None
        with self._lock:
            self._last_frame = frame
        return frame

    def snapshot(self) -> Optional[str]:
        # Reuse the frame the poller just analysed instead of grabbing a new one
        with self._lock:
            frame = self._last_frame
        if frame is None:
            frame = self.current_frame()
        return encode_snapshot(frame, self.snapshot_quality)

    def release(self):
        if self.cap is not None:
            self.cap.release()
            self.cap = None
        with self._lock:
            self._last_frame = None
