"""
Local webcam monitor
Usage: python -m examguard.run_local [camera_index] [duration_seconds]
"""
import sys
import asyncio
import logging

from .config import settings
from .proctor.monitor import ExamMonitor
from .proctor.session import SessionSnapshot
from .proctor.video_source import CameraVideoSource
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def print_snapshot(snap: SessionSnapshot):
    alert = snap.display_alert or "-"
    print(
        f"[{snap.phase.value}] time={snap.time_left_seconds}s "
        f"warnings={snap.warning_count}/{snap.max_warnings} alert={alert}"
    )


async def run(camera_index: int, duration_seconds: int):
    source = CameraVideoSource(camera_index, settings.SNAPSHOT_JPEG_QUALITY)
    if not source.open():
        print("[Error] Could not open camera")
        return

    monitor = ExamMonitor(
        student_id="local",
        source=source,
        duration_seconds=duration_seconds
    )
    monitor.subscribe(print_snapshot)
    monitor.start()

    try:
        while monitor.snapshot().can_submit_answers:
            await asyncio.sleep(settings.COUNTDOWN_INTERVAL_SECONDS)
    finally:
        result = await monitor.stop()
        print(f"Session {result['session_id']} ended with {result['violation_count']} violation(s)")


def main():
    camera_index = int(sys.argv[1]) if len(sys.argv) > 1 else settings.CAMERA_INDEX
    duration = int(sys.argv[2]) if len(sys.argv) > 2 else settings.EXAM_DURATION_SECONDS

    setup_logging(service_name="examguard", level=settings.LOG_LEVEL)
    try:
        asyncio.run(run(camera_index, duration))
    except KeyboardInterrupt:
        print("Stopped.")


if __name__ == '__main__':
    main()
