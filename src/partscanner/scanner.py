"""
Decoder adapter: threaded camera capture and QR decoding.

    Capture Thread -> Detection Thread -> event queue -> main loop

Each start() opens a new stream with its own id. Events carry that id so the
main loop can discard events from a stream that has since been torn down.
"""

import logging
import queue
import threading
import time
from typing import Callable, List, Optional, Tuple

import cv2

from .constraints import ConstraintProfile
from .errors import CameraError, CameraErrorKind
from .events import Decoded, DecodeFailed, ScanEvent
from .qr_detector import QRCodeDetection, QRDetector, pick_detection

logger = logging.getLogger(__name__)

CameraOpener = Callable[[ConstraintProfile], "cv2.VideoCapture"]


class _FPSCounter:
    """Simple FPS counter that updates every second."""

    def __init__(self):
        self._count = 0
        self._last_time = time.monotonic()
        self.fps = 0.0

    def tick(self):
        self._count += 1
        now = time.monotonic()
        elapsed = now - self._last_time
        if elapsed >= 1.0:
            self.fps = self._count / elapsed
            self._count = 0
            self._last_time = now


class _LatestFrame:
    """Thread-safe storage for latest captured frame with version tracking."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frame = None
        self._detections: List[QRCodeDetection] = []
        self._version = 0

    def update(self, frame) -> None:
        with self._lock:
            self._frame = frame
            self._version += 1

    def update_detections(self, detections: List[QRCodeDetection]) -> None:
        with self._lock:
            self._detections = detections

    def snapshot(self):
        with self._lock:
            return self._frame, self._version

    def detections(self) -> List[QRCodeDetection]:
        with self._lock:
            return list(self._detections)


class DecoderAdapter:
    """
    Runs one camera stream at a time and reports decodes and failures.

    Successful decodes are reported when the decoded text changes; the main
    loop never sees the same code once per frame.
    """

    def __init__(
        self,
        opener: CameraOpener,
        detector: QRDetector,
        events: "queue.Queue",
        *,
        mirror: bool = False,
        max_read_failures: int = 100,
        join_timeout: float = 1.0,
    ):
        self._opener = opener
        self._detector = detector
        self._events = events
        self._mirror = mirror
        self._max_read_failures = max_read_failures
        self._join_timeout = join_timeout
        self._stream = 0
        self._stop: Optional[threading.Event] = None
        self._released: Optional[threading.Event] = None
        self._threads: List[threading.Thread] = []
        self._latest = _LatestFrame()
        self.capture_fps = _FPSCounter()
        self.detect_fps = _FPSCounter()

    @property
    def stream(self) -> int:
        return self._stream

    @property
    def running(self) -> bool:
        return self._stop is not None and not self._stop.is_set()

    def is_current(self, stream: int) -> bool:
        return stream == self._stream

    def start(self, profile: ConstraintProfile) -> int:
        if self.running:
            self.stop()
        self._stream += 1
        self._stop = threading.Event()
        self._released = threading.Event()
        self._latest = _LatestFrame()
        ready = threading.Event()
        capture = threading.Thread(
            target=self._run_capture,
            args=(profile, self._stream, self._stop, ready, self._latest, self._released),
            daemon=True,
        )
        detection = threading.Thread(
            target=self._run_detection,
            args=(self._stream, self._stop, ready, self._latest),
            daemon=True,
        )
        self._threads = [capture, detection]
        for thread in self._threads:
            thread.start()
        logger.info("Stream %d starting with profile rank %d", self._stream, profile.rank)
        return self._stream

    def stop(self) -> None:
        """Signal the stream to stop and block until its camera is released.

        A capture thread may still be inside the opener; the next stream must
        not open the device before that open has been undone.
        """
        if self._stop is None:
            return
        self._stop.set()
        if self._released is not None:
            while not self._released.wait(timeout=self._join_timeout):
                logger.warning("Stream %d still waiting for camera release", self._stream)
        for thread in self._threads:
            thread.join(timeout=self._join_timeout)
            if thread.is_alive():
                logger.warning("Stream %d thread did not stop in time", self._stream)
        self._threads = []
        logger.info("Stream %d stopped", self._stream)

    def restart(self, profile: ConstraintProfile, settle_seconds: float) -> int:
        """Tear down the current stream, wait for the device to settle, start again."""
        self.stop()
        if settle_seconds > 0:
            time.sleep(settle_seconds)
        return self.start(profile)

    def preview(self) -> Tuple[Optional[object], List[QRCodeDetection]]:
        frame, _ = self._latest.snapshot()
        return frame, self._latest.detections()

    def _fail(self, kind: CameraErrorKind, message: str, stream: int) -> None:
        logger.warning("Stream %d failed (%s): %s", stream, kind.value, message)
        self._events.put(DecodeFailed(kind=kind, message=message, stream=stream))

    def _run_capture(self, profile, stream, stop, ready, latest, released) -> None:
        cap = None
        try:
            try:
                cap = self._opener(profile)
            except CameraError as exc:
                stop.set()
                self._fail(exc.kind, exc.message, stream)
                return
            except Exception as exc:
                logger.exception("Stream %d: unexpected error opening camera", stream)
                stop.set()
                self._fail(CameraErrorKind.OTHER, str(exc), stream)
                return
            ready.set()
            self._read_frames(cap, stream, stop, latest)
        finally:
            if cap is not None:
                cap.release()
            released.set()

    def _read_frames(self, cap, stream, stop, latest) -> None:
        failures = 0
        while not stop.is_set():
            ok, frame = cap.read()
            if not ok:
                failures += 1
                if failures >= self._max_read_failures:
                    stop.set()
                    self._fail(
                        CameraErrorKind.OTHER,
                        "Camera stopped delivering frames.",
                        stream,
                    )
                    return
                time.sleep(0.01)
                continue
            failures = 0
            if self._mirror:
                frame = cv2.flip(frame, 1)
            latest.update(frame)
            self.capture_fps.tick()

    def _run_detection(self, stream, stop, ready, latest) -> None:
        last_seen = -1
        last_text: Optional[str] = None
        while not stop.is_set():
            if not ready.wait(timeout=0.05):
                continue
            frame, version = latest.snapshot()
            if frame is None or version == last_seen:
                time.sleep(0.005)
                continue
            last_seen = version
            detections = self._detector.detect(frame)
            latest.update_detections(detections)
            self.detect_fps.tick()
            best = pick_detection(detections)
            if best is None or best.text == last_text:
                continue
            last_text = best.text
            scan = ScanEvent(raw_text=best.text, timestamp=time.time())
            self._events.put(Decoded(scan=scan, stream=stream))
