"""
OpenCV-based preview window.

Shows the live camera feed with overlays:
- QR detection outlines (green)
- Camera mode (Back Camera / Front Camera / Basic Mode)
- Latest scan, extracted token and lookup status
- Recent scans
- Capture/detection FPS

Controls:
- space: start/stop scanner
- 's': switch camera
- 'r': retry lookup for the current token
- 'c': copy latest scan
- 'o': open latest scan (or the part's linked asset) in the browser
- 'q': quit
"""

from typing import Iterable, Optional, Tuple

import cv2
import numpy as np

from .qr_detector import QRCodeDetection
from .session import LookupStatus, ScanSession

ACTION_KEYS = {
    ord(" "): "toggle",
    ord("s"): "switch-camera",
    ord("r"): "manual-lookup",
    ord("c"): "copy",
    ord("o"): "open-link",
    ord("q"): "quit",
}


def status_line(session: ScanSession) -> str:
    if session.status == LookupStatus.IDLE:
        return "Lookup: waiting for first scan"
    if session.status == LookupStatus.IN_FLIGHT:
        return f"Lookup: {session.token} ..."
    if session.status == LookupStatus.RESOLVED and session.record:
        r = session.record
        return f"{r.id}: {r.name} | qty {r.quantity} | {r.position}"
    return f"Lookup: {session.reason or session.status.value}"


class PreviewWindow:
    """Debug visualization; returns user actions instead of acting on them."""

    def __init__(self, window_name: str = "partscanner", blank_size=(480, 640)):
        self.neon = (57, 255, 20)
        self.red = (0, 0, 255)
        self.window_name = window_name
        self._blank_size = blank_size
        cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)

    def render(
        self,
        frame,
        detections: Iterable[QRCodeDetection],
        session: ScanSession,
        mode_label: str,
        message: Optional[str] = None,
        perf: Optional[Tuple[float, float]] = None,
    ) -> Optional[str]:
        """
        Draw overlays on a copy of frame and show it.

        Args:
            frame: Camera frame, or None while the scanner is stopped
            detections: Detections for the frame
            session: Scan session to summarise
            mode_label: Active camera mode label
            message: Last user-facing message (errors, confirmations)
            perf: (capture fps, detection fps)

        Returns:
            The user action for the pressed key, if any
        """
        if frame is None:
            frame = np.zeros((*self._blank_size, 3), dtype="uint8")
        else:
            frame = frame.copy()
        height = frame.shape[0]

        for det in detections:
            pts = [(int(x), int(y)) for x, y in det.points]
            cv2.polylines(frame, [np.array(pts, dtype="int32")], True, self.neon, 4)

        lines = [
            f"Mode: {mode_label}",
            f"Latest: {session.latest.raw_text if session.latest else '-'}",
            status_line(session),
        ]
        lines += [f"  {scan.raw_text}" for scan in session.history[1:]]
        y = 30
        for line in lines:
            self._text(frame, line, (10, y), self.neon)
            y += 32
        if message:
            self._text(frame, message, (10, height - 44), self.red)
        if perf is not None:
            cap_fps, det_fps = perf
            self._text(
                frame, f"CAP {cap_fps:.0f}fps | DET {det_fps:.0f}fps", (10, height - 12), self.neon
            )

        try:
            if cv2.getWindowProperty(self.window_name, cv2.WND_PROP_VISIBLE) < 1:
                return "quit"
            cv2.imshow(self.window_name, frame)
        except cv2.error:
            pass
        return self.poll()

    def poll(self) -> Optional[str]:
        try:
            key = cv2.waitKey(1) & 0xFF
        except cv2.error:
            return None
        return ACTION_KEYS.get(key)

    def close(self) -> None:
        cv2.destroyWindow(self.window_name)

    @staticmethod
    def _text(frame, text: str, origin, color) -> None:
        cv2.putText(
            frame, text, origin, cv2.FONT_HERSHEY_SIMPLEX, 0.8, color, 2, cv2.LINE_AA
        )
