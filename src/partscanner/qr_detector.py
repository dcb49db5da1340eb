from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

BACKENDS = ("opencv", "opencv_aruco", "pyzbar", "zxingcpp")


@dataclass
class QRCodeDetection:
    text: str
    points: List[Tuple[float, float]]
    center: Tuple[float, float]
    area: float


def _polygon_area(points: np.ndarray) -> float:
    if points.shape[0] < 3:
        return 0.0
    return float(cv2.contourArea(points.astype("float32")))


def _detection(text: str, points: Sequence[Tuple[float, float]]) -> QRCodeDetection:
    quad = [(float(x), float(y)) for x, y in points]
    center_x = sum(p[0] for p in quad) / len(quad)
    center_y = sum(p[1] for p in quad) / len(quad)
    return QRCodeDetection(
        text=text,
        points=quad,
        center=(center_x, center_y),
        area=_polygon_area(np.array(quad)),
    )


class QRDetector:
    def __init__(self, backend: str = "opencv"):
        if backend not in BACKENDS:
            raise ValueError(f"Unknown QR backend {backend!r}; choose from {BACKENDS}")
        self.backend = backend
        self._opencv = None
        self._pyzbar = None
        self._zxingcpp = None

        if backend == "pyzbar":
            try:
                from pyzbar import pyzbar  # type: ignore
            except ImportError as exc:
                raise RuntimeError(
                    "pyzbar is not installed; install partscanner[pyzbar] or use backend=opencv"
                ) from exc
            self._pyzbar = pyzbar
        elif backend == "zxingcpp":
            try:
                import zxingcpp  # type: ignore
            except ImportError as exc:
                raise RuntimeError(
                    "zxing-cpp is not installed; install partscanner[zxing]"
                ) from exc
            self._zxingcpp = zxingcpp
        elif backend == "opencv_aruco":
            self._opencv = cv2.QRCodeDetectorAruco()
        else:
            self._opencv = cv2.QRCodeDetector()

    def detect(self, frame) -> List[QRCodeDetection]:
        if self.backend == "pyzbar":
            return _detect_pyzbar(frame, self._pyzbar)
        if self.backend == "zxingcpp":
            return _detect_zxingcpp(frame, self._zxingcpp)
        return _detect_opencv(frame, self._opencv)


def pick_detection(detections: Sequence[QRCodeDetection]) -> Optional[QRCodeDetection]:
    """Largest code by area wins when several are in view."""
    if not detections:
        return None
    return max(detections, key=lambda d: d.area)


def _detect_opencv(frame, detector) -> List[QRCodeDetection]:
    ok, decoded_info, points, _ = detector.detectAndDecodeMulti(frame)
    if ok and decoded_info and points is not None:
        return [
            _detection(text, quad) for text, quad in zip(decoded_info, points) if text
        ]
    try:
        result = detector.detectAndDecode(frame)
    except cv2.error:
        return []
    text, points = result[0], result[1]
    if text and points is not None:
        return [_detection(text, points[0])]
    return []


def _detect_pyzbar(frame, pyzbar) -> List[QRCodeDetection]:
    detections: List[QRCodeDetection] = []
    gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY) if frame.ndim == 3 else frame
    for obj in pyzbar.decode(gray):
        text = obj.data.decode("utf-8", errors="replace")
        if obj.polygon:
            quad = [(p.x, p.y) for p in obj.polygon]
        else:
            r = obj.rect
            quad = [
                (r.left, r.top),
                (r.left + r.width, r.top),
                (r.left + r.width, r.top + r.height),
                (r.left, r.top + r.height),
            ]
        detections.append(_detection(text, quad))
    return detections


def _detect_zxingcpp(frame, zxingcpp) -> List[QRCodeDetection]:
    detections: List[QRCodeDetection] = []
    for result in zxingcpp.read_barcodes(frame):
        if not result.text:
            continue
        pos = result.position
        quad = [
            (pos.top_left.x, pos.top_left.y),
            (pos.top_right.x, pos.top_right.y),
            (pos.bottom_right.x, pos.bottom_right.y),
            (pos.bottom_left.x, pos.bottom_left.y),
        ]
        detections.append(_detection(result.text, quad))
    return detections
