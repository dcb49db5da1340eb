"""Camera capture configuration and initialization."""

import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Optional

import cv2

from .constraints import ConstraintProfile
from .errors import CameraNotFound, CameraPermissionDenied, ConstraintIncompatible

logger = logging.getLogger(__name__)


def _device_node(index: int) -> Optional[Path]:
    if not sys.platform.startswith("linux"):
        return None
    return Path(f"/dev/video{index}")


def _check_device_access(index: int) -> None:
    node = _device_node(index)
    if node is None or not node.exists():
        return
    if not os.access(node, os.R_OK | os.W_OK):
        raise CameraPermissionDenied(
            f"Camera access denied for {node}. Please allow camera permissions."
        )


def resolve_index(
    profile: ConstraintProfile, facing_indices: Mapping[str, int], default_index: int
) -> int:
    if profile.facing is None:
        return default_index
    return facing_indices.get(profile.facing, default_index)


def open_camera(
    profile: ConstraintProfile,
    facing_indices: Mapping[str, int],
    default_index: int = 0,
) -> cv2.VideoCapture:
    """
    Open a camera device honouring a constraint profile.

    Args:
        profile: Active rung of the constraint ladder
        facing_indices: Device index per facing ("environment", "user")
        default_index: Device used when the profile has no facing preference

    Returns:
        Configured VideoCapture object ready for threaded reading

    Raises:
        CameraPermissionDenied: device node exists but is not accessible
        ConstraintIncompatible: facing device missing or resolution out of range
        CameraNotFound: no device could be opened without constraints
    """
    index = resolve_index(profile, facing_indices, default_index)
    _check_device_access(index)

    cap = cv2.VideoCapture(index)
    if not cap.isOpened():
        cap.release()
        if profile.unconstrained:
            raise CameraNotFound(f"No camera found at index {index}.")
        raise ConstraintIncompatible(
            f"Camera index {index} unavailable for profile rank {profile.rank}."
        )

    # MJPG keeps USB 2.0 webcams at 30 FPS for larger frame sizes.
    cap.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*"MJPG"))
    if profile.width and profile.width.ideal:
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, profile.width.ideal)
    if profile.height and profile.height.ideal:
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, profile.height.ideal)
    cap.set(cv2.CAP_PROP_FPS, 30)
    # Minimize internal buffer to reduce latency in threaded capture
    cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

    width = cap.get(cv2.CAP_PROP_FRAME_WIDTH)
    height = cap.get(cv2.CAP_PROP_FRAME_HEIGHT)
    if (profile.width and not profile.width.accepts(width)) or (
        profile.height and not profile.height.accepts(height)
    ):
        cap.release()
        raise ConstraintIncompatible(
            f"Camera {index} delivers {width:.0f}x{height:.0f}, "
            f"outside the range of profile rank {profile.rank}."
        )

    logger.info(
        "Camera %d opened at %.0fx%.0f (rank %d)", index, width, height, profile.rank
    )
    return cap
