import cv2
import pytest

from partscanner import camera
from partscanner.constraints import DEFAULT_LADDER, FACING_USER, ConstraintProfile
from partscanner.errors import CameraNotFound, CameraPermissionDenied, ConstraintIncompatible

FACINGS = {"environment": 0, "user": 1}


class FakeCapture:
    opened_indices = {0, 1}
    size = (1280, 720)
    instances = []

    def __init__(self, index):
        self.index = index
        self.props = {}
        self.released = False
        FakeCapture.instances.append(self)

    def isOpened(self):
        return self.index in self.opened_indices

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def get(self, prop):
        if prop == cv2.CAP_PROP_FRAME_WIDTH:
            return float(self.size[0])
        if prop == cv2.CAP_PROP_FRAME_HEIGHT:
            return float(self.size[1])
        return 0.0

    def release(self):
        self.released = True


@pytest.fixture(autouse=True)
def fake_capture(monkeypatch):
    FakeCapture.opened_indices = {0, 1}
    FakeCapture.size = (1280, 720)
    FakeCapture.instances = []
    monkeypatch.setattr(camera.cv2, "VideoCapture", FakeCapture)
    monkeypatch.setattr(camera, "_device_node", lambda index: None)
    return FakeCapture


def test_opens_facing_device_with_ideal_resolution():
    cap = camera.open_camera(DEFAULT_LADDER[0], FACINGS)
    assert cap.index == 0
    assert cap.props[cv2.CAP_PROP_FRAME_WIDTH] == 640
    assert cap.props[cv2.CAP_PROP_FRAME_HEIGHT] == 480
    assert not cap.released


def test_user_facing_uses_its_index():
    profile = ConstraintProfile(rank=1, facing=FACING_USER)
    assert camera.open_camera(profile, FACINGS).index == 1


def test_resolution_outside_window_is_incompatible(fake_capture):
    fake_capture.size = (3840, 2160)
    with pytest.raises(ConstraintIncompatible):
        camera.open_camera(DEFAULT_LADDER[0], FACINGS)
    assert fake_capture.instances[-1].released
    # the facing-only rung accepts any size
    assert camera.open_camera(DEFAULT_LADDER[1], FACINGS).index == 0


def test_missing_facing_device_is_incompatible(fake_capture):
    fake_capture.opened_indices = {0}
    profile = ConstraintProfile(rank=1, facing=FACING_USER)
    with pytest.raises(ConstraintIncompatible):
        camera.open_camera(profile, FACINGS)


def test_no_device_without_constraints(fake_capture):
    fake_capture.opened_indices = set()
    with pytest.raises(CameraNotFound):
        camera.open_camera(DEFAULT_LADDER[-1], FACINGS, default_index=0)


def test_inaccessible_device_node_is_permission_denied(monkeypatch, tmp_path):
    node = tmp_path / "video0"
    node.write_text("")
    monkeypatch.setattr(camera, "_device_node", lambda index: node)
    monkeypatch.setattr(camera.os, "access", lambda path, mode: False)
    with pytest.raises(CameraPermissionDenied):
        camera.open_camera(DEFAULT_LADDER[-1], FACINGS)
