"""Unit tests for the camera snapshot service."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import httpx
from unittest.mock import MagicMock
from sqlalchemy.exc import OperationalError
from unified_alerts.models.camera_capture import CameraCapture
from unified_alerts.schemas.camera import CameraOut
from unified_alerts.services.snapshot_service import capture_camera_image, remove_capture

CAMERA = CameraOut(name="I-40 at Wade Ave", image_url="https://cams.example/i40.jpg")


def make_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestCaptureCameraImage:
    def test_saves_frame_and_logs_capture(self, tmp_path):
        db = MagicMock()
        client = make_client(lambda request: httpx.Response(200, content=b"FRAME"))

        image = capture_camera_image(db, client, 7, CAMERA, str(tmp_path))

        assert image is not None
        assert image.filename.startswith("incident_7_cam_") and image.filename.endswith(".jpg")
        assert os.path.dirname(image.path) == str(tmp_path)
        with open(image.path, "rb") as f:
            assert f.read() == b"FRAME"

        added = db.add.call_args[0][0]
        assert isinstance(added, CameraCapture)
        assert added.incident_id == 7
        assert added.camera_name == "I-40 at Wade Ave"
        assert added.file_path == image.path
        db.commit.assert_called_once()

    def test_non_200_returns_none(self, tmp_path):
        db = MagicMock()
        client = make_client(lambda request: httpx.Response(404))

        assert capture_camera_image(db, client, 7, CAMERA, str(tmp_path)) is None
        assert os.listdir(tmp_path) == []
        db.add.assert_not_called()

    def test_transport_error_returns_none(self, tmp_path):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        db = MagicMock()
        assert capture_camera_image(db, make_client(handler), 7, CAMERA, str(tmp_path)) is None
        assert os.listdir(tmp_path) == []

    def test_audit_failure_does_not_fail_capture(self, tmp_path):
        db = MagicMock()
        db.commit.side_effect = OperationalError("INSERT", {}, Exception("db down"))
        client = make_client(lambda request: httpx.Response(200, content=b"FRAME"))

        image = capture_camera_image(db, client, 8, CAMERA, str(tmp_path))

        assert image is not None
        assert os.path.exists(image.path)
        db.rollback.assert_called_once()


class TestRemoveCapture:
    def test_removes_file(self, tmp_path):
        path = tmp_path / "frame.jpg"
        path.write_bytes(b"x")
        remove_capture(str(path))
        assert not path.exists()

    def test_missing_file_is_ignored(self, tmp_path):
        remove_capture(str(tmp_path / "gone.jpg"))
        remove_capture(None)
