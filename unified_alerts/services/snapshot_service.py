# unified_alerts/services/snapshot_service.py
"""
Snapshot service — downloads the current frame of a traffic camera so it
can be attached to a Discord alert.

Saves to:  {CAPTURE_DIR or temp dir}/incident_{id}_cam_{timestamp}.jpg
The caller owns the file and must remove it once the webhook call is done.
"""

import os
import tempfile
from datetime import datetime
from typing import NamedTuple, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from unified_alerts.models.camera_capture import CameraCapture
from unified_alerts.schemas.camera import CameraOut
from unified_alerts.utils.logger import get_logger

logger = get_logger(__name__)


class CapturedImage(NamedTuple):
    path: str
    filename: str


def capture_camera_image(db: Session, client: httpx.Client, incident_id: int, camera: CameraOut,
                         capture_dir: Optional[str] = None) -> Optional[CapturedImage]:
    """
    Fetch a camera frame and save it locally.
    Returns the saved image, or None if it failed.
    """
    logger.info(f"[SNAPSHOT] Capturing image from camera: {camera.name}")
    timestamp = datetime.utcnow().strftime("%Y%m%d%H%M%S%f")
    filename = f"incident_{incident_id}_cam_{timestamp}.jpg"
    filepath = os.path.join(capture_dir or tempfile.gettempdir(), filename)

    try:
        with client.stream("GET", camera.image_url) as response:
            if response.status_code != 200:
                logger.warning(f"[SNAPSHOT] {camera.name} returned HTTP {response.status_code}")
                return None
            with open(filepath, "wb") as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)
    except (httpx.HTTPError, OSError) as e:
        logger.error(f"[SNAPSHOT] Failed for {camera.name}: {e}")
        remove_capture(filepath)
        return None

    try:
        db.add(CameraCapture(incident_id=incident_id, camera_name=camera.name, file_path=filepath))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"[SNAPSHOT] Failed to log camera capture to DB: {e}")

    logger.info(f"[SNAPSHOT] Saved camera frame to {filepath}")
    return CapturedImage(path=filepath, filename=filename)


def remove_capture(path: Optional[str]):
    if not path:
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"[SNAPSHOT] Could not remove {path}: {e}")
