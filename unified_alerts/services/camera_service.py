# unified_alerts/services/camera_service.py
"""
Nearest traffic cameras to an incident, ordered by PostGIS KNN distance
(geom <-> point) on the traffic_cameras geography column.
"""

from typing import List

from geoalchemy2 import Geography
from sqlalchemy import cast, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from unified_alerts.models.traffic_camera import TrafficCamera
from unified_alerts.schemas.camera import CameraOut
from unified_alerts.utils.logger import get_logger

logger = get_logger(__name__)


def find_nearby_cameras(db: Session, lat: float, lon: float, limit: int = 3) -> List[CameraOut]:
    """Returns up to `limit` cameras closest to (lat, lon). Empty list on error."""
    point = cast(func.ST_SetSRID(func.ST_MakePoint(lon, lat), 4326), Geography)
    try:
        rows = (
            db.query(TrafficCamera.name, TrafficCamera.image_url)
            .order_by(TrafficCamera.geom.op("<->")(point))
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Could not fetch nearby cameras for ({lat}, {lon}): {e}")
        return []
    return [CameraOut.model_validate(row) for row in rows]
