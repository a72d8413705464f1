# unified_alerts/models/traffic_camera.py
"""
Traffic camera directory. Read-only reference data; geom is a PostGIS
geography point used for nearest-camera lookups.
"""

from geoalchemy2 import Geography
from sqlalchemy import Column, Integer, String, Text
from unified_alerts.database import Base


class TrafficCamera(Base):
    __tablename__ = "traffic_cameras"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    image_url = Column(Text, nullable=False)
    geom = Column(Geography(geometry_type="POINT", srid=4326), nullable=False)

    def __repr__(self):
        return f"<TrafficCamera {self.id} name={self.name}>"
