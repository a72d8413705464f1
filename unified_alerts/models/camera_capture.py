# unified_alerts/models/camera_capture.py
"""
Camera capture log — one row per camera frame downloaded for an alert.
Audit trail only; nothing reads it back during a run.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from unified_alerts.database import Base


class CameraCapture(Base):
    __tablename__ = "camera_captures"

    id = Column(Integer, primary_key=True, autoincrement=True)
    incident_id = Column(Integer, nullable=False, index=True)
    camera_name = Column(String(200), nullable=False)
    file_path = Column(Text, nullable=False)
    captured_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<CameraCapture {self.id} incident={self.incident_id} cam={self.camera_name}>"
