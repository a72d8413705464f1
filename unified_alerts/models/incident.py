# unified_alerts/models/incident.py
"""
Unified incidents table — one row per incident from every upstream feed.
Rows and their status are written by the ingester; this job only writes
discord_message_id (set after a post, cleared after the "cleared" edit).
"""

from sqlalchemy import Column, Integer, String, DateTime, Float, Text
from sqlalchemy.dialects.postgresql import JSONB
from unified_alerts.database import Base

STATUS_ACTIVE = "active"
STATUS_CLEARED = "cleared"


class UnifiedIncident(Base):
    __tablename__ = "unified_incidents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source = Column(String(50), nullable=False, index=True)       # NCDOT | RWECC | ArcGIS_Police
    source_id = Column(String(100), nullable=False)
    event_type = Column(String(200))
    address = Column(Text)
    latitude = Column(Float)
    longitude = Column(Float)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    details = Column(JSONB)
    status = Column(String(20), nullable=False, index=True, default=STATUS_ACTIVE)
    discord_message_id = Column(String(50))

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def __repr__(self):
        return f"<UnifiedIncident {self.id} source={self.source} status={self.status}>"
