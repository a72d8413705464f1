# Unified Alerts — Database Models
# Import all models here for SQLAlchemy discovery

from unified_alerts.models.incident import UnifiedIncident       # noqa
from unified_alerts.models.traffic_camera import TrafficCamera   # noqa
from unified_alerts.models.camera_capture import CameraCapture   # noqa
