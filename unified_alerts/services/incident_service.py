# unified_alerts/services/incident_service.py
"""
Queries and updates against unified_incidents.
This job only ever writes discord_message_id; every update commits immediately.
"""

from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from unified_alerts.models.incident import STATUS_ACTIVE, STATUS_CLEARED, UnifiedIncident
from unified_alerts.utils.logger import get_logger

logger = get_logger(__name__)


def get_new_incidents(db: Session, include_notified: bool = False) -> List[UnifiedIncident]:
    """Active incidents still waiting for an alert, oldest id first."""
    query = db.query(UnifiedIncident).filter(UnifiedIncident.status == STATUS_ACTIVE)
    if not include_notified:
        query = query.filter(UnifiedIncident.discord_message_id.is_(None))
    return query.order_by(UnifiedIncident.id).all()


def get_cleared_incidents(db: Session) -> List[UnifiedIncident]:
    """Cleared incidents whose alert message is still live."""
    return (
        db.query(UnifiedIncident)
        .filter(UnifiedIncident.status == STATUS_CLEARED, UnifiedIncident.discord_message_id.is_not(None))
        .order_by(UnifiedIncident.id)
        .all()
    )


def set_message_id(db: Session, incident: UnifiedIncident, message_id: str) -> bool:
    incident.discord_message_id = message_id
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error saving discord_message_id for incident {incident.id}: {e}")
        return False
    return True


def clear_message_id(db: Session, incident: UnifiedIncident) -> bool:
    incident.discord_message_id = None
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error nullifying discord_message_id for incident {incident.id}: {e}")
        return False
    return True
