# unified_alerts/services/notifier.py
"""
One pass of the alert job.

Pass 1: active incidents without an alert → build payload (+ camera frame,
        map, weather) → POST to Discord → store the message id.
Pass 2: cleared incidents that still have a message → PATCH it to the
        "Incident Cleared" embed → null the message id.

Per-incident failures are logged and skipped; the incident keeps its state
and is picked up again by the next scheduled run. Failing queries propagate.
"""

import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import httpx
from sqlalchemy.orm import Session

from unified_alerts.config import Settings
from unified_alerts.models.incident import UnifiedIncident
from unified_alerts.schemas.camera import CameraOut
from unified_alerts.services.camera_service import find_nearby_cameras
from unified_alerts.services.discord_service import DiscordWebhook, WebhookError
from unified_alerts.services.incident_service import clear_message_id, get_cleared_incidents, get_new_incidents
from unified_alerts.services.payload_builder import UnknownSourceError, build_cleared_payload, get_builder
from unified_alerts.services.sent_state import ColumnSentState
from unified_alerts.services.snapshot_service import capture_camera_image, remove_capture
from unified_alerts.utils.json_parser import pretty_json
from unified_alerts.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RunSummary:
    notified: int = 0
    cleared: int = 0
    failed: int = 0
    skipped: int = 0


class AlertRunner:
    def __init__(self, db: Session, webhook: DiscordWebhook, http_client: httpx.Client, config: Settings,
                 sent_state: Optional[ColumnSentState] = None, sleep: Callable[[float], None] = time.sleep):
        self.db = db
        self.webhook = webhook
        self.http_client = http_client
        self.config = config
        self.sent_state = sent_state or ColumnSentState()
        self.sleep = sleep

    def run(self) -> RunSummary:
        summary = RunSummary()
        self.process_new_incidents(summary)
        self.process_cleared_incidents(summary)
        logger.info(
            f"Run finished: {summary.notified} notified, {summary.cleared} cleared, "
            f"{summary.failed} failed, {summary.skipped} skipped"
        )
        return summary

    # ── Pass 1 ───────────────────────────────────────────────────────────
    def process_new_incidents(self, summary: RunSummary):
        incidents = get_new_incidents(self.db, include_notified=self.sent_state.include_notified)
        sent_before = summary.notified

        for incident in incidents:
            if self.sent_state.is_sent(incident):
                continue
            logger.info(f"Found new unified incident from {incident.source} (ID: {incident.source_id}).")

            if not self.config.NOTIFY_DISCORD:
                logger.info(f"--- DEBUG MODE: NOTIFY_DISCORD=0 ---\n{pretty_json(incident.details)}")
                summary.skipped += 1
                continue

            try:
                message_id = self.send_incident_alert(incident)
            except UnknownSourceError as e:
                logger.error(f"Skipping incident {incident.id}: {e}")
                summary.failed += 1
                continue
            except WebhookError as e:
                logger.error(f"Error sending Discord alert for incident {incident.id}: {e}")
                summary.failed += 1
                self.sleep(self.config.SEND_DELAY_SECONDS)
                continue
            except Exception as e:
                logger.error(f"Unexpected error alerting incident {incident.id}: {e}", exc_info=True)
                self.db.rollback()
                summary.failed += 1
                continue

            if self.sent_state.mark_sent(self.db, incident, message_id):
                summary.notified += 1
            else:
                summary.failed += 1
            self.sleep(self.config.SEND_DELAY_SECONDS)

        logger.info(f"Processed {summary.notified - sent_before} new alerts.")
        if summary.notified > sent_before:
            try:
                self.sent_state.flush()
            except OSError as e:
                logger.error(f"Could not save sent state: {e}")

    def send_incident_alert(self, incident: UnifiedIncident) -> str:
        """Build and post the alert for one incident. Returns the Discord message id."""
        builder = get_builder(
            incident.source,
            maps_api_key=self.config.GOOGLE_MAPS_API_KEY,
            username=self.config.BOT_USERNAME,
            log_raw_details=self.config.LOG_RAW_DETAILS,
        )

        cameras: List[CameraOut] = []
        if builder.uses_cameras and incident.has_coordinates:
            cameras = find_nearby_cameras(self.db, incident.latitude, incident.longitude,
                                          self.config.NEARBY_CAMERA_LIMIT)

        capture = None
        if cameras and self.config.CAMERA_ATTACHMENTS:
            capture = capture_camera_image(self.db, self.http_client, incident.id, cameras[0],
                                           self.config.CAPTURE_DIR)
        try:
            payload = builder.build(incident, cameras, capture.filename if capture else None)
            logger.info(f"Sending alert to Discord for incident {incident.id}...")
            return self.webhook.post_message(payload, capture.path if capture else None)
        finally:
            if capture:
                remove_capture(capture.path)

    # ── Pass 2 ───────────────────────────────────────────────────────────
    def process_cleared_incidents(self, summary: RunSummary):
        incidents = get_cleared_incidents(self.db)
        cleared_before = summary.cleared

        for incident in incidents:
            logger.info(f"Found cleared incident from {incident.source} (ID: {incident.id}). Updating message.")
            try:
                self.webhook.edit_message(incident.discord_message_id,
                                          build_cleared_payload(incident.source, incident.address))
            except WebhookError as e:
                logger.error(f"Error updating Discord alert for incident {incident.id}: {e}")
                summary.failed += 1
                self.sleep(self.config.SEND_DELAY_SECONDS)
                continue

            if clear_message_id(self.db, incident):
                summary.cleared += 1
            else:
                summary.failed += 1
            self.sleep(self.config.SEND_DELAY_SECONDS)

        logger.info(f"Processed {summary.cleared - cleared_before} cleared alerts.")
