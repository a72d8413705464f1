"""Unit tests for one alert run (new + cleared passes)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch
from unified_alerts.config import Settings
from unified_alerts.models.incident import UnifiedIncident
from unified_alerts.schemas.camera import CameraOut
from unified_alerts.services.discord_service import WebhookError
from unified_alerts.services.notifier import AlertRunner
from unified_alerts.services.sent_state import FileSentState
from unified_alerts.services.snapshot_service import CapturedImage

NCDOT_DETAILS = {"raw_incident": {"reason": "Crash", "road": "I-40", "location": "Exit 12", "severity": 2}}


def make_config(**overrides):
    values = dict(DISCORD_HOOK="https://discord.example/hook", GOOGLE_MAPS_API_KEY=None, NOTIFY_DISCORD=True,
                  SEND_DELAY_SECONDS=2.0, NEARBY_CAMERA_LIMIT=3, CAMERA_ATTACHMENTS=True, CAPTURE_DIR=None,
                  SENT_STATE_MODE="column", LOG_RAW_DETAILS=False)
    values.update(overrides)
    return Settings(**values)


def make_incident(id=1, source="NCDOT", status="active", message_id=None, lat=None, lon=None, details=None):
    return UnifiedIncident(
        id=id, source=source, source_id=f"SRC-{id}", event_type="Crash", address=f"{id} Main St",
        latitude=lat, longitude=lon, timestamp=datetime(2024, 1, 2, 20, 4, tzinfo=timezone.utc),
        details=details if details is not None else NCDOT_DETAILS, status=status,
        discord_message_id=message_id,
    )


def make_runner(config=None, sent_state=None):
    webhook = MagicMock()
    sleep = MagicMock()
    runner = AlertRunner(MagicMock(), webhook, MagicMock(), config or make_config(), sent_state, sleep=sleep)
    return runner, webhook, sleep


def active_query(incidents):
    """Mimics the store: only active incidents without a message id."""
    def query(db, include_notified=False):
        return [i for i in incidents
                if i.status == "active" and (include_notified or i.discord_message_id is None)]
    return query


def cleared_query(incidents):
    def query(db):
        return [i for i in incidents if i.status == "cleared" and i.discord_message_id is not None]
    return query


@pytest.fixture
def store():
    incidents = []
    with patch("unified_alerts.services.notifier.get_new_incidents", side_effect=active_query(incidents)), \
         patch("unified_alerts.services.notifier.get_cleared_incidents", side_effect=cleared_query(incidents)):
        yield incidents


class TestNewIncidents:
    def test_active_incident_is_notified_once(self, store):
        incident = make_incident()
        store.append(incident)
        runner, webhook, sleep = make_runner()
        webhook.post_message.return_value = "m-1"

        summary = runner.run()

        assert summary.notified == 1
        assert incident.discord_message_id == "m-1"
        webhook.post_message.assert_called_once()
        payload = webhook.post_message.call_args[0][0]
        assert payload.embeds[0].color == 16776960
        sleep.assert_called_with(2.0)

        # Second run with no new data sends nothing
        runner.run()
        webhook.post_message.assert_called_once()

    def test_send_failure_does_not_block_next_incident(self, store):
        first, second = make_incident(1), make_incident(2)
        store.extend([first, second])
        runner, webhook, _ = make_runner()
        webhook.post_message.side_effect = [WebhookError("boom", 500), "m-2"]

        summary = runner.run()

        assert first.discord_message_id is None
        assert second.discord_message_id == "m-2"
        assert summary.failed == 1
        assert summary.notified == 1

        # The failed incident is retried on the next run
        webhook.post_message.side_effect = None
        webhook.post_message.return_value = "m-1"
        runner.run()
        assert first.discord_message_id == "m-1"

    def test_unknown_source_is_skipped(self, store):
        bad, good = make_incident(1, source="WAZE"), make_incident(2)
        store.extend([bad, good])
        runner, webhook, _ = make_runner()
        webhook.post_message.return_value = "m-2"

        summary = runner.run()

        webhook.post_message.assert_called_once()
        assert bad.discord_message_id is None
        assert summary.failed == 1

    def test_debug_mode_sends_nothing(self, store):
        incident = make_incident()
        store.append(incident)
        runner, webhook, _ = make_runner(make_config(NOTIFY_DISCORD=False))

        summary = runner.run()

        webhook.post_message.assert_not_called()
        assert summary.skipped == 1
        assert incident.discord_message_id is None

    def test_failed_message_id_save_counts_as_failure(self, store):
        store.append(make_incident())
        runner, webhook, _ = make_runner()
        webhook.post_message.return_value = "m-1"

        with patch("unified_alerts.services.sent_state.set_message_id", return_value=False):
            summary = runner.run()

        assert summary.notified == 0
        assert summary.failed == 1

    def test_unexpected_error_rolls_back_and_continues(self, store):
        first, second = make_incident(1), make_incident(2)
        store.extend([first, second])
        runner, webhook, _ = make_runner()

        with patch.object(AlertRunner, "send_incident_alert", side_effect=[RuntimeError("boom"), "m-2"]):
            summary = runner.run()

        runner.db.rollback.assert_called_once()
        assert first.discord_message_id is None
        assert second.discord_message_id == "m-2"
        assert summary.failed == 1
        assert summary.notified == 1


class TestCameraEnrichment:
    CAMERAS = [CameraOut(name=f"Cam {i}", image_url=f"https://cams.example/{i}.jpg") for i in (1, 2, 3)]

    def test_nearest_camera_is_attached_and_removed(self, store):
        store.append(make_incident(lat=35.78, lon=-78.64))
        runner, webhook, _ = make_runner()
        webhook.post_message.return_value = "m-1"
        capture = CapturedImage(path="/tmp/incident_1_cam_x.jpg", filename="incident_1_cam_x.jpg")

        with patch("unified_alerts.services.notifier.find_nearby_cameras", return_value=self.CAMERAS) as find, \
             patch("unified_alerts.services.notifier.capture_camera_image", return_value=capture) as grab, \
             patch("unified_alerts.services.notifier.remove_capture") as remove:
            runner.run()

        find.assert_called_once_with(runner.db, 35.78, -78.64, 3)
        assert grab.call_args[0][3] == self.CAMERAS[0]
        payload, path = webhook.post_message.call_args[0]
        assert path == capture.path
        embed = payload.embeds[0]
        assert embed.image.url == "attachment://incident_1_cam_x.jpg"
        assert embed.field("Other Live Cameras").value.count("\n") == 1
        remove.assert_called_once_with(capture.path)

    def test_capture_removed_when_send_fails(self, store):
        store.append(make_incident(lat=35.78, lon=-78.64))
        runner, webhook, _ = make_runner()
        webhook.post_message.side_effect = WebhookError("boom")
        capture = CapturedImage(path="/tmp/x.jpg", filename="x.jpg")

        with patch("unified_alerts.services.notifier.find_nearby_cameras", return_value=self.CAMERAS), \
             patch("unified_alerts.services.notifier.capture_camera_image", return_value=capture), \
             patch("unified_alerts.services.notifier.remove_capture") as remove:
            runner.run()

        remove.assert_called_once_with("/tmp/x.jpg")

    def test_failed_capture_falls_back_to_links(self, store):
        store.append(make_incident(lat=35.78, lon=-78.64))
        runner, webhook, _ = make_runner()
        webhook.post_message.return_value = "m-1"

        with patch("unified_alerts.services.notifier.find_nearby_cameras", return_value=self.CAMERAS), \
             patch("unified_alerts.services.notifier.capture_camera_image", return_value=None):
            runner.run()

        payload, path = webhook.post_message.call_args[0]
        assert path is None
        assert payload.embeds[0].field("Nearby Cameras").value.count("\n") == 2

    def test_attachments_disabled(self, store):
        store.append(make_incident(lat=35.78, lon=-78.64))
        runner, webhook, _ = make_runner(make_config(CAMERA_ATTACHMENTS=False))
        webhook.post_message.return_value = "m-1"

        with patch("unified_alerts.services.notifier.find_nearby_cameras", return_value=self.CAMERAS), \
             patch("unified_alerts.services.notifier.capture_camera_image") as grab:
            runner.run()

        grab.assert_not_called()

    def test_no_lookup_without_coordinates(self, store):
        store.append(make_incident())
        runner, webhook, _ = make_runner()
        webhook.post_message.return_value = "m-1"

        with patch("unified_alerts.services.notifier.find_nearby_cameras") as find:
            runner.run()

        find.assert_not_called()

    def test_police_incidents_get_no_cameras(self, store):
        store.append(make_incident(source="ArcGIS_Police", lat=35.78, lon=-78.64,
                                   details={"raw_incident": {"crime_description": "Larceny"}}))
        runner, webhook, _ = make_runner()
        webhook.post_message.return_value = "m-1"

        with patch("unified_alerts.services.notifier.find_nearby_cameras") as find:
            runner.run()

        find.assert_not_called()
        assert webhook.post_message.call_args[0][1] is None


class TestClearedIncidents:
    def test_cleared_message_is_edited_and_id_nulled(self, store):
        incident = make_incident(status="cleared", message_id="m-9")
        store.append(incident)
        runner, webhook, _ = make_runner()

        summary = runner.run()

        webhook.edit_message.assert_called_once()
        message_id, payload = webhook.edit_message.call_args[0]
        assert message_id == "m-9"
        embed = payload.embeds[0]
        assert embed.title == "✅ Incident Cleared ✅"
        assert [(f.name, f.value) for f in embed.fields] == [("Source", "NCDOT"), ("Address", "1 Main St")]
        assert incident.discord_message_id is None
        assert summary.cleared == 1

        runner.run()
        webhook.edit_message.assert_called_once()

    def test_edit_failure_keeps_message_id(self, store):
        first = make_incident(1, status="cleared", message_id="m-1")
        second = make_incident(2, status="cleared", message_id="m-2")
        store.extend([first, second])
        runner, webhook, _ = make_runner()
        webhook.edit_message.side_effect = [WebhookError("gone", 404), None]

        summary = runner.run()

        assert first.discord_message_id == "m-1"
        assert second.discord_message_id is None
        assert summary.cleared == 1
        assert summary.failed == 1


class TestFileSentStateRun:
    def test_state_file_written_after_new_alert(self, store, tmp_path):
        path = tmp_path / "sent.json"
        store.append(make_incident(5))
        runner, webhook, _ = make_runner(sent_state=FileSentState(str(path)))
        webhook.post_message.return_value = "m-5"

        runner.run()

        assert json.loads(path.read_text()) == {"5": True}

    def test_state_file_untouched_when_nothing_sent(self, store, tmp_path):
        path = tmp_path / "sent.json"
        path.write_text(json.dumps({"5": True}))
        store.append(make_incident(5, message_id=None))
        runner, webhook, _ = make_runner(sent_state=FileSentState(str(path)))

        runner.run()

        webhook.post_message.assert_not_called()
        assert json.loads(path.read_text()) == {"5": True}

    def test_failed_message_id_save_is_not_recorded_in_file(self, store, tmp_path):
        path = tmp_path / "sent.json"
        store.extend([make_incident(1), make_incident(2)])
        runner, webhook, _ = make_runner(sent_state=FileSentState(str(path)))
        webhook.post_message.side_effect = ["m-1", "m-2"]

        with patch("unified_alerts.services.sent_state.set_message_id", side_effect=[False, True]):
            summary = runner.run()

        assert json.loads(path.read_text()) == {"2": True}
        assert summary.failed == 1
        assert summary.notified == 1

    def test_incident_with_message_id_is_not_reposted(self, store, tmp_path):
        path = tmp_path / "sent.json"
        path.write_text(json.dumps({}))
        incident = make_incident(7, message_id="m-old")
        store.append(incident)
        runner, webhook, _ = make_runner(sent_state=FileSentState(str(path)))

        summary = runner.run()

        webhook.post_message.assert_not_called()
        assert incident.discord_message_id == "m-old"
        assert summary.notified == 0
        assert json.loads(path.read_text()) == {}
