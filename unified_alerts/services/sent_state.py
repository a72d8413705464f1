# unified_alerts/services/sent_state.py
"""
Tracks which incidents have already been announced.

ColumnSentState (default): discord_message_id IS NULL is the "needs an alert"
marker, so the state can never drift from the table.

FileSentState (legacy, SENT_STATE_MODE=file): a JSON file {"<id>": true}
rewritten after any run that sent something. The message id is still
written to the column so cleared incidents can be edited, and a set column
counts as sent even without a file entry.
"""

import json
import os
from typing import Set

from sqlalchemy.orm import Session

from unified_alerts.config import ConfigurationError, Settings
from unified_alerts.models.incident import UnifiedIncident
from unified_alerts.services.incident_service import set_message_id
from unified_alerts.utils.logger import get_logger

logger = get_logger(__name__)


class ColumnSentState:
    include_notified = False

    def is_sent(self, incident: UnifiedIncident) -> bool:
        return incident.discord_message_id is not None

    def mark_sent(self, db: Session, incident: UnifiedIncident, message_id: str) -> bool:
        return set_message_id(db, incident, message_id)

    def flush(self):
        pass


class FileSentState(ColumnSentState):
    include_notified = True

    def __init__(self, path: str):
        self.path = path
        self.sent = load_sent_state(path)
        self._dirty = False

    def is_sent(self, incident: UnifiedIncident) -> bool:
        return incident.id in self.sent or super().is_sent(incident)

    def mark_sent(self, db: Session, incident: UnifiedIncident, message_id: str) -> bool:
        if not super().mark_sent(db, incident, message_id):
            return False
        self.sent.add(incident.id)
        self._dirty = True
        return True

    def flush(self):
        if not self._dirty:
            return
        save_sent_state(self.path, self.sent)
        self._dirty = False


def load_sent_state(path: str) -> Set[int]:
    """Read the sent-state file. Missing or unreadable files start an empty set."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.info(f"No state file at {path}, starting fresh")
        return set()
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read state file {path}, starting fresh: {e}")
        return set()

    if not isinstance(data, dict):
        logger.warning(f"State file {path} is not a JSON object, starting fresh")
        return set()

    sent = set()
    for key, value in data.items():
        try:
            if value:
                sent.add(int(key))
        except ValueError:
            logger.warning(f"Ignoring bad incident id {key!r} in {path}")
    return sent


def save_sent_state(path: str, sent: Set[int]):
    """Rewrite the whole state file atomically."""
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump({str(i): True for i in sorted(sent)}, f, indent=2)
    os.replace(tmp_path, path)
    logger.info(f"Saved {len(sent)} sent incident ids to {path}")


def make_sent_state(config: Settings) -> ColumnSentState:
    mode = config.SENT_STATE_MODE.lower()
    if mode == "column":
        return ColumnSentState()
    if mode == "file":
        logger.info(f"Using state file: {config.STATE_FILENAME}")
        return FileSentState(config.STATE_FILENAME)
    raise ConfigurationError(f"SENT_STATE_MODE must be 'column' or 'file', got {config.SENT_STATE_MODE!r}")
