# unified_alerts/services/discord_service.py
"""
Discord webhook client.

  POST  {webhook}?wait=true            → new message (JSON, or multipart with an image)
  PATCH {webhook}/messages/{id}        → edit an existing message

Errors surface as WebhookError; callers decide whether they are fatal.
"""

import json
import os
from typing import Optional

import httpx

from unified_alerts.schemas.discord import WebhookPayload
from unified_alerts.utils.logger import get_logger

logger = get_logger(__name__)


class WebhookError(Exception):
    """A webhook call failed (transport error or non-2xx response)."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DiscordWebhook:
    def __init__(self, webhook_url: str, client: httpx.Client):
        self.webhook_url = webhook_url.rstrip("/")
        self.client = client

    def post_message(self, payload: WebhookPayload, attachment_path: Optional[str] = None) -> str:
        """Send a new message and return its Discord message ID."""
        url = f"{self.webhook_url}?wait=true"

        try:
            if attachment_path:
                data = {"payload_json": json.dumps(payload.to_json())}
                with open(attachment_path, "rb") as f:
                    files = {"files[0]": (os.path.basename(attachment_path), f, "image/jpeg")}
                    response = self.client.post(url, data=data, files=files)
            else:
                response = self.client.post(url, json=payload.to_json())
        except (httpx.HTTPError, OSError) as e:
            raise WebhookError(f"error sending webhook message: {e}") from e

        self._raise_for_status(response, "send")
        try:
            return str(response.json()["id"])
        except (ValueError, KeyError, TypeError) as e:
            raise WebhookError(f"webhook response has no message id: {e}", response.status_code,
                               response.text) from e

    def edit_message(self, message_id: str, payload: WebhookPayload) -> None:
        """Replace the embeds of a previously sent message."""
        url = f"{self.webhook_url}/messages/{message_id}"
        try:
            response = self.client.patch(url, json=payload.to_json())
        except httpx.HTTPError as e:
            raise WebhookError(f"error sending PATCH request: {e}") from e
        self._raise_for_status(response, "update")

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str):
        if not response.is_success:
            raise WebhookError(
                f"discord returned non-2xx status on {action}: {response.status_code}. Body: {response.text}",
                response.status_code,
                response.text,
            )
