# unified_alerts/schemas/discord.py
"""
Discord webhook message shapes (execute / edit webhook message).
Serialise with to_json() so unset optional parts are left out.
"""

from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class EmbedField(BaseModel):
    name: str
    value: str
    inline: bool = False


class EmbedFooter(BaseModel):
    text: str


class EmbedMedia(BaseModel):
    url: str


class Embed(BaseModel):
    title: Optional[str] = None
    color: int = 0
    fields: List[EmbedField] = []
    footer: Optional[EmbedFooter] = None
    timestamp: Optional[str] = None      # RFC 3339
    thumbnail: Optional[EmbedMedia] = None
    image: Optional[EmbedMedia] = None

    def field(self, name: str) -> Optional[EmbedField]:
        return next((f for f in self.fields if f.name == name), None)


class WebhookPayload(BaseModel):
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    embeds: List[Embed] = []

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
