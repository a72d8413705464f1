# unified_alerts/services/payload_builder.py
"""
Builds Discord webhook payloads from unified incidents.

One builder per incident source:
  NCDOT          → severity-coloured "NC DOT - Incident Alert"
  RWECC          → blue, problem text as title
  ArcGIS_Police  → purple, crime description as title, never camera-enriched

Builders are pure: everything they need (maps key, bot name, cameras,
attachment name) is passed in. No database or HTTP access happens here.
"""

from datetime import datetime, timezone
from typing import Iterable, List, NamedTuple, Optional, Sequence

import pytz

from unified_alerts.schemas.camera import CameraOut
from unified_alerts.schemas.details import (
    ArcGisIncident,
    DecodedDetails,
    FeedIncident,
    NcdotIncident,
    RweccIncident,
    Weather,
    decode_details,
)
from unified_alerts.schemas.discord import Embed, EmbedField, EmbedFooter, EmbedMedia, WebhookPayload
from unified_alerts.utils.json_parser import pretty_json
from unified_alerts.utils.logger import get_logger

logger = get_logger(__name__)

NCDOT = "NCDOT"
RWECC = "RWECC"
ARCGIS_POLICE = "ArcGIS_Police"

# Discord embed colours
COLOR_GREEN = 3066993
COLOR_YELLOW = 16776960
COLOR_RED = 15158332
COLOR_NEUTRAL = 2105893
COLOR_BLUE = 3447003
COLOR_PURPLE = 9807270

SEVERITY_COLORS = {1: COLOR_GREEN, 2: COLOR_YELLOW, 3: COLOR_RED}

NO_CASE_PREFIX = "NO_CASE-"
REPORTED_TZ = pytz.timezone("America/New_York")
STATIC_MAP_URL = "https://maps.googleapis.com/maps/api/staticmap"


class UnknownSourceError(ValueError):
    """Raised when an incident comes from a feed with no registered builder."""


class MapStyle(NamedTuple):
    zoom: int
    size: str
    marker_color: str
    as_thumbnail: bool


def rfc3339(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.replace(microsecond=0).isoformat().replace("+00:00", "Z")


def static_map_url(api_key: str, lat: float, lon: float, style: MapStyle) -> str:
    return (
        f"{STATIC_MAP_URL}?center={lat:.6f},{lon:.6f}&zoom={style.zoom}&size={style.size}"
        f"&markers=color:{style.marker_color}%7C{lat:.6f},{lon:.6f}&key={api_key}"
    )


def weather_field(weather: Weather) -> EmbedField:
    value = f"{weather.short_forecast}\nTemp: {weather.temperature}°F\nWind: {weather.wind_speed}"
    return EmbedField(name="Weather Conditions", value=value)


def camera_links_field(cameras: Sequence[CameraOut], attachment_name: Optional[str]) -> Optional[EmbedField]:
    """
    With an attachment the first camera is shown as the embed image, so only
    the rest are linked. Without one every camera is linked.
    """
    if attachment_name:
        linked, name = cameras[1:], "Other Live Cameras"
    else:
        linked, name = cameras, "Nearby Cameras"
    if not linked:
        return None
    return EmbedField(name=name, value="\n".join(cam.markdown_link for cam in linked))


def format_reported(ts: datetime) -> str:
    """Local wall-clock time like 'Mon, Jan 2, 3:04 PM'."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    local = ts.astimezone(REPORTED_TZ)
    return f"{local:%a, %b} {local.day}, {local.hour % 12 or 12}:{local:%M %p}"


class PayloadBuilder:
    source: str = ""
    details_model = FeedIncident
    footer: str = ""
    map_style = MapStyle(zoom=14, size="300x300", marker_color="red", as_thumbnail=True)
    uses_cameras = True

    def __init__(self, maps_api_key: Optional[str] = None, username: Optional[str] = None,
                 log_raw_details: bool = False):
        self.maps_api_key = maps_api_key
        self.username = username
        self.log_raw_details = log_raw_details

    def build(self, incident, cameras: Iterable[CameraOut] = (),
              attachment_name: Optional[str] = None) -> WebhookPayload:
        if self.log_raw_details:
            logger.debug(f"Raw {self.source} details for incident {incident.id}:\n{pretty_json(incident.details)}")

        decoded = decode_details(incident.details, self.details_model)
        embed = Embed(
            title=self.title(decoded.incident),
            color=self.color(decoded.incident),
            fields=self.fields(incident, decoded.incident),
            footer=EmbedFooter(text=self.footer),
            timestamp=rfc3339(incident.timestamp),
        )
        self._add_weather(embed, decoded)

        if self.uses_cameras:
            cameras = list(cameras)
            links = camera_links_field(cameras, attachment_name)
            if links:
                embed.fields.append(links)
            if attachment_name:
                embed.image = EmbedMedia(url=f"attachment://{attachment_name}")

        self._add_map(embed, incident)
        return WebhookPayload(username=self.username, embeds=[embed])

    def title(self, details: FeedIncident) -> str:
        raise NotImplementedError

    def color(self, details: FeedIncident) -> int:
        raise NotImplementedError

    def fields(self, incident, details: FeedIncident) -> List[EmbedField]:
        raise NotImplementedError

    @staticmethod
    def _add_weather(embed: Embed, decoded: DecodedDetails):
        if decoded.weather is not None:
            embed.fields.append(weather_field(decoded.weather))

    def _add_map(self, embed: Embed, incident):
        if not self.maps_api_key or not incident.has_coordinates:
            return
        media = EmbedMedia(url=static_map_url(self.maps_api_key, incident.latitude, incident.longitude,
                                              self.map_style))
        if self.map_style.as_thumbnail:
            embed.thumbnail = media
        else:
            embed.image = media


class NcdotPayloadBuilder(PayloadBuilder):
    source = NCDOT
    details_model = NcdotIncident
    footer = "Source: NC DOT API"

    def title(self, details: NcdotIncident) -> str:
        return "🚨 NC DOT - Incident Alert 🚨"

    def color(self, details: NcdotIncident) -> int:
        return SEVERITY_COLORS.get(details.severity, COLOR_NEUTRAL)

    def fields(self, incident, details: NcdotIncident) -> List[EmbedField]:
        return [
            EmbedField(name="Reason", value=details.reason),
            EmbedField(name="Road", value=details.road),
            EmbedField(name="Location", value=details.location),
            EmbedField(name="Severity", value=str(details.severity)),
        ]


class RweccPayloadBuilder(PayloadBuilder):
    source = RWECC
    details_model = RweccIncident
    footer = "Source: Raleigh-Wake ECC"

    def title(self, details: RweccIncident) -> str:
        return f"🔵 {details.problem} 🔵"

    def color(self, details: RweccIncident) -> int:
        return COLOR_BLUE

    def fields(self, incident, details: RweccIncident) -> List[EmbedField]:
        return [
            EmbedField(name="Address", value=incident.address or ""),
            EmbedField(name="Jurisdiction", value=details.jurisdiction),
        ]


class ArcGisPayloadBuilder(PayloadBuilder):
    source = ARCGIS_POLICE
    details_model = ArcGisIncident
    footer = "Source: Police Incidents Feed"
    map_style = MapStyle(zoom=15, size="600x400", marker_color="purple", as_thumbnail=False)
    uses_cameras = False

    def title(self, details: ArcGisIncident) -> str:
        return f"🟣 {details.crime_description} 🟣"

    def color(self, details: ArcGisIncident) -> int:
        return COLOR_PURPLE

    def fields(self, incident, details: ArcGisIncident) -> List[EmbedField]:
        fields = [
            EmbedField(name="Address", value=incident.address or ""),
            EmbedField(name="Agency", value=details.agency),
        ]
        if not details.case_number.startswith(NO_CASE_PREFIX):
            fields.append(EmbedField(name="Case #", value=details.case_number))
        fields.append(EmbedField(name="Reported", value=format_reported(incident.timestamp)))
        return fields


BUILDERS = {cls.source: cls for cls in (NcdotPayloadBuilder, RweccPayloadBuilder, ArcGisPayloadBuilder)}


def get_builder(source: str, **kwargs) -> PayloadBuilder:
    """Return the builder for an incident source, or raise UnknownSourceError."""
    try:
        builder_cls = BUILDERS[source]
    except KeyError:
        raise UnknownSourceError(f"unknown incident source: {source}") from None
    return builder_cls(**kwargs)


def build_cleared_payload(source: str, address: Optional[str], now: Optional[datetime] = None) -> WebhookPayload:
    """Replacement content for a message whose incident has been cleared."""
    embed = Embed(
        title="✅ Incident Cleared ✅",
        color=COLOR_GREEN,
        fields=[
            EmbedField(name="Source", value=source),
            EmbedField(name="Address", value=address or ""),
        ],
        footer=EmbedFooter(text="Incident no longer in active feed"),
        timestamp=rfc3339(now or datetime.now(timezone.utc)),
    )
    return WebhookPayload(embeds=[embed])
