# unified_alerts/schemas/details.py
"""
Decoding of the incidents.details JSONB document.

Two shapes exist in the table:
  new:    {"raw_incident": {...feed fields...}, "weather": {...} | null}
  legacy: {...feed fields...}

decode_details() tries the new shape first, falls back to reading the whole
document as the feed model, and degrades to default field values when
neither works. It never raises.
"""

from dataclasses import dataclass
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from unified_alerts.utils.json_parser import load_details
from unified_alerts.utils.logger import get_logger

logger = get_logger(__name__)


class FeedIncident(BaseModel):
    """Base for decoded details blocks. null values fall back to the field default."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    @field_validator("*", mode="before")
    @classmethod
    def _null_to_default(cls, value, info):
        if value is None:
            return cls.model_fields[info.field_name].default
        return value


class NcdotIncident(FeedIncident):
    reason: str = ""
    road: str = ""
    location: str = ""
    severity: int = 0


class RweccIncident(FeedIncident):
    problem: str = ""
    jurisdiction: str = ""


class ArcGisIncident(FeedIncident):
    case_number: str = ""
    crime_description: str = ""
    agency: str = ""


class Weather(FeedIncident):
    temperature: int = 0
    wind_speed: str = Field(default="", alias="windSpeed")
    short_forecast: str = Field(default="", alias="shortForecast")
    icon: str = ""


class DetailsEnvelope(BaseModel):
    raw_incident: Any
    weather: Any = None


F = TypeVar("F", bound=FeedIncident)


@dataclass
class DecodedDetails:
    incident: FeedIncident
    weather: Optional[Weather] = None
    legacy: bool = False


def _validate_or_default(model: Type[F], data: Any) -> F:
    """Validate a feed model, dropping fields with bad values instead of failing."""
    if not isinstance(data, dict):
        return model()
    try:
        return model.model_validate(data)
    except ValidationError as e:
        bad = {err["loc"][0] for err in e.errors() if err["loc"]}
        logger.warning(f"Ignoring invalid {model.__name__} fields {sorted(map(str, bad))}")
    try:
        return model.model_validate({k: v for k, v in data.items() if k not in bad})
    except ValidationError:
        return model()


def _decode_weather(data: Any) -> Optional[Weather]:
    if data is None:
        return None
    if not isinstance(data, dict):
        logger.warning(f"Ignoring weather block that is not an object: {data!r}")
        return None
    return _validate_or_default(Weather, data)


def decode_details(raw: Any, model: Type[F]) -> DecodedDetails:
    """Decode a details document into the given feed model plus optional weather."""
    data = load_details(raw)
    if data is None:
        return DecodedDetails(incident=model())

    try:
        envelope = DetailsEnvelope.model_validate(data)
    except ValidationError:
        envelope = None

    if envelope is not None:
        return DecodedDetails(
            incident=_validate_or_default(model, envelope.raw_incident),
            weather=_decode_weather(envelope.weather),
        )

    logger.info(f"Could not parse as new format, falling back to old format for {model.__name__}")
    return DecodedDetails(incident=_validate_or_default(model, data), legacy=True)
