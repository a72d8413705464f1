# unified_alerts/utils/json_parser.py
"""
Helpers for the incidents.details JSONB column.
psycopg2 hands JSONB back already decoded, but rows copied from older
tables can still carry the document as text or bytes.
"""

import json
from typing import Optional, Any


def load_details(raw: Any) -> Optional[Any]:
    """Return the details document as Python data. Returns None on error."""
    if raw is None:
        return None
    if isinstance(raw, (bytes, bytearray, memoryview)):
        raw = bytes(raw).decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None
    return raw


def pretty_json(raw: Any) -> str:
    """Indented JSON for debug logging; falls back to repr() for undecodable input."""
    data = load_details(raw)
    if data is None:
        return repr(raw)
    try:
        return json.dumps(data, indent=2, default=str, ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(raw)
