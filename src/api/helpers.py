"""
API helper functions shared across route modules.
Request-body parsing for JSON / form payloads and alias-tolerant field lookup.
"""
import re
from typing import Any, Dict, Iterable, Optional

from fastapi import Request

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


async def parse_body(request: Request) -> Dict[str, Any]:
    """
    Read a request body as a dict regardless of how it was sent.

    JSON, multipart form and urlencoded form are accepted; anything else is
    tried as JSON. Unparseable bodies become an empty dict.
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    try:
        data = await request.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def pick_nested(raw: Dict[str, Any], key_name: str) -> Optional[Dict[str, Any]]:
    """Case-insensitive lookup of a nested object (``{"customer": {...}}``)."""
    for key, value in raw.items():
        if key.lower() == key_name.lower() and isinstance(value, dict):
            return value
    return None


def first_string(obj: Dict[str, Any], keys: Iterable[str]) -> Optional[str]:
    """
    First string (or number, as text) among ``keys``, matched case-insensitively.
    """
    lowered = {key.lower(): key for key in obj}
    for key in keys:
        found = lowered.get(key.lower())
        if found is None:
            continue
        value = obj[found]
        if isinstance(value, bool):
            continue
        if isinstance(value, (str, int, float)):
            return str(value)
    return None


def digits_only(value: Optional[str]) -> Optional[str]:
    """Strip everything but digits; empty results become None."""
    if value is None:
        return None
    digits = re.sub(r"\D", "", value)
    return digits or None


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value))
