"""Log scrubbing for request headers and Home Assistant payloads.

Every request carries the long-lived access token as a bearer header, and
snapshot bodies or stream frames can be large. ``redact_for_log`` masks the
credential wherever it appears and clips text so DEBUG output stays readable.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

_CREDENTIAL_KEYS: frozenset[str] = frozenset({"authorization", "access_token", "refresh_token", "token", "cookie"})
_BEARER = re.compile(r"(?i)\bbearer\s+[^\s\"',}]+")
_MASK = "<redacted>"


def _clip(text: str, limit: int) -> str:
    text = _BEARER.sub(f"Bearer {_MASK}", text)
    if len(text) > limit:
        return f"{text[:limit]}…<+{len(text) - limit} chars>"
    return text


def redact_for_log(value: Any, *, max_string: int = 256) -> Any:
    """Return *value* with credentials masked and long text clipped.

    Bytes are decoded as UTF-8 (lossy) so response bodies show their
    content. Mappings keep their keys; credential keys lose their value.
    """
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, str):
        return _clip(value, max_string)
    if isinstance(value, Mapping):
        return {
            str(key): _MASK if str(key).lower() in _CREDENTIAL_KEYS else redact_for_log(item, max_string=max_string)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_for_log(item, max_string=max_string) for item in value]
    return value
