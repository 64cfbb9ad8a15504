"""Redaction policy applied to anything that reaches a log record."""

from __future__ import annotations

import re
from typing import Any

REDACTED = "***REDACTED***"

_SECRET_KEYS = ("authorization", "token", "api_key", "apikey", "secret", "password", "session", "cookie")
_PAYLOAD_KEYS = ("body", "content", "payload", "html", "template")
_SAFE_KEYS = {"retry_after", "remaining", "reset_at"}

_INLINE_SECRET_PATTERNS = (
    (re.compile(r"(?i)\b(bearer)\s+[A-Za-z0-9_\-\.=]+"), r"\1 " + REDACTED),
    (re.compile(r"(?i)\b(access_token|token|api_key|apikey|secret|password)=[^\s&,;]+"), r"\1=" + REDACTED),
    (re.compile(r"\bgh[pousr]_[A-Za-z0-9_]{10,}"), REDACTED),
)


def _is_secret_key(key: str) -> bool:
    lowered = key.lower()
    if lowered in _SAFE_KEYS:
        return False
    return any(marker in lowered for marker in _SECRET_KEYS)


def _scrub_text(text: str) -> str:
    for pattern, replacement in _INLINE_SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def sanitize_for_log(value: Any, key: str | None = None) -> Any:
    """Return a copy of ``value`` with credentials masked and payloads elided."""

    if key is not None:
        if _is_secret_key(key) and value is not None:
            return REDACTED
        if key.lower() in _PAYLOAD_KEYS and isinstance(value, str):
            return f"<redacted payload: {len(value)} chars>"

    if isinstance(value, dict):
        return {item_key: sanitize_for_log(item, key=str(item_key)) for item_key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [sanitize_for_log(item) for item in value]
    if isinstance(value, str):
        return _scrub_text(value)
    return value


def sanitize_log_extra(**fields: Any) -> dict[str, Any]:
    """Build a logging ``extra`` mapping whose values passed the redaction policy."""

    return {key: sanitize_for_log(value, key=key) for key, value in fields.items()}
