"""Secret scrubbing for anything that leaves the process (logs, scan artifacts)."""

from __future__ import annotations

import re
from typing import Any, Mapping

REDACTED = "[REDACTED]"

SENSITIVE_KEY_PARTS = ("key", "token", "secret", "password", "auth", "bearer")

# (pattern, replacement) pairs applied in order to every string value.
_VALUE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"Authorization:\s*Bearer\s+\S+", re.IGNORECASE), f"Authorization: Bearer {REDACTED}"),
    (re.compile(r"Bearer\s+[A-Za-z0-9\-_.~+/=]{4,}", re.IGNORECASE), f"Bearer {REDACTED}"),
    (
        re.compile(r"\b(?:sk-|AKIA|eyJ|ghp_|gho_|github_pat_|xox[abp]-|AIza)[A-Za-z0-9\-_.]{10,}"),
        REDACTED,
    ),
    (re.compile(r'"api[_-]?key"\s*:\s*"[^"]+"', re.IGNORECASE), f'"api_key": "{REDACTED}"'),
    (re.compile(r'"bearer"\s*:\s*"[^"]+"', re.IGNORECASE), f'"bearer": "{REDACTED}"'),
    (re.compile(r"(api[_-]?key\s*[=:]\s*)[^\s&\"',]+", re.IGNORECASE), rf"\g<1>{REDACTED}"),
    (
        re.compile(r"(discord(?:app)?\.com/api/webhooks/\d+/)[A-Za-z0-9\-_]+", re.IGNORECASE),
        rf"\g<1>{REDACTED}",
    ),
)


def is_sensitive_key(key: Any) -> bool:
    lowered = str(key).lower()
    return any(part in lowered for part in SENSITIVE_KEY_PARTS)


def sanitize(text: Any) -> Any:
    """Scrub credential-looking substrings from a string; other values pass through."""

    if not isinstance(text, str) or not text:
        return text
    for pattern, replacement in _VALUE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def sanitize_object(value: Any) -> Any:
    """Return a redacted deep copy of a JSON-like structure."""

    if isinstance(value, str):
        return sanitize(value)
    if isinstance(value, Mapping):
        cleaned: dict[Any, Any] = {}
        for key, item in value.items():
            if is_sensitive_key(key) and item is not None:
                cleaned[key] = REDACTED
            else:
                cleaned[key] = sanitize_object(item)
        return cleaned
    if isinstance(value, (list, tuple)):
        return [sanitize_object(item) for item in value]
    return value


def redact_event(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor scrubbing secrets from every log event."""

    return sanitize_object(event_dict)


__all__ = [
    "REDACTED",
    "SENSITIVE_KEY_PARTS",
    "is_sensitive_key",
    "redact_event",
    "sanitize",
    "sanitize_object",
]
