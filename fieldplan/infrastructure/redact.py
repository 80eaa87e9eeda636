"""Redact secrets from log lines and error strings."""

from __future__ import annotations

import re

_REDACTED = "***REDACTED***"

_QUERY_VALUE_RE = re.compile(
    r"(?i)(?P<prefix>\b(?:key|api[_-]?key|token|secret|password)\s*=\s*)(?P<value>[^&\s\"']+)"
)
_AUTH_HEADER_RE = re.compile(
    r"(?i)(?P<prefix>\bauthorization\s*:\s*(?:bearer|basic|token)\s+)(?P<value>[^\s,;]+)"
)
_BEARER_RE = re.compile(r"(?i)(?P<prefix>\bbearer\s+)(?P<value>[A-Za-z0-9._~+/=-]+)")
_OPENAI_KEY_RE = re.compile(r"\bsk-[A-Za-z0-9_-]{8,}\b")


def redact_sensitive(text: str) -> str:
    if not text:
        return text
    redacted = str(text)
    for pattern in (_QUERY_VALUE_RE, _AUTH_HEADER_RE, _BEARER_RE):
        redacted = pattern.sub(lambda m: f"{m.group('prefix')}{_REDACTED}", redacted)
    return _OPENAI_KEY_RE.sub(_REDACTED, redacted)


__all__ = ["redact_sensitive"]
