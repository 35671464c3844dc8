"""Shared sanitisation helpers for backend clients."""

from __future__ import annotations

import re
from typing import Any

_BASIC_RE = re.compile(r"Basic\s+[A-Za-z0-9+/]+(?:=|%3D)*", re.IGNORECASE)
_SECRET_QUERY_RE = re.compile(r"(?i)(password|token)=([^&\s]+)")
_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

# Methods whose positional parameters carry secrets.
_SECRET_PARAM_METHODS = frozenset({"KNO_ChangePassword"})


def redact_text(value: str | None) -> str:
    """Return ``value`` with Basic credentials, emails and query secrets removed."""

    if not value:
        return ""
    text = str(value)
    redacted = _BASIC_RE.sub("Basic ***", text)
    redacted = _SECRET_QUERY_RE.sub(lambda match: f"{match.group(1)}=***", redacted)
    return _EMAIL_RE.sub("***@***", redacted)


def redact_token_fragment(value: str | None) -> str:
    """Return a shortened representation of a token-like string."""

    if value is None:
        return ""
    trimmed = str(value).strip()
    if not trimmed:
        return ""
    if len(trimmed) <= 4:
        return "***"
    if len(trimmed) <= 8:
        return f"{trimmed[:2]}***{trimmed[-2:]}"
    return f"{trimmed[:4]}...{trimmed[-4:]}"


def redact_params(method: str, params: list[Any]) -> str:
    """Return a loggable rendition of RPC parameters for ``method``."""

    if method in _SECRET_PARAM_METHODS:
        return f"[<{len(params)} redacted>]"
    return redact_text(repr(params))


__all__ = ["redact_params", "redact_text", "redact_token_fragment"]
