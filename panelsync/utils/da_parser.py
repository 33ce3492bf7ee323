"""Utilities for parsing DirectAdmin API replies.

DirectAdmin answers the same logical endpoint with JSON, a query-string
encoded body, an HTML page or nothing at all.  Each format has its own pure
parse attempt; ``parse_body`` runs them in priority order and keeps the
first match.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Optional
from urllib.parse import parse_qsl, urlencode

from panelsync.exceptions import RemoteReportedError
from panelsync.models.remote import ResponseKind

ParsedBody = tuple[ResponseKind, dict[str, Any]]
ParseAttempt = Callable[[Any], Optional[ParsedBody]]

# Keys DirectAdmin mixes into list replies that are never entity names
RESERVED_LIST_KEYS: frozenset[str] = frozenset(
    {"error", "text", "details", "result", "suspended"},
)

_HTML_RE = re.compile(r"^\s*(?:<!doctype\s+html|<html|<head|<body|<\?xml)", re.IGNORECASE)
_HTML_TAG_RE = re.compile(r"</?(?:html|body|title|div|form|table)\b", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Query strings
# ---------------------------------------------------------------------------

def parse_query_string(text: str) -> dict[str, Any]:
    """Decode ``key=value&key=value`` into a dict.

    Values are URL-decoded, a key with no ``=`` maps to ``""`` and repeated
    ``key[]=v`` pairs are gathered into a list stored under ``key``.
    """
    result: dict[str, Any] = {}
    if not text or not isinstance(text, str):
        return result
    for key, value in parse_qsl(text.strip(), keep_blank_values=True):
        if not key:
            continue
        if key.endswith("[]"):
            result.setdefault(key[:-2], []).append(value)
        else:
            result[key] = value
    return result


def serialize_query(params: dict[str, Any]) -> str:
    """Encode a flat mapping the way DirectAdmin's forms do."""
    return urlencode(
        [(k, "" if v is None else str(v)) for k, v in params.items()],
    )


# ---------------------------------------------------------------------------
# Parse attempts, tried in order by parse_body
# ---------------------------------------------------------------------------

def parse_structured(body: Any) -> Optional[ParsedBody]:
    """Already-decoded objects and JSON text."""
    if isinstance(body, dict):
        return ResponseKind.json, dict(body)
    if isinstance(body, list):
        return ResponseKind.json, {"list": list(body)}
    if not isinstance(body, str):
        return None
    text = body.strip()
    if not text or text[0] not in "{[":
        return None
    try:
        decoded = json.loads(text)
    except ValueError:
        return None
    return parse_structured(decoded) if isinstance(decoded, (dict, list)) else None


def parse_empty(body: Any) -> Optional[ParsedBody]:
    if body is None or (isinstance(body, (str, bytes)) and not body.strip()):
        return ResponseKind.empty, {}
    return None


def parse_html(body: Any) -> Optional[ParsedBody]:
    if isinstance(body, str) and (_HTML_RE.match(body) or _HTML_TAG_RE.search(body)):
        return ResponseKind.html, {}
    return None


def parse_query(body: Any) -> Optional[ParsedBody]:
    if isinstance(body, str):
        return ResponseKind.query, parse_query_string(body)
    return None


PARSE_ATTEMPTS: tuple[ParseAttempt, ...] = (
    parse_structured,
    parse_empty,
    parse_html,
    parse_query,
)


def parse_body(body: Any) -> ParsedBody:
    """Normalize a reply body; unknown shapes count as empty."""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    for attempt in PARSE_ATTEMPTS:
        parsed = attempt(body)
        if parsed is not None:
            return parsed
    return ResponseKind.empty, {}


# ---------------------------------------------------------------------------
# Error detection
# ---------------------------------------------------------------------------

def remote_error_code(payload: dict[str, Any]) -> str | None:
    """Return the ``error`` value when it signals a failure.

    ``"0"`` is DirectAdmin's "no error" value and is not a failure.
    """
    if "error" not in payload:
        return None
    value = payload["error"]
    if value is None:
        return None
    code = str(value).strip()
    if code in ("", "0"):
        return None
    return code


def raise_for_remote_error(payload: dict[str, Any], status_code: int | None = None) -> None:
    code = remote_error_code(payload)
    if code is None:
        return
    text = payload.get("text")
    message = str(text) if text not in (None, "") else code
    details = payload.get("details")
    raise RemoteReportedError(
        message,
        status_code=status_code,
        error_code=code,
        details=str(details) if details else None,
    )


# ---------------------------------------------------------------------------
# Name lists
# ---------------------------------------------------------------------------

def _keep_name(name: Any) -> bool:
    if not isinstance(name, str):
        return False
    stripped = name.strip()
    return bool(stripped) and stripped != "0" and not stripped.startswith("_")


def extract_names(payload: dict[str, Any] | list[Any]) -> list[str]:
    """Turn any of the list reply shapes into ordered, unique names.

    Handles ``list[]=a&list[]=b`` (already gathered by the query parser),
    ``{"list": ["a", "b"]}``, a bare JSON array and a flat ``{"a": .., "b": ..}``
    object keyed by name.
    """
    candidates: list[Any]
    if isinstance(payload, list):
        candidates = payload
    elif isinstance(payload.get("list"), list):
        candidates = payload["list"]
    elif isinstance(payload.get("list"), str):
        candidates = [payload["list"]]
    else:
        candidates = [k for k in payload if k not in RESERVED_LIST_KEYS]

    names: list[str] = []
    seen: set[str] = set()
    for item in candidates:
        if not _keep_name(item):
            continue
        name = item.strip()
        if name not in seen:
            seen.add(name)
            names.append(name)
    return names


# ---------------------------------------------------------------------------
# Request shaping helpers
# ---------------------------------------------------------------------------

_TRUTHY = frozenset({"on", "yes", "true", "1"})


def on_off(value: Any) -> str:
    """Serialize a feature flag as DirectAdmin's ``ON``/``OFF``."""
    if isinstance(value, str):
        return "ON" if value.strip().lower() in _TRUTHY else "OFF"
    return "ON" if value else "OFF"


def limit_value(value: Any) -> str:
    """Serialize a numeric limit, defaulting to ``unlimited``."""
    if value is None or value == "":
        return "unlimited"
    if isinstance(value, str) and value.strip().lower() == "unlimited":
        return "unlimited"
    if isinstance(value, bool):
        return "unlimited" if value else "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def split_email(address: str) -> tuple[str, str]:
    """Split ``user@domain`` into its local part and domain."""
    local, sep, domain = (address or "").strip().partition("@")
    if not sep or not local or not domain or "@" in domain:
        raise ValueError(f"Invalid email address: {address!r}")
    return local, domain.lower()
