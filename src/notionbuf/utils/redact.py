"""Scrubbing of request, response and plan dumps before they reach stderr.

Three things are hidden: values stored under keys that name a credential,
the integration token wherever it turns up in a string, and the tail of
any string long enough to drown out the rest of a dump.
"""

from __future__ import annotations

import copy
import re
from typing import Any

_CREDENTIAL_KEYS = ("token", "secret", "password", "authorization", "cookie", "api_key")
_TRUNCATE_AT = 500
_BEARER_RE = re.compile(r"(Bearer\s+)\S+")


def _is_credential_key(key: Any) -> bool:
    if not isinstance(key, str):
        return False
    lowered = key.lower()
    return any(part in lowered for part in _CREDENTIAL_KEYS)


def _scrub(text: str, token: str | None) -> str:
    if token and token in text:
        # A token of under four characters would reappear in its own hint.
        hint = f"<redacted:...{token[-4:]}>" if len(token) >= 4 else "<redacted:...****>"
        text = text.replace(token, "<redacted>" if token in hint else hint)
    return _BEARER_RE.sub(r"\1<redacted>", text)


def _walk(node: Any, token: str | None) -> Any:
    if isinstance(node, dict):
        out: dict = {}
        for key, value in node.items():
            if not _is_credential_key(key):
                out[key] = _walk(value, token)
            elif isinstance(value, str):
                out[key] = _scrub(value, token)
            else:
                out[key] = "<redacted>"
        return out
    if isinstance(node, list):
        return [_walk(item, token) for item in node]
    if isinstance(node, str):
        text = _scrub(node, token)
        if len(text) <= _TRUNCATE_AT:
            return text
        return f"{text[:_TRUNCATE_AT]}...<{len(text)}_chars>"
    return node


def redact(payload: dict, token: str | None = None) -> dict:
    """Copy of *payload* that is safe to print.

    Parameters
    ----------
    payload:
        Any JSON-like mapping; it is left untouched.
    token:
        Integration token to hunt for.  Occurrences become
        ``<redacted:...XXXX>`` with the token's last four characters.

    Examples
    --------
    >>> redact({"Authorization": "Bearer ntn_abc123"})
    {'Authorization': 'Bearer <redacted>'}
    """
    return _walk(copy.deepcopy(payload), token)
