"""Settings shared by the transport, planner and executor of a session."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import urlparse

CONFIRM_POLICIES: tuple[str, ...] = ("always", "on_ambiguity", "never")

_LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")


@dataclass
class NotionbufConfig:
    """Knobs for one notionbuf session.

    All fields have defaults.  Without a ``token`` the object is still
    usable for planning, just not for talking to Notion.

    Parameters
    ----------
    token:
        Integration secret.  Masked in ``repr`` and never logged.
    notion_version, base_url:
        API version header and root URL.  Plain ``http`` is refused unless
        the host is local.
    indent_size:
        Spaces per nesting level, both when rendering children and when
        reading the depth of newly typed lines.
    confirm_sync:
        ``"always"`` asks before every push, ``"on_ambiguity"`` only when
        the plan deletes something or holds unmatched lines, ``"never"``
        never asks.
    retry_max_attempts, retry_base_delay, retry_max_delay, retry_jitter:
        Retry budget and backoff schedule for transient failures.
    rate_limit_rps:
        Sustained request rate of the client-side token bucket.
    timeout_seconds, http_proxy:
        Passed through to ``httpx``.
    metrics:
        A :class:`~notionbuf.observability.MetricsHook`, or ``None``.
    debug_dump_plan, debug_dump_payload:
        Print each plan, or each redacted request and response body, to
        stderr.
    """

    token: str = ""
    notion_version: str = "2022-06-28"
    base_url: str = "https://api.notion.com/v1"

    # ── Editing ─────────────────────────────────────────────────────────
    indent_size: int = 2
    confirm_sync: Literal["always", "on_ambiguity", "never"] = "on_ambiguity"

    # ── Retry & rate ────────────────────────────────────────────────────
    retry_max_attempts: int = 5
    retry_base_delay: float = 1.0
    retry_max_delay: float = 60.0
    retry_jitter: bool = True
    rate_limit_rps: float = 3.0

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 30.0
    http_proxy: str | None = None

    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_plan: bool = False
    debug_dump_payload: bool = False

    def __post_init__(self) -> None:
        url = urlparse(self.base_url)
        if url.scheme == "http" and url.hostname not in _LOCAL_HOSTS:
            raise ValueError(
                f"refusing plain http for {url.hostname!r}; the token would travel "
                "unencrypted (use https, or a localhost URL in tests)"
            )
        if self.confirm_sync not in CONFIRM_POLICIES:
            raise ValueError(
                f"confirm_sync must be one of {CONFIRM_POLICIES}, got {self.confirm_sync!r}"
            )

        bounds = (
            ("indent_size", self.indent_size >= 1, ">= 1"),
            ("retry_max_attempts", self.retry_max_attempts >= 1, ">= 1"),
            ("retry_base_delay", self.retry_base_delay >= 0, ">= 0"),
            ("retry_max_delay", self.retry_max_delay >= 0, ">= 0"),
            ("rate_limit_rps", self.rate_limit_rps > 0, "> 0"),
            ("timeout_seconds", self.timeout_seconds > 0, "> 0"),
        )
        for name, ok, rule in bounds:
            if not ok:
                raise ValueError(f"{name} must be {rule}, got {getattr(self, name)!r}")

    def __repr__(self) -> str:
        shown = []
        for field in dataclasses.fields(self):
            value = getattr(self, field.name)
            if field.name == "token":
                value = f"...{value[-4:]}" if len(value) >= 4 else "****"
            shown.append(f"{field.name}={value!r}")
        return f"NotionbufConfig({', '.join(shown)})"
