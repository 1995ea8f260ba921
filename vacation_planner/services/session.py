from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SessionUser:
    """Identity handed over by the session provider."""

    id: str
    name: str | None = None
    email: str | None = None
    # True when the identity maps to an account that can hold synced days
    remote_linked: bool = False


@dataclass(frozen=True)
class RequestMeta:
    ip: str | None = None
    user_agent: str | None = None
