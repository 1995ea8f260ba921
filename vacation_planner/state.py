"""Process-wide, non-persistent state shared by every session.

One instance lives for the lifetime of the server process. It backs the
in-memory vacation cache tier, the in-memory audit log tier, the fallback
copy of remote account payloads and the registry of live planner sessions.
Nothing here survives a restart, and separate server instances each hold
their own copy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from vacation_planner.services.audit_log import LoginLogEntry
    from vacation_planner.services.reconciler import VacationReconciler


@dataclass
class ProcessState:
    vacation_cache: dict[str, Any] = field(default_factory=dict)
    login_logs: list["LoginLogEntry"] = field(default_factory=list)
    account_fallback: dict[str, dict[str, Any]] = field(default_factory=dict)
    sessions: dict[str, "VacationReconciler"] = field(default_factory=dict)

    def clear(self) -> None:
        self.vacation_cache.clear()
        self.login_logs.clear()
        self.account_fallback.clear()
        self.sessions.clear()


_state = ProcessState()


def get_process_state() -> ProcessState:
    return _state
