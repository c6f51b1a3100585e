from __future__ import annotations

from typing import Iterable, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class NotFoundError(DomainError):
    """Raised when an event, member, chat or attendance row does not exist."""

    def __init__(self, kind: str, ident: Optional[str] = None) -> None:
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind} not found" if ident is None else f"{kind} not found: {ident}")


class InvalidTargetingError(DomainError):
    """Raised (strict mode only) when a target spec references ids the choir doesn't know."""

    def __init__(self, unknown: Iterable[str]) -> None:
        self.unknown = sorted(set(unknown))
        super().__init__("Unknown target ids: " + ", ".join(self.unknown))


class InvalidVoiceAssignmentError(DomainError):
    """Raised when a member's voice type does not sit under the member's voice group."""


class NotPermittedError(DomainError):
    """Raised when a member lacks permission for an action (e.g. posting to a chat)."""


class AttendanceLockedError(DomainError):
    """Raised when a member changes a response after actual attendance was recorded."""
