"""Contact disclosure outcomes.

Pure domain types returned by the disclosure guard. A reveal never raises
across the service boundary; it yields either ``Revealed`` or ``Denied``.
"""

from dataclasses import dataclass
from enum import StrEnum

from jaipurhelp.domain.tiers import QuotaSnapshot


class DenialReason(StrEnum):
    """Why a reveal was refused. Values are the wire strings sent to clients."""

    UNAUTHENTICATED = "Unauthenticated"
    WORKER_NOT_FOUND = "WorkerNotFound"
    WORKER_NOT_PUBLIC = "WorkerNotPublic"
    NO_ACTIVE_SUBSCRIPTION = "NoActiveSubscription"
    QUOTA_EXCEEDED = "QuotaExceeded"
    CONCURRENCY_CONFLICT = "ConcurrencyConflict"
    STORAGE_FAILURE = "StorageFailure"

    @property
    def retryable(self) -> bool:
        return self in (DenialReason.CONCURRENCY_CONFLICT, DenialReason.STORAGE_FAILURE)


@dataclass(frozen=True)
class ContactPayload:
    """Private worker contact fields."""

    phone: str
    whatsapp: str | None = None


@dataclass(frozen=True)
class Revealed:
    """Contact granted.

    ``already_disclosed`` is True when the pair was unlocked earlier (or by a
    concurrent request) and no quota was charged by this call.
    """

    contact: ContactPayload
    already_disclosed: bool
    quota: QuotaSnapshot | None = None


@dataclass(frozen=True)
class Denied:
    """Contact refused. ``used``/``limit`` are set for QUOTA_EXCEEDED."""

    reason: DenialReason
    used: int | None = None
    limit: int | None = None
    message: str = ""


RevealOutcome = Revealed | Denied


def quota_denial(quota: QuotaSnapshot) -> Denied | None:
    """Return a QUOTA_EXCEEDED denial if a new disclosure would exceed the plan limit.

    Pure function. Unlimited plans never deny.
    """
    if not quota.exhausted:
        return None
    return Denied(
        reason=DenialReason.QUOTA_EXCEEDED,
        used=quota.used,
        limit=quota.limit,
        message=f"Contact limit reached: {quota.used} of {quota.limit} used",
    )
