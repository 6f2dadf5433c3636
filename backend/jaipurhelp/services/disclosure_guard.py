"""DisclosureGuard: gates worker contact reveals on subscription quota.

A reveal charges quota at most once per (user, worker) pair. The journal
insert and the counter increment share one transaction: either both land or
neither does. Races are settled by the journal's unique constraint and the
ledger's conditional UPDATE, never by in-process locks.
"""

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jaipurhelp.core.config import Settings, get_settings
from jaipurhelp.core.exceptions import (
    ConcurrencyConflictError,
    NoActiveSubscriptionError,
    StorageFailureError,
    WorkerNotFoundError,
    WorkerNotPublicError,
)
from jaipurhelp.db.base import get_session_factory
from jaipurhelp.domain.disclosure import (
    ContactPayload,
    DenialReason,
    Denied,
    Revealed,
    RevealOutcome,
    quota_denial,
)
from jaipurhelp.domain.tiers import QuotaSnapshot
from jaipurhelp.services.disclosure_journal import has_disclosed, record_disclosure
from jaipurhelp.services.subscription_ledger import get_or_provision, increment_contacts_used, usage_snapshot
from jaipurhelp.services.worker_directory import get_public_record

logger = structlog.get_logger(__name__)

# First attempt plus one recomputation after a counter conflict
MAX_ATTEMPTS = 2

# OSError also covers driver connect failures and TimeoutError
STORAGE_ERRORS = (SQLAlchemyError, OSError)


class DisclosureGuard:
    """Decides whether a user may see a worker's private contact fields.

    Each attempt runs in its own session. ``reveal_contact`` never raises; all
    failures come back as ``Denied``.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        settings: Settings | None = None,
    ):
        self.session_factory = session_factory or get_session_factory()
        self.settings = settings or get_settings()

    async def reveal_contact(self, user_id: str | None, worker_id: str) -> RevealOutcome:
        log = logger.bind(user_id=user_id, worker_id=worker_id)

        if not user_id:
            return self._denied(log, Denied(reason=DenialReason.UNAUTHENTICATED, message="Authentication required"))

        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                outcome = await self._run_attempt(user_id, worker_id)
            except ConcurrencyConflictError as exc:
                log.warning("contact_reveal_conflict", attempt=attempt, subscription_id=exc.subscription_id)
                continue
            except StorageFailureError as exc:
                cause = exc.__cause__
                log.error(
                    "contact_reveal_storage_failure",
                    error=str(cause),
                    error_type=type(cause).__name__,
                )
                return self._denied(
                    log, Denied(reason=DenialReason.STORAGE_FAILURE, message="Could not complete contact reveal")
                )

            if isinstance(outcome, Denied):
                return self._denied(log, outcome)

            log.info(
                "contact_revealed",
                already_disclosed=outcome.already_disclosed,
                contacts_used=outcome.quota.used if outcome.quota else None,
                contact_limit=outcome.quota.limit if outcome.quota else None,
            )
            return outcome

        return self._denied(
            log,
            Denied(reason=DenialReason.CONCURRENCY_CONFLICT, message="Subscription changed during request, retry"),
        )

    async def _run_attempt(self, user_id: str, worker_id: str) -> RevealOutcome:
        try:
            return await self._attempt(user_id, worker_id)
        except STORAGE_ERRORS as exc:
            raise StorageFailureError(f"Contact reveal failed for worker {worker_id}") from exc

    async def _attempt(self, user_id: str, worker_id: str) -> RevealOutcome:
        async with self.session_factory() as session:
            try:
                worker = await get_public_record(session, worker_id)
            except WorkerNotFoundError as exc:
                return Denied(reason=DenialReason.WORKER_NOT_FOUND, message=str(exc))
            except WorkerNotPublicError as exc:
                return Denied(reason=DenialReason.WORKER_NOT_PUBLIC, message=str(exc))

            contact = ContactPayload(phone=worker.phone, whatsapp=worker.whatsapp)

            if await has_disclosed(session, user_id, worker_id):
                return Revealed(contact=contact, already_disclosed=True)

            try:
                subscription = await get_or_provision(session, user_id, self.settings)
            except NoActiveSubscriptionError as exc:
                return Denied(reason=DenialReason.NO_ACTIVE_SUBSCRIPTION, message=str(exc))

            quota = usage_snapshot(subscription, subscription.plan)
            denial = quota_denial(quota)
            if denial is not None:
                return denial

            # Journal row and counter increment commit together
            try:
                disclosure = await record_disclosure(session, user_id, worker_id, subscription.id)
                if disclosure is None:
                    # A concurrent request journaled this pair first and paid for it
                    await session.rollback()
                    return Revealed(contact=contact, already_disclosed=True, quota=quota)

                used = await increment_contacts_used(session, subscription.id, subscription.plan_id, quota.limit)
                await session.commit()
            except ConcurrencyConflictError:
                await session.rollback()
                raise

            return Revealed(
                contact=contact,
                already_disclosed=False,
                quota=QuotaSnapshot(used=used, limit=quota.limit),
            )

    @staticmethod
    def _denied(log, outcome: Denied) -> Denied:
        log.info("contact_denied", reason=outcome.reason.value, used=outcome.used, limit=outcome.limit)
        return outcome
