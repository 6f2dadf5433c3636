"""Contact disclosure routes: reveal a worker's phone/WhatsApp against quota."""

from fastapi import APIRouter, Depends, HTTPException

from jaipurhelp.core.auth import AuthUser, require_auth
from jaipurhelp.db.base import get_session_factory
from jaipurhelp.domain.disclosure import DenialReason, Denied, RevealOutcome
from jaipurhelp.schemas.entitlements import ContactResponse, DisclosureRecordResponse, RevealRequest
from jaipurhelp.services.disclosure_guard import DisclosureGuard
from jaipurhelp.services.disclosure_journal import list_disclosures

router = APIRouter()

DENIAL_STATUS: dict[DenialReason, int] = {
    DenialReason.UNAUTHENTICATED: 401,
    DenialReason.WORKER_NOT_FOUND: 404,
    DenialReason.WORKER_NOT_PUBLIC: 404,
    DenialReason.NO_ACTIVE_SUBSCRIPTION: 403,
    DenialReason.QUOTA_EXCEEDED: 403,
    DenialReason.CONCURRENCY_CONFLICT: 409,
}


def _denial_detail(denied: Denied) -> dict:
    # Hidden workers are indistinguishable from missing ones
    reason = DenialReason.WORKER_NOT_FOUND if denied.reason == DenialReason.WORKER_NOT_PUBLIC else denied.reason
    detail: dict = {"reason": reason.value}
    if denied.reason == DenialReason.QUOTA_EXCEEDED:
        detail["used"] = denied.used
        detail["limit"] = denied.limit
    if denied.reason.retryable:
        detail["retryable"] = True
    return detail


def _to_response(worker_id: str, outcome: RevealOutcome) -> ContactResponse:
    if isinstance(outcome, Denied):
        if outcome.reason == DenialReason.STORAGE_FAILURE:
            # Surfaced through the generic 500 handler
            raise HTTPException(status_code=500, detail="Internal server error")
        raise HTTPException(status_code=DENIAL_STATUS[outcome.reason], detail=_denial_detail(outcome))

    return ContactResponse(
        worker_id=worker_id,
        phone=outcome.contact.phone,
        whatsapp=outcome.contact.whatsapp,
        already_disclosed=outcome.already_disclosed,
    )


@router.post("/workers/{worker_id}/contact", response_model=ContactResponse)
async def reveal_worker_contact(worker_id: str, user: AuthUser = Depends(require_auth)):
    """Reveal a worker's contact, charging one contact view the first time."""
    outcome = await DisclosureGuard().reveal_contact(user.user_id, worker_id)
    return _to_response(worker_id, outcome)


@router.post("/contact-views", response_model=ContactResponse)
async def create_contact_view(body: RevealRequest, user: AuthUser = Depends(require_auth)):
    outcome = await DisclosureGuard().reveal_contact(user.user_id, body.worker_id)
    return _to_response(body.worker_id, outcome)


@router.get("/contact-views", response_model=list[DisclosureRecordResponse])
async def get_contact_views(user: AuthUser = Depends(require_auth)):
    """Workers this user has unlocked, newest first."""
    async with get_session_factory()() as session:
        disclosures = await list_disclosures(session, user.user_id)
    return [DisclosureRecordResponse.model_validate(d) for d in disclosures]
