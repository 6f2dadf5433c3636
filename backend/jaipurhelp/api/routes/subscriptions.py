"""Subscription routes: current plan and usage, plan changes, plan catalog."""

from fastapi import APIRouter, Depends, HTTPException

from jaipurhelp.core.auth import AuthUser, require_auth
from jaipurhelp.core.exceptions import NoActiveSubscriptionError, PlanNotFoundError
from jaipurhelp.db.base import get_session_factory
from jaipurhelp.db.models.subscription import Subscription
from jaipurhelp.domain.tiers import parse_tier
from jaipurhelp.schemas.entitlements import ChangePlanRequest, PlanResponse, QuotaResponse, SubscriptionResponse
from jaipurhelp.services.plan_registry import PlanRegistry
from jaipurhelp.services.subscription_ledger import (
    cancel_subscription,
    change_plan,
    get_or_provision,
    usage_snapshot,
)

router = APIRouter()


def _subscription_response(subscription: Subscription) -> SubscriptionResponse:
    return SubscriptionResponse(
        id=subscription.id,
        status=subscription.status,
        start_date=subscription.start_date,
        end_date=subscription.end_date,
        plan=PlanResponse.model_validate(subscription.plan),
        contacts=QuotaResponse.from_snapshot(usage_snapshot(subscription, subscription.plan)),
        job_posts_used=subscription.job_posts_used,
    )


@router.get("/subscription-plans", response_model=list[PlanResponse])
async def list_subscription_plans():
    """Public plan catalog, cheapest tier first."""
    async with get_session_factory()() as session:
        plans = await PlanRegistry(session).list_plans()
    return [PlanResponse.model_validate(p) for p in plans]


@router.get("/subscription", response_model=SubscriptionResponse)
async def get_subscription(user: AuthUser = Depends(require_auth)):
    """Active subscription with contact quota. Provisions the free tier on first call."""
    async with get_session_factory()() as session:
        try:
            subscription = await get_or_provision(session, user.user_id)
        except NoActiveSubscriptionError:
            raise HTTPException(status_code=403, detail={"reason": "NoActiveSubscription"})
        return _subscription_response(subscription)


@router.post("/subscriptions", response_model=SubscriptionResponse)
async def create_subscription(body: ChangePlanRequest, user: AuthUser = Depends(require_auth)):
    """Move the user onto a plan. Contact usage carries over when it fits the new limit."""
    async with get_session_factory()() as session:
        try:
            subscription = await change_plan(session, user.user_id, parse_tier(body.tier))
        except (ValueError, PlanNotFoundError):
            raise HTTPException(status_code=404, detail={"reason": "PlanNotFound", "tier": body.tier})
        return _subscription_response(subscription)


@router.delete("/subscription", response_model=SubscriptionResponse)
async def delete_subscription(user: AuthUser = Depends(require_auth)):
    async with get_session_factory()() as session:
        try:
            subscription = await cancel_subscription(session, user.user_id)
        except NoActiveSubscriptionError:
            raise HTTPException(status_code=404, detail={"reason": "NoActiveSubscription"})
        return _subscription_response(subscription)
