from fastapi import APIRouter

from jaipurhelp.api.routes import disclosures, health, subscriptions, workers

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(disclosures.router, tags=["contacts"])
api_router.include_router(subscriptions.router, tags=["subscriptions"])
api_router.include_router(workers.router, tags=["workers"])
