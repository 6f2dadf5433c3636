"""Re-export all models so Base.metadata sees them."""

from jaipurhelp.db.models.contact_disclosure import ContactDisclosure
from jaipurhelp.db.models.plan import SubscriptionPlan
from jaipurhelp.db.models.subscription import Subscription
from jaipurhelp.db.models.worker import Worker

__all__ = [
    "ContactDisclosure",
    "Subscription",
    "SubscriptionPlan",
    "Worker",
]
