"""Subscription tier ordering and quota arithmetic.

Pure domain functions. No DB access, fully deterministic.
"""

from dataclasses import dataclass
from enum import StrEnum

# Limit value that disables capping for a metered dimension
UNLIMITED = -1


class Tier(StrEnum):
    """Subscription tiers, declared in ascending order."""

    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    BUSINESS = "business"

    @property
    def rank(self) -> int:
        return list(Tier).index(self)


def parse_tier(value: str) -> Tier:
    """Parse a tier slug, raising ValueError for unknown tiers."""
    return Tier(value.strip().lower())


def is_upgrade(current: Tier, target: Tier) -> bool:
    """True if ``target`` sits strictly above ``current`` in the tier order."""
    return target.rank > current.rank


def is_unlimited(limit: int) -> bool:
    return limit == UNLIMITED


def has_quota_remaining(used: int, limit: int) -> bool:
    if is_unlimited(limit):
        return True
    return used < limit


@dataclass(frozen=True)
class QuotaSnapshot:
    """Usage of one metered dimension against its plan limit."""

    used: int
    limit: int  # -1 = unlimited

    @property
    def unlimited(self) -> bool:
        return is_unlimited(self.limit)

    @property
    def remaining(self) -> int | None:
        """Remaining units, or None when unlimited."""
        if self.unlimited:
            return None
        return max(0, self.limit - self.used)

    @property
    def exhausted(self) -> bool:
        return not has_quota_remaining(self.used, self.limit)
