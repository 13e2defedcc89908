"""Registration and account-status models."""

import enum
from typing import Optional

from shopai.models.base import APIModel


class SubscriptionStatus(str, enum.Enum):
    """Server-side subscription state for a user.

    ``grace_period`` is the store's billing-retry window; it is reported
    but does not count as an active entitlement.
    """

    NONE = "none"
    ACTIVE = "active"
    EXPIRED = "expired"
    GRACE_PERIOD = "grace_period"


class RegisterRequest(APIModel):
    device_id: str
    region: str
    currency: str


class UserInfo(APIModel):
    """User record embedded in the registration response."""

    id: str
    free_searches_remaining: int
    subscription_status: SubscriptionStatus
    subscription_expires_at: Optional[str] = None


class RegisterResponse(APIModel):
    token: str
    user: UserInfo


class UserStatus(APIModel):
    """Account status returned by ``GET /auth/status``."""

    user_id: str
    free_searches_remaining: int
    subscription_status: SubscriptionStatus
    subscription_expires_at: Optional[str] = None
    can_search: bool

    @classmethod
    def from_user_info(cls, user: UserInfo) -> "UserStatus":
        """Derive a status view from the user embedded in a registration."""
        return cls(
            user_id=user.id,
            free_searches_remaining=user.free_searches_remaining,
            subscription_status=user.subscription_status,
            subscription_expires_at=user.subscription_expires_at,
            can_search=(
                user.free_searches_remaining > 0
                or user.subscription_status == SubscriptionStatus.ACTIVE
            ),
        )
