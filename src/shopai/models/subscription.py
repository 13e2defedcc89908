"""Subscription plan and receipt-validation models."""

from typing import List, Optional

from shopai.constants import PERIOD_LABELS, format_price
from shopai.models.auth import SubscriptionStatus
from shopai.models.base import APIModel


class SubscriptionPlan(APIModel):
    id: str
    name: str
    product_id: str
    price: float
    currency: str
    period: str
    features: List[str] = []
    badge: Optional[str] = None

    @property
    def formatted_price(self) -> str:
        return format_price(self.price, self.currency)

    @property
    def period_label(self) -> str:
        """Display suffix such as "/week"; empty for unknown periods."""
        return PERIOD_LABELS.get(self.period, "")


class ReceiptValidationRequest(APIModel):
    receipt_data: str


class ReceiptValidationResponse(APIModel):
    subscription_status: SubscriptionStatus
    expires_at: Optional[str] = None
    product_id: Optional[str] = None
    message: Optional[str] = None
