"""AccountService: install registration, account status and entitlements.

Owns the start-up sequence that every front-end runs before it can show
categories:

    1. token stored?  → ``GET /auth/status``; on 401 re-register
       no token?      → register this install
    2. load the category list

and the predicates that decide whether a new search may start (free
searches left, or an active subscription from either the backend or the
platform's entitlement provider).

Failures are logged and recorded in :attr:`last_error` rather than raised,
so the caller always lands in an inspectable state.
"""

from __future__ import annotations

import logging

from shopai.client import APIClient
from shopai.constants import (
    DEFAULT_FREE_SEARCHES,
    DEFAULT_REGION,
    LOCALE_REGIONS,
    REGION_CURRENCIES,
)
from shopai.errors import APIServiceError, Unauthorized
from shopai.interfaces import EntitlementProvider
from shopai.models.auth import SubscriptionStatus, UserStatus
from shopai.models.catalog import Category, Subcategory
from shopai.models.subscription import ReceiptValidationResponse, SubscriptionPlan
from shopai.session import AuthSession

logger = logging.getLogger(__name__)


def detect_region(region_code: str | None) -> tuple[str, str]:
    """Map a locale region code to a storefront ``(region, currency)``.

    ``US`` → ("US", "USD"); ``GB``/``UK`` and anything unsupported →
    ("UK", "GBP").
    """
    region = LOCALE_REGIONS.get((region_code or "").upper(), DEFAULT_REGION)
    return region, REGION_CURRENCIES[region]


class AccountService:
    """Registration, status and entitlement bookkeeping for one install.

    Args:
        client: the API client (shares ``session`` for its token)
        session: the AuthSession that persists token and device id
        entitlements: optional platform purchase provider
        region: storefront region; defaults to the client settings
        currency: storefront currency; defaults to the client settings
    """

    def __init__(
        self,
        client: APIClient,
        session: AuthSession,
        *,
        entitlements: EntitlementProvider | None = None,
        region: str | None = None,
        currency: str | None = None,
    ) -> None:
        self._client = client
        self._session = session
        self._entitlements = entitlements
        self.region = region or client.settings.region
        self.currency = currency or client.settings.currency

        self.user_status: UserStatus | None = None
        self.categories: list[Category] = []
        self.plans: list[SubscriptionPlan] = []
        self.last_error: APIServiceError | None = None

    # ==================================================================
    # Start-up
    # ==================================================================

    async def initialize(self) -> bool:
        """Authenticate (registering if needed) and load categories.

        Returns True when both steps succeeded.
        """
        self.last_error = None
        try:
            if self._session.token is not None:
                try:
                    self.user_status = await self._client.get_user_status()
                except Unauthorized:
                    logger.info("Stored token rejected; re-registering device")
                    await self.register_device()
            else:
                await self.register_device()

            self.categories = await self._client.get_categories(self.currency)
        except APIServiceError as exc:
            logger.error("Initialization failed: %s", exc)
            self.last_error = exc
            return False

        logger.info("Initialized with %d categories", len(self.categories))
        return True

    async def register_device(self) -> UserStatus:
        """Register this install, store the token and cache the status.

        Raises:
            APIServiceError: registration failed
        """
        response = await self._client.register(
            device_id=self._session.device_id,
            region=self.region,
            currency=self.currency,
        )
        self._client.set_auth_token(response.token)
        self.user_status = UserStatus.from_user_info(response.user)
        logger.info("Registered device as user %s", response.user.id)
        return self.user_status

    async def refresh_user_status(self) -> UserStatus | None:
        """Re-fetch the account status; keeps the cached one on failure."""
        try:
            self.user_status = await self._client.get_user_status()
        except APIServiceError as exc:
            logger.warning("Failed to refresh user status: %s", exc)
            self.last_error = exc
        return self.user_status

    def sign_out(self) -> None:
        """Forget the token and cached status.  The device id persists."""
        self._client.clear_auth_token()
        self.user_status = None

    # ==================================================================
    # Entitlement predicates
    # ==================================================================

    @property
    def is_authenticated(self) -> bool:
        return self._session.token is not None

    @property
    def free_searches_remaining(self) -> int:
        if self.user_status is None:
            return DEFAULT_FREE_SEARCHES
        return self.user_status.free_searches_remaining

    @property
    def has_active_subscription(self) -> bool:
        if (
            self.user_status is not None
            and self.user_status.subscription_status == SubscriptionStatus.ACTIVE
        ):
            return True
        return self._entitlements is not None and self._entitlements.has_active_subscription

    @property
    def can_search(self) -> bool:
        return self.has_active_subscription or self.free_searches_remaining > 0

    def check_search_allowed(self, subcategory: Subcategory) -> bool:
        """Gate for starting a search in ``subcategory``.

        Returns False when the caller should show the upgrade path instead.
        """
        if not self.can_search:
            logger.info("Search in %s gated: no free searches left", subcategory.id)
            return False
        return True

    # ==================================================================
    # Subscriptions
    # ==================================================================

    async def load_plans(self, currency: str | None = None) -> list[SubscriptionPlan]:
        try:
            self.plans = await self._client.get_subscription_plans(currency or self.currency)
        except APIServiceError as exc:
            logger.warning("Failed to load subscription plans: %s", exc)
            self.last_error = exc
        return self.plans

    async def reconcile_purchase(
        self, *, restore: bool = False
    ) -> ReceiptValidationResponse | None:
        """Send the platform receipt to the backend after a purchase or restore.

        Returns None when there is no provider or no receipt.  On success the
        cached status picks up the validated subscription state.
        """
        if self._entitlements is None:
            return None
        receipt = await self._entitlements.receipt_data()
        if not receipt:
            logger.info("No receipt available to reconcile")
            return None

        try:
            if restore:
                response = await self._client.restore_purchases(receipt)
            else:
                response = await self._client.validate_receipt(receipt)
        except APIServiceError as exc:
            logger.warning("Receipt reconciliation failed: %s", exc)
            self.last_error = exc
            return None

        if self.user_status is not None:
            self.user_status = self.user_status.model_copy(
                update={
                    "subscription_status": response.subscription_status,
                    "subscription_expires_at": response.expires_at,
                    "can_search": (
                        response.subscription_status == SubscriptionStatus.ACTIVE
                        or self.user_status.free_searches_remaining > 0
                    ),
                }
            )
        logger.info(
            "Receipt reconciled: subscription %s", response.subscription_status.value,
        )
        return response
