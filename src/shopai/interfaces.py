"""Abstract interfaces for collaborators outside the SDK.

These ABCs define the contract that host applications must fulfil.  The SDK
ships simple concrete stores (see ``shopai.session``) but no entitlement
provider. Purchase flows belong to the platform the client runs on.

Typical integration flow::

    store = JSONFileStore(settings.state_path)
    session = AuthSession(store)
    client = APIClient(session, settings)

    # Host-side purchase flow (App Store, Play Store, web checkout, ...)
    entitlements: EntitlementProvider = MyStoreEntitlements(...)
    account = AccountService(client, session, entitlements=entitlements)

    await account.initialize()
    if account.can_search:
        flow = AnswerFlowEngine(client)
        await flow.load_questions("sub_headphones", account.currency)
"""

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Persistent string key/value storage for the session scalars.

    Only two keys are ever written (auth token and device id), so
    implementations need no schema or versioning.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or ``None`` if the key is absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``.  Removing an absent key is not an error."""
        ...


class EntitlementProvider(ABC):
    """Interface for the platform purchase/entitlement provider.

    The provider owns purchase initiation and restoration.  The SDK only
    asks whether an entitlement is active and, after a purchase or restore,
    fetches the receipt so the backend can reconcile it through
    ``APIClient.validate_receipt`` / ``APIClient.restore_purchases``.
    """

    @property
    @abstractmethod
    def has_active_subscription(self) -> bool:
        """True while the platform reports an active subscription."""
        ...

    @abstractmethod
    async def receipt_data(self) -> str | None:
        """Return the encoded purchase receipt, or ``None`` if there is none."""
        ...
