"""shopai: client SDK for the ShopAI product-recommendation backend.

Public API:
    APIClient:         typed async client: request building, bearer auth,
                        envelope decoding, error classification
    AuthSession:       bearer token + persistent device identifier
    AnswerFlowEngine:  linear question flow: answers, navigation, submission
    AccountService:    registration, status, entitlement checks, receipts

Stores:
    KeyValueStore:     ABC for persisting the session scalars
    JSONFileStore:     JSON file on disk
    MemoryStore:       in-process dict

Collaborator interfaces:
    EntitlementProvider: ABC for the platform purchase provider

Errors (all ``APIServiceError`` subclasses):
    InvalidEndpoint, NoData, DecodingError, ServerError, NetworkError,
    Unauthorized, LimitReached
"""

from shopai.account import AccountService, detect_region
from shopai.client import APIClient
from shopai.config import ClientSettings, load_settings
from shopai.errors import (
    AnswerShapeError,
    APIServiceError,
    DecodingError,
    InvalidEndpoint,
    LimitReached,
    NetworkError,
    NoData,
    ServerError,
    Unauthorized,
)
from shopai.flow import AnswerFlowEngine
from shopai.interfaces import EntitlementProvider, KeyValueStore
from shopai.models.flow import FlowSnapshot, FlowStatus
from shopai.session import AuthSession, JSONFileStore, MemoryStore

__all__ = [
    # Core
    "APIClient",
    "AnswerFlowEngine",
    "AccountService",
    "AuthSession",
    "detect_region",
    # Config
    "ClientSettings",
    "load_settings",
    # Stores & interfaces
    "EntitlementProvider",
    "KeyValueStore",
    "JSONFileStore",
    "MemoryStore",
    # Flow state
    "FlowSnapshot",
    "FlowStatus",
    # Errors
    "APIServiceError",
    "AnswerShapeError",
    "DecodingError",
    "InvalidEndpoint",
    "LimitReached",
    "NetworkError",
    "NoData",
    "ServerError",
    "Unauthorized",
]
