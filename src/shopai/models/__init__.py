"""Public model re-exports for shopai.

Consumers should import from ``shopai.models`` rather than reaching into
sub-modules directly.
"""

# --- Envelope ---
from shopai.models.envelope import APIErrorBody, APIResponse

# --- Answers ---
from shopai.models.answer import (
    AnswerKind,
    AnswerSet,
    AnswerValue,
    ChoicesAnswer,
    RangeAnswer,
    SearchAnswer,
    TextAnswer,
    answer_from_wire,
    answer_to_wire,
)

# --- Auth ---
from shopai.models.auth import (
    RegisterRequest,
    RegisterResponse,
    SubscriptionStatus,
    UserInfo,
    UserStatus,
)

# --- Catalog / questions ---
from shopai.models.catalog import (
    BudgetPreset,
    Category,
    Question,
    QuestionOption,
    QuestionSet,
    QuestionType,
    RangeConfig,
    Subcategory,
)

# --- Search ---
from shopai.models.search import (
    RankedProduct,
    RecommendationResponse,
    SearchCriteria,
    SearchRequest,
)

# --- Subscriptions ---
from shopai.models.subscription import (
    ReceiptValidationRequest,
    ReceiptValidationResponse,
    SubscriptionPlan,
)

# --- Flow ---
from shopai.models.flow import FlowSnapshot, FlowStatus, RangeSelection

__all__ = [
    # Envelope
    "APIErrorBody",
    "APIResponse",
    # Answers
    "AnswerKind",
    "AnswerSet",
    "AnswerValue",
    "ChoicesAnswer",
    "RangeAnswer",
    "SearchAnswer",
    "TextAnswer",
    "answer_from_wire",
    "answer_to_wire",
    # Auth
    "RegisterRequest",
    "RegisterResponse",
    "SubscriptionStatus",
    "UserInfo",
    "UserStatus",
    # Catalog
    "BudgetPreset",
    "Category",
    "Question",
    "QuestionOption",
    "QuestionSet",
    "QuestionType",
    "RangeConfig",
    "Subcategory",
    # Search
    "RankedProduct",
    "RecommendationResponse",
    "SearchCriteria",
    "SearchRequest",
    # Subscriptions
    "ReceiptValidationRequest",
    "ReceiptValidationResponse",
    "SubscriptionPlan",
    # Flow
    "FlowSnapshot",
    "FlowStatus",
    "RangeSelection",
]
