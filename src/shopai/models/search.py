"""Search request and ranked-result models.

The ranking itself happens on the backend; ``RecommendationResponse`` is the
opaque payload it returns, typed only so callers can render it.
"""

from typing import List, Optional

from pydantic import Field

from shopai.constants import format_price
from shopai.models.answer import SearchAnswer
from shopai.models.base import APIModel


class SearchRequest(APIModel):
    subcategory_id: str
    answers: List[SearchAnswer]


class Product(APIModel):
    """Marketplace listing fields shared by plain and ranked products."""

    asin: str
    title: str
    price: float
    currency: str
    original_price: Optional[float] = None
    image_url: str = ""
    rating: float = 0.0
    review_count: int = 0
    amazon_url: str = ""
    is_prime: bool = False
    availability: str = ""
    features: List[str] = []

    @property
    def formatted_price(self) -> str:
        return format_price(self.price, self.currency)

    @property
    def formatted_original_price(self) -> Optional[str]:
        """Strike-through price, only when the listing is discounted."""
        if self.original_price is None or self.original_price <= self.price:
            return None
        return format_price(self.original_price, self.currency)

    @property
    def discount_percentage(self) -> Optional[int]:
        if self.original_price is None or self.original_price <= self.price:
            return None
        return int((1 - self.price / self.original_price) * 100)


class RankedProduct(Product):
    """A product with the backend's ranking verdict attached."""

    rank: int
    match_score: int = Field(ge=0, le=100)
    explanation: str = ""
    pros: List[str] = []
    cons: List[str] = []


class SearchCriteria(APIModel):
    category: str
    subcategory: str
    budget: str
    priorities: List[str] = []


class RecommendationResponse(APIModel):
    """Ranked result of ``POST /search``."""

    search_id: str
    products: List[RankedProduct]
    summary: str
    search_criteria: SearchCriteria
    disclaimer: str = ""
    timestamp: str = ""
