"""Client-wide constants shared across the SDK.

These values are referenced by the API client, the answer flow engine and
the account service.  They mirror conventions of the ShopAI backend API.

The defaults that vary per deployment (base address, region) live in
``shopai.config`` instead and are read from the environment.
"""

# Every request gives up after this many seconds and surfaces a NetworkError.
REQUEST_TIMEOUT_SECONDS: float = 30.0

# Error code the backend sends with HTTP 403 once free searches are used up.
LIMIT_REACHED_CODE = "LIMIT_REACHED"

# Fallback messages for statuses whose body carries no usable error object.
ACCESS_DENIED_MESSAGE = "Access denied"
TOO_MANY_REQUESTS_MESSAGE = "Too many requests. Please try again later."

# Multi-select questions accept at most this many selections.
MAX_MULTI_SELECT = 3

# Assumed free-search allowance before the first status call returns.
DEFAULT_FREE_SEARCHES = 3

# Key/value store keys for the two persisted scalars.
AUTH_TOKEN_KEY = "authToken"
DEVICE_ID_KEY = "deviceId"

# Supported storefront regions and their currencies.  Unknown locales fall
# back to the UK storefront.
REGION_CURRENCIES: dict[str, str] = {
    "UK": "GBP",
    "US": "USD",
}
DEFAULT_REGION = "UK"

# Locale region codes that map onto a storefront region.
LOCALE_REGIONS: dict[str, str] = {
    "US": "US",
    "GB": "UK",
    "UK": "UK",
}

# Plan period → display suffix.
PERIOD_LABELS: dict[str, str] = {
    "weekly": "/week",
    "yearly": "/year",
}


def currency_symbol(currency: str) -> str:
    """Display symbol for a currency code ("£" for GBP, "$" otherwise)."""
    return "£" if currency == "GBP" else "$"


def format_price(amount: float, currency: str) -> str:
    """Format ``amount`` with its currency symbol and two decimals."""
    return f"{currency_symbol(currency)}{amount:.2f}"
