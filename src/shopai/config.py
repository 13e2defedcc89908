"""Client configuration: reads settings from environment variables.

All settings have sensible defaults for local development against a backend
started on ``localhost:3000``.  Deployments override them via ``SHOPAI_*``
env vars.

The request timeout is not configurable; see
``shopai.constants.REQUEST_TIMEOUT_SECONDS``.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from shopai.constants import DEFAULT_REGION, REGION_CURRENCIES

DEFAULT_BASE_URL = "http://localhost:3000/api"


def _default_state_path() -> Path:
    return Path.home() / ".shopai" / "state.json"


@dataclass(frozen=True)
class ClientSettings:
    """Immutable client configuration read from environment at startup."""

    # Backend origin including the /api prefix
    base_url: str = DEFAULT_BASE_URL

    # JSON file holding the persisted auth token and device id
    state_path: Path = field(default_factory=_default_state_path)

    # Storefront defaults; AccountService.detect_region can override them
    region: str = DEFAULT_REGION
    currency: str = REGION_CURRENCIES[DEFAULT_REGION]

    # Logging
    log_level: str = "INFO"


def load_settings() -> ClientSettings:
    """Build settings from ``SHOPAI_*`` environment variables."""
    region = os.getenv("SHOPAI_REGION", DEFAULT_REGION).upper()
    currency = os.getenv(
        "SHOPAI_CURRENCY",
        REGION_CURRENCIES.get(region, REGION_CURRENCIES[DEFAULT_REGION]),
    ).upper()
    state_path = os.getenv("SHOPAI_STATE_PATH")

    return ClientSettings(
        base_url=os.getenv("SHOPAI_API_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
        state_path=Path(state_path).expanduser() if state_path else _default_state_path(),
        region=region,
        currency=currency,
        log_level=os.getenv("SHOPAI_LOG_LEVEL", "INFO").upper(),
    )
