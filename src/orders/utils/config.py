"""Environment-driven settings for the Orders domain.

Protean's own configuration (providers, event store, broker) lives in
``domain.toml`` next to ``domain.py``. The values here are application knobs
that do not belong to the framework.
"""

import os

DEFAULT_NUMBER_MAX_ATTEMPTS = 10


def get_environment() -> str:
    """Name of the running environment, lower-cased."""
    return (os.getenv("ENV") or os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def get_number_max_attempts() -> int:
    """How many order-number candidates a single creation may try."""
    raw = os.getenv("ORDERS_NUMBER_MAX_ATTEMPTS")
    if not raw:
        return DEFAULT_NUMBER_MAX_ATTEMPTS

    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"ORDERS_NUMBER_MAX_ATTEMPTS must be an integer, got {raw!r}") from exc

    if value < 1:
        raise ValueError(f"ORDERS_NUMBER_MAX_ATTEMPTS must be at least 1, got {value}")
    return value


def get_log_dir() -> str:
    return os.getenv("ORDERS_LOG_DIR", "logs")
