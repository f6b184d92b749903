"""Common helpers shared across the pantry service."""

from .config import PantryConfig, load_pantry_config
from .storage import (  # noqa: F401
    InvalidKey,
    JsonStore,
    MalformedDocument,
    StoreError,
    StoreUnavailable,
)

__all__ = [
    "PantryConfig",
    "load_pantry_config",
    "JsonStore",
    "StoreError",
    "StoreUnavailable",
    "InvalidKey",
    "MalformedDocument",
]
