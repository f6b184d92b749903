"""Store backends for the pantry inventory."""

from .inventory_store import (  # noqa: F401
    FirestoreInventoryStore,
    InventoryStore,
    JsonInventoryStore,
    open_inventory_store,
    validate_item_key,
)
