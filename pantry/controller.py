"""In-memory view of the pantry and the actions that change it.

The controller keeps a mirror of the whole collection and rebuilds it from a
fresh listing after every mutation; it never patches the mirror locally.
Add and remove are plain read-then-write sequences against the store, so two
overlapping actions on the same item can lose an update.
"""

from __future__ import annotations

from typing import Iterable, Optional
import logging

from pantry.dialog import AddItemDialog
from pantry.models import InventoryItem
from pantry.services.inventory_store import InventoryStore

logger = logging.getLogger(__name__)


def matches_query(item: InventoryItem, query: str) -> bool:
    return query.lower() in item.name.lower()


def filter_items(items: Iterable[InventoryItem], query: str) -> list[InventoryItem]:
    """Items whose name contains ``query``, ignoring case, in their given order."""

    return [item for item in items if matches_query(item, query)]


class InventoryController:
    def __init__(self, store: InventoryStore, dialog: Optional[AddItemDialog] = None):
        self.store = store
        self.dialog = dialog or AddItemDialog()
        self.mirror: list[InventoryItem] = []
        self.search_query = ""

    # ------------------------------------------------------------------
    # Store synchronisation
    # ------------------------------------------------------------------
    def refresh(self) -> list[InventoryItem]:
        self.mirror = list(self.store.list())
        logger.debug("Mirror rebuilt with %d item(s)", len(self.mirror))
        return self.mirror

    def load(self) -> list[InventoryItem]:
        return self.refresh()

    def add_item(self, name: str) -> Optional[InventoryItem]:
        """Increment ``name`` (creating it at 1) and refresh the mirror.

        An empty name is ignored without touching the store. Store errors
        propagate and leave the mirror as it was.
        """

        if not name:
            logger.debug("Ignoring add for empty item name")
            return None
        current = self.store.get(name)
        quantity = current.quantity + 1 if current else 1
        written = self.store.put(name, quantity)
        logger.info("Added %r, quantity now %d", name, written.quantity)
        self.refresh()
        return written

    def remove_item(self, name: str) -> Optional[int]:
        """Decrement ``name``, deleting it when the last unit goes.

        Returns the remaining quantity (``0`` once deleted) or ``None`` when
        the item did not exist or the name was empty.
        """

        if not name:
            logger.debug("Ignoring remove for empty item name")
            return None
        current = self.store.get(name)
        remaining: Optional[int] = None
        if current is None:
            logger.info("Remove of %r skipped; no such item", name)
        elif current.quantity == 1:
            self.store.delete(name)
            remaining = 0
            logger.info("Removed last %r", name)
        else:
            remaining = self.store.put(name, current.quantity - 1).quantity
            logger.info("Removed %r, quantity now %d", name, remaining)
        self.refresh()
        return remaining

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------
    def set_search_query(self, query: str) -> None:
        self.search_query = query

    def filtered_view(self) -> list[InventoryItem]:
        return filter_items(self.mirror, self.search_query)

    # ------------------------------------------------------------------
    # User-facing actions
    # ------------------------------------------------------------------
    add = add_item
    remove = remove_item
    search = set_search_query

    def open_add_dialog(self) -> None:
        self.dialog.open()

    def close_add_dialog(self) -> None:
        self.dialog.close()

    def set_draft_name(self, name: str) -> None:
        self.dialog.set_draft(name)

    def submit_add(self, name: Optional[str] = None) -> Optional[InventoryItem]:
        return self.dialog.submit(self.add_item, name)

    def snapshot(self) -> dict:
        return {
            "items": [item.model_dump() for item in self.mirror],
            "visible": [item.model_dump() for item in self.filtered_view()],
            "query": self.search_query,
            "dialog": self.dialog.as_dict(),
        }
