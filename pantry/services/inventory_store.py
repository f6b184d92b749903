"""Keyed access to the ``inventory`` document collection.

Each pantry item is one document whose id is the item name and whose body is
``{"quantity": <int>}``. Every public method is a single round trip; the
read-modify-write sequencing lives in :mod:`pantry.controller`.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Mapping, Optional
import logging
import os
import re

from google.api_core import exceptions as google_exceptions
from google.auth.exceptions import GoogleAuthError
from pydantic import ValidationError

from commonlib.config import DEFAULT_COLLECTION, PantryConfig
from commonlib.firebase import connect_firestore, load_service_account
from commonlib.storage import InvalidKey, JsonStore, MalformedDocument, StoreUnavailable
from pantry.models import QUANTITY_FIELD, InventoryItem

logger = logging.getLogger(__name__)

MAX_KEY_BYTES = 1500
_RESERVED_KEY = re.compile(r"^__.*__$", re.DOTALL)


def validate_item_key(name: Any) -> str:
    """Return ``name`` unchanged if it is a usable document id.

    The rules are Firestore's document id rules and are applied to every
    backend so that an item accepted locally would also be accepted remotely.
    """

    if not isinstance(name, str) or not name:
        raise InvalidKey(name, "item name must be a non-empty string")
    if "/" in name:
        raise InvalidKey(name, "item name cannot contain '/'")
    if name in {".", ".."}:
        raise InvalidKey(name, "item name cannot be '.' or '..'")
    if _RESERVED_KEY.match(name):
        raise InvalidKey(name, "names of the form __name__ are reserved")
    if len(name.encode("utf-8")) > MAX_KEY_BYTES:
        raise InvalidKey(name, f"item name is longer than {MAX_KEY_BYTES} bytes")
    return name


def _checked_quantity(quantity: int) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise TypeError("quantity must be an integer")
    if quantity < 1:
        raise ValueError("stored quantity must be at least 1; delete the item instead")
    return quantity


class InventoryStore:
    """Base class for inventory backends.

    Subclasses implement the four round trips; parsing of stored bodies into
    :class:`InventoryItem` is shared here.
    """

    collection: str = DEFAULT_COLLECTION

    def list(self) -> list[InventoryItem]:
        raise NotImplementedError

    def get(self, name: str) -> Optional[InventoryItem]:
        raise NotImplementedError

    def put(self, name: str, quantity: int) -> InventoryItem:
        raise NotImplementedError

    def delete(self, name: str) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Parsing helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _item(key: str, body: Any) -> InventoryItem:
        if not isinstance(body, Mapping) or QUANTITY_FIELD not in body:
            raise MalformedDocument(key, f"missing {QUANTITY_FIELD!r} field")
        try:
            return InventoryItem(name=key, quantity=body[QUANTITY_FIELD])
        except ValidationError as exc:
            raise MalformedDocument(key, exc.errors()[0]["msg"]) from exc

    def _items(self, documents: Iterable[tuple[str, Any]]) -> list[InventoryItem]:
        items: list[InventoryItem] = []
        for key, body in documents:
            try:
                items.append(self._item(key, body))
            except MalformedDocument as exc:
                logger.warning("Skipping %s in %s: %s", key, self.collection, exc.reason)
        return items


@contextmanager
def _round_trip(operation: str, key: Optional[str] = None) -> Iterator[None]:
    """Translate Google client failures into the store error taxonomy."""

    try:
        yield
    except google_exceptions.InvalidArgument as exc:
        if key is None:
            raise StoreUnavailable(f"{operation} rejected: {exc}") from exc
        raise InvalidKey(key, str(exc)) from exc
    except (google_exceptions.GoogleAPIError, GoogleAuthError) as exc:
        logger.warning("Firestore %s failed: %s", operation, exc)
        raise StoreUnavailable(f"{operation} failed: {exc}") from exc


class FirestoreInventoryStore(InventoryStore):
    """Inventory backed by a Firestore collection."""

    def __init__(self, client, collection: str = DEFAULT_COLLECTION):
        self._client = client
        self.collection = collection

    def _documents(self):
        return self._client.collection(self.collection)

    def list(self) -> list[InventoryItem]:
        with _round_trip("list"):
            snapshots = list(self._documents().stream())
        return self._items((snap.id, snap.to_dict()) for snap in snapshots)

    def get(self, name: str) -> Optional[InventoryItem]:
        key = validate_item_key(name)
        with _round_trip("get", key):
            snapshot = self._documents().document(key).get()
        if not snapshot.exists:
            return None
        return self._item(key, snapshot.to_dict())

    def put(self, name: str, quantity: int) -> InventoryItem:
        key = validate_item_key(name)
        item = InventoryItem(name=key, quantity=_checked_quantity(quantity))
        # set() without merge replaces the whole document
        with _round_trip("put", key):
            self._documents().document(key).set(item.document())
        return item

    def delete(self, name: str) -> None:
        key = validate_item_key(name)
        with _round_trip("delete", key):
            self._documents().document(key).delete()


class JsonInventoryStore(InventoryStore):
    """Inventory backed by a local :class:`JsonStore` file."""

    def __init__(self, store: JsonStore, collection: str = DEFAULT_COLLECTION):
        self._store = store
        self.collection = collection

    def list(self) -> list[InventoryItem]:
        return self._items(self._store.all().items())

    def get(self, name: str) -> Optional[InventoryItem]:
        key = validate_item_key(name)
        body = self._store.get(key)
        if body is None:
            return None
        return self._item(key, body)

    def put(self, name: str, quantity: int) -> InventoryItem:
        key = validate_item_key(name)
        item = InventoryItem(name=key, quantity=_checked_quantity(quantity))
        self._store.put(key, item.document())
        return item

    def delete(self, name: str) -> None:
        self._store.remove(validate_item_key(name))


def open_inventory_store(config: PantryConfig, env: Mapping[str, str] | None = None) -> InventoryStore:
    """Return the Firestore store when credentials work, else the local file."""

    account = load_service_account(config.base_dir, os.environ if env is None else env)
    if account:
        try:
            client = connect_firestore(account)
        except Exception as exc:  # optional backend; fall through to the local file
            print(f"Firestore disabled: {exc}")
        else:
            logger.info("Using Firestore collection %r", config.collection)
            return FirestoreInventoryStore(client, config.collection)

    print(f"WARNING: Firestore not configured; using local store at {config.local_store_path}")
    store = JsonStore(config.local_store_path, backups=config.store_backups)
    return JsonInventoryStore(store, config.collection)
