"""Pantry inventory tracker: a Firestore-backed counter per pantry item."""

from .controller import InventoryController  # noqa: F401
from .dialog import AddItemDialog  # noqa: F401
from .models import InventoryItem  # noqa: F401
