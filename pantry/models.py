"""Pydantic models for pantry items and API payloads."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

QUANTITY_FIELD = "quantity"


class InventoryItem(BaseModel):
    """One pantry item as listed from the store.

    ``name`` doubles as the document key. ``quantity`` is always at least one;
    an item that would drop to zero is deleted instead of stored.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)

    @field_validator("quantity", mode="before")
    @classmethod
    def require_numeric(cls, value):
        # bool is an int subclass and strings would be coerced in lax mode
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("quantity must be a number")
        return value

    @computed_field
    @property
    def display_name(self) -> str:
        return self.name[:1].upper() + self.name[1:]

    def document(self) -> dict:
        return {QUANTITY_FIELD: self.quantity}


class SearchModel(BaseModel):
    query: str = ""


class DraftModel(BaseModel):
    name: str = ""


class SubmitModel(BaseModel):
    name: Optional[str] = None
