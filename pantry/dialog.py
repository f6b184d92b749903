"""State of the "Add New Item" dialog."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


@dataclass
class AddItemDialog:
    """Two-state (closed/open) dialog holding the draft item name.

    The dialog never talks to the store. Submitting hands the name to the
    ``add`` callable it is given and only clears and closes once that call
    returns.
    """

    is_open: bool = False
    draft: str = ""

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    def set_draft(self, name: str) -> None:
        self.draft = name

    def submit(self, add: Callable[[str], T], name: Optional[str] = None) -> T:
        result = add(self.draft if name is None else name)
        self.draft = ""
        self.is_open = False
        return result

    def as_dict(self) -> dict:
        return {"open": self.is_open, "draft": self.draft}
