"""Core data models shared by the listing form."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True, slots=True)
class Place:
    """A location suggestion returned by the places endpoint."""

    place_id: str
    main_text: str
    secondary_text: str

    @property
    def label(self) -> str:
        """Display text, also used to detect edits that diverge from the selection."""
        return format_label(self.main_text, self.secondary_text)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Place":
        return cls(
            place_id=raw["placeId"],
            main_text=raw["mainText"],
            secondary_text=raw["secondaryText"],
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "placeId": self.place_id,
            "mainText": self.main_text,
            "secondaryText": self.secondary_text,
        }


def format_label(main_text: str, secondary_text: str) -> str:
    return f"{main_text}, {secondary_text}"
