"""Listing form fields, submit gating and payload serialization."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from listing_form.models import Place

logger = logging.getLogger(__name__)


def build_payload(title: str, place: Place, price: str, description: str) -> Dict[str, Any]:
    return {
        "title": title,
        "location": place.to_dict(),
        "price": price,
        "description": description,
    }


def render_payload(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


@dataclass
class FormState:
    """Mutable state of one listing form.

    ``last_queried_text`` is the autocomplete dedup marker: the last query a
    lookup was started for. It lives here so that clearing the form also lets
    a later identical query through.
    """

    title: str = ""
    location_text: str = ""
    price: str = ""
    description: str = ""
    selected_place: Optional[Place] = None
    suggestions: List[Place] = field(default_factory=list)
    is_loading: bool = False
    is_location_focused: bool = False
    last_queried_text: Optional[str] = None
    json_result: str = ""
    show_json_result: bool = False

    @property
    def selected_label(self) -> Optional[str]:
        if self.selected_place is None:
            return None
        return self.selected_place.label

    @property
    def can_submit(self) -> bool:
        return len(self.title) > 0 and self.selected_place is not None

    def update_fields(
        self,
        *,
        title: Optional[str] = None,
        price: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        if title is not None:
            self.title = title
        if price is not None:
            self.price = price
        if description is not None:
            self.description = description

    def submit(self) -> Optional[Dict[str, Any]]:
        """Serialize the form and clear it. Returns ``None`` when nothing is submittable."""
        place = self.selected_place
        if place is None or not self.title:
            logger.debug("Ignoring submit: title=%r selected_place=%r", self.title, place)
            return None

        payload = build_payload(self.title, place, self.price, self.description)
        self.json_result = render_payload(payload)
        self.show_json_result = True
        logger.info("Submitted listing %r at place_id=%s", self.title, place.place_id)
        self.clear()
        return payload

    def clear(self) -> None:
        self.title = ""
        self.location_text = ""
        self.price = ""
        self.description = ""
        self.selected_place = None
        self.suggestions = []
        self.is_loading = False
        self.last_queried_text = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "locationText": self.location_text,
            "price": self.price,
            "description": self.description,
            "selectedPlace": self.selected_place.to_dict() if self.selected_place else None,
            "suggestions": [place.to_dict() for place in self.suggestions],
            "isLoading": self.is_loading,
            "isLocationFocused": self.is_location_focused,
            "canSubmit": self.can_submit,
            "jsonResult": self.json_result,
            "showJsonResult": self.show_json_result,
        }
