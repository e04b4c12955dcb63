"""Client for the places-suggestion endpoint."""

import logging
from typing import Any, List, Optional
from urllib.parse import quote, urlparse

import requests

from listing_form.models import Place

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_PLACE_FIELDS = ("placeId", "mainText", "secondaryText")


class SuggestionError(RuntimeError):
    """Base class for failed suggestion lookups."""

    kind = "error"


class InvalidQuery(SuggestionError):
    """The query or endpoint cannot be turned into a request URL."""

    kind = "invalid_query"


class TransportError(SuggestionError):
    """The request did not complete (connection, timeout, non-2xx)."""

    kind = "transport"


class DecodeError(SuggestionError):
    """The response body is not a list of places."""

    kind = "decode"


def build_request_url(base_url: str, query: str) -> str:
    if not query or not query.strip():
        raise InvalidQuery("query is empty")
    parsed = urlparse(base_url or "")
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise InvalidQuery(f"invalid suggestions endpoint: {base_url!r}")
    return f"{base_url}?input={quote(query, safe='')}"


def decode_places(payload: Any) -> List[Place]:
    if not isinstance(payload, list):
        raise DecodeError(f"expected a JSON array, got {type(payload).__name__}")
    places: List[Place] = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise DecodeError(f"item {index} is not an object")
        for field in _PLACE_FIELDS:
            if not isinstance(item.get(field), str):
                raise DecodeError(f"item {index} has no string field {field!r}")
        places.append(Place.from_dict(item))
    return places


class SuggestionClient:
    def __init__(self, base_url: str, timeout: Optional[float] = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url
        self.timeout = timeout
        self._session = session

    @property
    def session(self):
        return self._session or _SESSION

    def request_url(self, query: str) -> str:
        return build_request_url(self.base_url, query)

    def fetch(self, query: str) -> List[Place]:
        """Fetch suggestions for ``query``; raises a ``SuggestionError`` subclass on failure."""
        url = self.request_url(query)
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Suggestion request failed for query=%r: %s", query, exc)
            raise TransportError(str(exc)) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise DecodeError(f"response is not valid JSON: {exc}") from exc

        places = decode_places(payload)
        logger.debug("Decoded %d suggestions for query=%r", len(places), query)
        return places
