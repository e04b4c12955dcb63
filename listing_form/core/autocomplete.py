"""Debounced, cache-first location autocomplete for the listing form.

Every text or focus change of the location field becomes a ``LocationEvent``.
Events are coalesced by a debounce timer; only the last event of a quiet
window is evaluated. Evaluation first drops a selection the user has edited
away from, then asks ``plan_lookup`` whether to clear the suggestions or
request a fetch.

Fetches are tagged with an epoch. Any later fetch, selection, clear or
short/unfocused input bumps the epoch, and a result whose epoch (or query) is
no longer current is thrown away instead of overwriting fresher state.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from listing_form.core.cache import ResponseCache
from listing_form.core.config import Settings, get_settings
from listing_form.core.form_state import FormState
from listing_form.core.scheduler import Cancellable, Scheduler, ThreadingScheduler
from listing_form.models import Place
from listing_form.vendors.suggestions import SuggestionClient, SuggestionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocationEvent:
    text: str
    focused: bool


@dataclass(frozen=True)
class FetchRequested:
    query: str


@dataclass(frozen=True)
class Cleared:
    pass


LookupAction = Union[FetchRequested, Cleared, None]


def plan_lookup(event: LocationEvent, form: FormState, min_query_length: int = 3) -> LookupAction:
    """Decide what a settled location event should trigger."""
    if len(event.text) < min_query_length or not event.focused:
        return Cleared()
    if event.text != form.last_queried_text and event.text != form.selected_label:
        return FetchRequested(event.text)
    return None


class AutocompleteController:
    def __init__(
        self,
        client: SuggestionClient,
        cache: Optional[ResponseCache] = None,
        form: Optional[FormState] = None,
        scheduler: Optional[Scheduler] = None,
        debounce_seconds: float = 0.3,
        min_query_length: int = 3,
    ) -> None:
        self.client = client
        self.cache = cache if cache is not None else ResponseCache()
        self.form = form if form is not None else FormState()
        self.scheduler = scheduler if scheduler is not None else ThreadingScheduler()
        self.debounce_seconds = debounce_seconds
        self.min_query_length = min_query_length
        self.last_error: Optional[SuggestionError] = None

        self._lock = threading.RLock()
        self._epoch = 0
        self._timer: Optional[Cancellable] = None
        self._pending_event: Optional[LocationEvent] = None

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        cache: Optional[ResponseCache] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> "AutocompleteController":
        settings = settings or get_settings()
        client = SuggestionClient(settings.suggestions_url, timeout=settings.suggestions_timeout_seconds)
        return cls(
            client,
            cache=cache if cache is not None else ResponseCache(settings.cache_size),
            scheduler=scheduler,
            debounce_seconds=settings.debounce_seconds,
            min_query_length=settings.min_query_length,
        )

    # ---------- Input stream ----------

    def on_input_change(self, text: str, focused: bool) -> None:
        """Record a location edit or focus change and (re)start the debounce window."""
        event = LocationEvent(text=text, focused=focused)
        with self._lock:
            self.form.location_text = text
            self.form.is_location_focused = focused
            self._cancel_timer()
            self._pending_event = event
            self._timer = self.scheduler.call_later(self.debounce_seconds, lambda: self._settle(event))

    def _settle(self, event: LocationEvent) -> LookupAction:
        with self._lock:
            if event is not self._pending_event:
                # A newer event replaced this one after the timer fired.
                return None
            self._pending_event = None
            self._timer = None

            form = self.form
            if form.selected_place is not None and event.text != form.selected_label:
                logger.debug("Location edited away from %r; dropping selection", form.selected_label)
                form.selected_place = None

            action = plan_lookup(event, form, self.min_query_length)
            if isinstance(action, Cleared):
                form.suggestions = []
                form.last_queried_text = None
                self._abandon_fetch()
            elif isinstance(action, FetchRequested):
                self.fetch_suggestions(action.query)
            return action

    # ---------- Lookup ----------

    def fetch_suggestions(self, query: str) -> None:
        """Serve ``query`` from the cache, or start a fetch and cache its result."""
        with self._lock:
            form = self.form
            form.last_queried_text = query
            self._epoch += 1
            epoch = self._epoch

            cached = self.cache.get(query)
            if cached is not None:
                logger.debug("Loaded %d places from cache for query=%r", len(cached), query)
                form.suggestions = list(cached)
                form.is_loading = False
                return

            form.is_loading = True
            form.suggestions = []
            try:
                self.client.request_url(query)
            except SuggestionError as exc:
                self._apply_failure(query, epoch, exc)
                return

            logger.info("Fetching suggestions for query=%r", query)
            self.scheduler.submit(self._run_fetch, query, epoch)

    def _run_fetch(self, query: str, epoch: int) -> None:
        try:
            places = self.client.fetch(query)
        except SuggestionError as exc:
            with self._lock:
                self._apply_failure(query, epoch, exc)
            return

        self.cache.put(query, places)
        with self._lock:
            if not self._is_current(query, epoch):
                logger.debug("Discarding stale suggestions for query=%r", query)
                return
            self.form.suggestions = list(places)
            self.form.is_loading = False

    def _apply_failure(self, query: str, epoch: int, exc: SuggestionError) -> None:
        if not self._is_current(query, epoch):
            logger.debug("Ignoring stale lookup failure (%s) for query=%r: %s", exc.kind, query, exc)
            return
        self.last_error = exc
        logger.warning("Suggestion lookup failed (%s) for query=%r: %s", exc.kind, query, exc)
        self.form.suggestions = []
        self.form.is_loading = False

    def _is_current(self, query: str, epoch: int) -> bool:
        return epoch == self._epoch and query == self.form.last_queried_text

    def _abandon_fetch(self) -> None:
        self._epoch += 1
        self.form.is_loading = False

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._pending_event = None

    # ---------- Form actions ----------

    def select(self, place: Place) -> None:
        with self._lock:
            self._cancel_timer()
            self._abandon_fetch()
            form = self.form
            form.selected_place = place
            form.location_text = place.label
            form.suggestions = []
            form.last_queried_text = place.label

    def select_by_id(self, place_id: str) -> Optional[Place]:
        """Select one of the current suggestions; ``None`` when it is not offered."""
        with self._lock:
            for place in self.form.suggestions:
                if place.place_id == place_id:
                    self.select(place)
                    return place
        return None

    def update_fields(self, **fields: Optional[str]) -> None:
        with self._lock:
            self.form.update_fields(**fields)

    def submit(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            if not self.form.can_submit:
                return None
            self._cancel_timer()
            self._abandon_fetch()
            return self.form.submit()

    def clear_form(self) -> None:
        with self._lock:
            self._cancel_timer()
            self._abandon_fetch()
            self.form.clear()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return self.form.to_dict()

    @property
    def suggestions(self) -> List[Place]:
        with self._lock:
            return list(self.form.suggestions)

    def close(self) -> None:
        with self._lock:
            self._cancel_timer()
            self._abandon_fetch()
        self.scheduler.shutdown()
