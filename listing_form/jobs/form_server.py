"""HTTP entrypoint that hosts listing forms and their location autocomplete."""

from __future__ import annotations

import logging
import os
import threading
import uuid
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple

from flask import Flask, abort, jsonify, request

from listing_form.core.autocomplete import AutocompleteController
from listing_form.core.cache import ResponseCache
from listing_form.core.config import ConfigError, get_settings

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & form registry ----------
app = Flask(__name__)
_forms: "OrderedDict[str, AutocompleteController]" = OrderedDict()
_forms_lock = threading.Lock()
_shared_cache: Optional[ResponseCache] = None
_cache_lock = threading.Lock()


def _get_shared_cache() -> ResponseCache:
    global _shared_cache
    with _cache_lock:
        if _shared_cache is None:
            _shared_cache = ResponseCache(get_settings().cache_size)
        return _shared_cache


def create_controller() -> AutocompleteController:
    """Build a controller for a new form; every form shares one response cache."""
    return AutocompleteController.from_settings(cache=_get_shared_cache())


def _get_form(form_id: str) -> AutocompleteController:
    with _forms_lock:
        controller = _forms.get(form_id)
        if controller is not None:
            _forms.move_to_end(form_id)
    if controller is None:
        abort(404)
    return controller


def _string_field(payload: Dict[str, Any], name: str) -> Optional[str]:
    value = payload.get(name)
    if value is None:
        return None
    return str(value)


# ---------- Routes ----------


@app.get("/healthz")
def healthcheck() -> Any:
    with _forms_lock:
        open_forms = len(_forms)
    return jsonify({"status": "ok", "forms": open_forms}), 200


@app.post("/forms")
def create_form() -> Any:
    form_id = uuid.uuid4().hex
    controller = create_controller()
    max_open_forms = get_settings().max_open_forms
    evicted: List[Tuple[str, AutocompleteController]] = []
    with _forms_lock:
        _forms[form_id] = controller
        while len(_forms) > max_open_forms:
            evicted.append(_forms.popitem(last=False))
    for evicted_id, evicted_controller in evicted:
        evicted_controller.close()
        logger.warning("Closed least recently used form %s (limit %d)", evicted_id, max_open_forms)
    logger.info("Opened form %s", form_id)
    return jsonify({"data": {"id": form_id, **controller.snapshot()}}), 201


@app.get("/forms/<form_id>")
def get_form(form_id: str) -> Any:
    return jsonify({"data": _get_form(form_id).snapshot()}), 200


@app.post("/forms/<form_id>/fields")
def update_fields(form_id: str) -> Any:
    controller = _get_form(form_id)
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    controller.update_fields(
        title=_string_field(payload, "title"),
        price=_string_field(payload, "price"),
        description=_string_field(payload, "description"),
    )
    return jsonify({"data": controller.snapshot()}), 200


@app.post("/forms/<form_id>/location")
def change_location(form_id: str) -> Any:
    """
    Feed one location edit / focus change into the debounced autocomplete.
    Required JSON fields: text. Optional: focused (bool, default true).
    """
    controller = _get_form(form_id)
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    if "text" not in payload or not isinstance(payload["text"], str):
        return jsonify({"error": "text must be a string"}), 400

    focused = payload.get("focused", True)
    if not isinstance(focused, bool):
        return jsonify({"error": "focused must be a boolean"}), 400

    controller.on_input_change(payload["text"], focused)
    # Suggestions arrive after the debounce window; clients poll GET /forms/<id>.
    return jsonify({"data": controller.snapshot()}), 202


@app.post("/forms/<form_id>/select")
def select_place(form_id: str) -> Any:
    controller = _get_form(form_id)
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    place_id = payload.get("placeId")
    if not place_id:
        return jsonify({"error": "placeId is required"}), 400

    if controller.select_by_id(str(place_id)) is None:
        return jsonify({"error": f"place {place_id} is not among the current suggestions"}), 400
    return jsonify({"data": controller.snapshot()}), 200


@app.post("/forms/<form_id>/submit")
def submit_form(form_id: str) -> Any:
    controller = _get_form(form_id)
    listing = controller.submit()
    if listing is None:
        return jsonify({"error": "a title and a selected location are required"}), 409
    return jsonify({"data": listing}), 200


@app.post("/forms/<form_id>/clear")
def clear_form(form_id: str) -> Any:
    controller = _get_form(form_id)
    controller.clear_form()
    return jsonify({"data": controller.snapshot()}), 200


@app.delete("/forms/<form_id>")
def close_form(form_id: str) -> Any:
    with _forms_lock:
        controller = _forms.pop(form_id, None)
    if controller is None:
        abort(404)
    controller.close()
    return "", 204


def main() -> None:
    try:
        settings = get_settings()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc

    port = settings.server_port
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port, debug=os.getenv("FLASK_DEBUG") == "1")


if __name__ == "__main__":
    main()
