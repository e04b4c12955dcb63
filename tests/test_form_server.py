import threading
import time
from collections import OrderedDict

import pytest

from listing_form.core import config
from listing_form.core.autocomplete import AutocompleteController
from listing_form.core.config import Settings
from listing_form.jobs import form_server
from tests.conftest import ATHENS, ATHENS_GA, BASE_URL, FakeScheduler


@pytest.fixture
def app_client(monkeypatch, client, cache, scheduler):
    monkeypatch.setattr(form_server, "_forms", OrderedDict())
    monkeypatch.setattr(
        form_server,
        "create_controller",
        lambda: AutocompleteController(client, cache=cache, scheduler=scheduler),
    )
    return form_server.app.test_client()


def _open_form(app_client):
    response = app_client.post("/forms")
    assert response.status_code == 201
    return response.get_json()["data"]["id"]


def test_health_endpoint(app_client):
    response = app_client.get("/healthz")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_unknown_form_is_404(app_client):
    assert app_client.get("/forms/nope").status_code == 404
    assert app_client.post("/forms/nope/submit").status_code == 404


def test_location_requires_text(app_client):
    form_id = _open_form(app_client)
    assert app_client.post(f"/forms/{form_id}/location", json={}).status_code == 400
    assert app_client.post(f"/forms/{form_id}/location", json={"text": 12}).status_code == 400


def test_full_listing_flow(app_client, session, scheduler):
    session.respond("Athens", [ATHENS, ATHENS_GA])
    form_id = _open_form(app_client)

    response = app_client.post(f"/forms/{form_id}/fields", json={"title": "Test", "price": "123"})
    assert response.get_json()["data"]["canSubmit"] is False

    response = app_client.post(f"/forms/{form_id}/location", json={"text": "Athens", "focused": True})
    assert response.status_code == 202
    scheduler.advance(0.31)
    scheduler.run_pending()

    state = app_client.get(f"/forms/{form_id}").get_json()["data"]
    assert [s["placeId"] for s in state["suggestions"]] == ["1", "2"]
    assert state["isLoading"] is False

    assert app_client.post(f"/forms/{form_id}/select", json={"placeId": "9"}).status_code == 400
    response = app_client.post(f"/forms/{form_id}/select", json={"placeId": "1"})
    state = response.get_json()["data"]
    assert state["locationText"] == "Athens, Greece"
    assert state["suggestions"] == []
    assert state["canSubmit"] is True

    app_client.post(f"/forms/{form_id}/fields", json={"description": "Property description test"})
    response = app_client.post(f"/forms/{form_id}/submit")
    assert response.status_code == 200
    assert response.get_json()["data"] == {
        "title": "Test",
        "location": {"placeId": "1", "mainText": "Athens", "secondaryText": "Greece"},
        "price": "123",
        "description": "Property description test",
    }

    state = app_client.get(f"/forms/{form_id}").get_json()["data"]
    assert state["title"] == ""
    assert state["selectedPlace"] is None
    assert state["showJsonResult"] is True


def test_submit_without_selection_is_conflict(app_client):
    form_id = _open_form(app_client)
    app_client.post(f"/forms/{form_id}/fields", json={"title": "Test"})

    response = app_client.post(f"/forms/{form_id}/submit")

    assert response.status_code == 409
    state = app_client.get(f"/forms/{form_id}").get_json()["data"]
    assert state["title"] == "Test"


def test_clear_and_close(app_client):
    form_id = _open_form(app_client)
    app_client.post(f"/forms/{form_id}/fields", json={"title": "Test"})

    response = app_client.post(f"/forms/{form_id}/clear")
    assert response.get_json()["data"]["title"] == ""

    assert app_client.delete(f"/forms/{form_id}").status_code == 204
    assert app_client.get(f"/forms/{form_id}").status_code == 404


def test_forms_share_one_cache(monkeypatch):
    monkeypatch.setattr(form_server, "_shared_cache", None)
    monkeypatch.setattr(form_server, "get_settings", lambda: Settings(suggestions_url=BASE_URL, cache_size=5))

    first = form_server.create_controller()
    second = form_server.create_controller()
    try:
        assert first is not second
        assert first.cache is second.cache
        assert first.cache.capacity == 5
    finally:
        first.close()
        second.close()


@pytest.mark.parametrize("focused", ["false", "0", 0, None])
def test_location_rejects_non_boolean_focus(app_client, scheduler, focused):
    form_id = _open_form(app_client)

    response = app_client.post(f"/forms/{form_id}/location", json={"text": "Athens", "focused": focused})

    assert response.status_code == 400
    scheduler.advance(0.31)
    assert scheduler.tasks == []
    state = app_client.get(f"/forms/{form_id}").get_json()["data"]
    assert state["locationText"] == ""


def test_unfocused_location_never_fetches(app_client, scheduler, session):
    form_id = _open_form(app_client)

    response = app_client.post(f"/forms/{form_id}/location", json={"text": "Athens", "focused": False})
    assert response.status_code == 202
    scheduler.advance(0.31)

    assert scheduler.tasks == []
    assert session.calls == []
    assert app_client.get(f"/forms/{form_id}").get_json()["data"]["isLocationFocused"] is False


def test_open_forms_are_capped(monkeypatch, client, cache):
    schedulers = []

    def make_controller():
        scheduler = FakeScheduler()
        schedulers.append(scheduler)
        return AutocompleteController(client, cache=cache, scheduler=scheduler)

    monkeypatch.setattr(form_server, "_forms", OrderedDict())
    monkeypatch.setattr(form_server, "create_controller", make_controller)
    monkeypatch.setattr(form_server, "get_settings", lambda: Settings(suggestions_url=BASE_URL, max_open_forms=2))
    app_client = form_server.app.test_client()

    first = _open_form(app_client)
    second = _open_form(app_client)
    assert app_client.get(f"/forms/{first}").status_code == 200
    third = _open_form(app_client)

    assert app_client.get(f"/forms/{second}").status_code == 404
    assert app_client.get(f"/forms/{first}").status_code == 200
    assert app_client.get(f"/forms/{third}").status_code == 200
    assert [s.shut_down for s in schedulers] == [False, True, False]
    assert app_client.get("/healthz").get_json()["forms"] == 2


def test_shared_cache_is_created_once_under_concurrency(monkeypatch):
    monkeypatch.setattr(form_server, "_shared_cache", None)

    def slow_settings():
        time.sleep(0.01)
        return Settings(suggestions_url=BASE_URL, cache_size=5)

    monkeypatch.setattr(form_server, "get_settings", slow_settings)
    caches = []
    threads = [threading.Thread(target=lambda: caches.append(form_server._get_shared_cache())) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(caches) == 8
    assert all(cache is caches[0] for cache in caches)


def test_main_exits_on_config_error(monkeypatch):
    monkeypatch.setenv("SUGGESTIONS_CACHE_SIZE", "0")
    config.get_settings.cache_clear()
    try:
        with pytest.raises(SystemExit) as excinfo:
            form_server.main()
    finally:
        config.get_settings.cache_clear()

    assert excinfo.value.code == 2
