"""Tests for the Flask application factory."""

import pytest

import app as app_module
from leave_mail_bot import config

from conftest import BASE_ENV, make_settings


def _notification(message_id="AAMk1", client_state=None):
    notification = {
        "subscriptionId": "sub-1",
        "changeType": "created",
        "resource": f"Users/leaves/Messages/{message_id}",
        "resourceData": {"id": message_id},
    }
    if client_state is not None:
        notification["clientState"] = client_state
    return {"value": [notification]}


@pytest.fixture
def dispatched(monkeypatch):
    calls = []

    real = app_module.process_in_background

    def wait_for_processing(processor, message_id, *, trace_id=None):
        calls.append({"message_id": message_id, "trace_id": trace_id})
        future = real(processor, message_id, trace_id=trace_id)
        future.result(timeout=1)
        return future

    monkeypatch.setattr(app_module, "process_in_background", wait_for_processing)
    return calls


def _client(settings, processed):
    flask_app = app_module.create_app(settings, processor=processed.append)
    return flask_app.test_client()


def test_validation_token_is_echoed(settings, dispatched):
    processed = []
    client = _client(settings, processed)

    response = client.post("/email-notification?validationToken=Validation%3A+abc+123")

    assert response.status_code == 200
    assert response.mimetype == "text/plain"
    assert response.get_data(as_text=True) == "Validation: abc 123"
    assert processed == []
    assert dispatched == []


def test_notification_is_dispatched_in_background(settings, dispatched):
    processed = []
    client = _client(settings, processed)

    response = client.post("/email-notification", json=_notification())

    assert response.status_code == 200
    assert processed == ["AAMk1"]
    assert len(dispatched) == 1
    assert dispatched[0]["trace_id"]


def test_only_first_notification_is_processed(settings, dispatched):
    processed = []
    client = _client(settings, processed)
    payload = {"value": _notification("first")["value"] + _notification("second")["value"]}

    response = client.post("/email-notification", json=payload)

    assert response.status_code == 200
    assert processed == ["first"]


def test_invalid_payload_is_rejected(settings, dispatched):
    processed = []
    client = _client(settings, processed)

    response = client.post("/email-notification", json={"value": "not-a-list"})

    assert response.status_code == 400
    assert response.get_json() == {"error": "invalid_payload"}
    assert processed == []


def test_empty_payload_is_acknowledged(settings, dispatched):
    processed = []
    client = _client(settings, processed)

    response = client.post("/email-notification", json={"value": []})

    assert response.status_code == 200
    assert processed == []


def test_client_state_mismatch_is_rejected(tmp_path, dispatched):
    settings = make_settings(LOGS_DIR=str(tmp_path), GRAPH_CLIENT_STATE="s3cret")
    processed = []
    client = _client(settings, processed)

    rejected = client.post("/email-notification", json=_notification(client_state="guess"))
    accepted = client.post("/email-notification", json=_notification(client_state="s3cret"))

    assert rejected.status_code == 401
    assert accepted.status_code == 200
    assert processed == ["AAMk1"]


def test_processor_crash_still_acknowledges(settings, dispatched):
    def explode(_message_id):
        raise RuntimeError("boom")

    client = app_module.create_app(settings, processor=explode).test_client()

    response = client.post("/email-notification", json=_notification())

    assert response.status_code == 200


def test_healthz_reports_mailbox(settings):
    client = app_module.create_app(settings, processor=lambda _message_id: None).test_client()

    response = client.get("/healthz")

    assert response.status_code == 200
    body = response.get_json()
    assert body["ok"] is True
    assert body["config"] == "valid"
    assert body["monitored_mailbox"] == "leaves@corp.example"
    assert body["manager_required"] is False


def test_create_app_reads_settings_from_environment(monkeypatch, tmp_path):
    for key, value in BASE_ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("DOTENV_PATH", str(tmp_path / "missing.env"))
    config.get_settings.cache_clear()

    client = app_module.create_app(processor=lambda _message_id: None).test_client()

    assert client.get("/healthz").get_json()["monitored_mailbox"] == BASE_ENV["MONITORED_EMAIL"]
    config.get_settings.cache_clear()


def test_unhandled_error_returns_trace_id(settings):
    flask_app = app_module.create_app(settings, processor=lambda _message_id: None)

    @flask_app.route("/boom")
    def boom():
        raise RuntimeError("kaboom")

    response = flask_app.test_client().get("/boom")

    assert response.status_code == 500
    body = response.get_json()
    assert body["error"] == "internal_server_error"
    assert body["trace_id"]
