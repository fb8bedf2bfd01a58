"""Incoming call webhook and persona selection."""

import random

import pytest

from config.settings import settings
from conftest import post_webhook
from scambait.database.models import Call, CallStatus
from scambait.personas.catalog import PERSONAS
from scambait.personas.selection import InMemorySettingsStore, PersonaSettings
from scambait.telephony.incoming_webhook import choose_persona

INCOMING_PATH = "/api/twilio/incoming"
STREAM_URL = "wss://agent.example.com/media"


@pytest.fixture(autouse=True)
def stream_url(monkeypatch):
    monkeypatch.setattr(settings, "voice_stream_url", STREAM_URL)


def _incoming(call_sid="CA300", **extra):
    params = {"CallSid": call_sid, "From": "+15551234567", "To": "+15550000000", "CallStatus": "ringing"}
    params.update(extra)
    return params


def test_answers_with_greeting_and_stream(client, db, settings_store):
    settings_store.save(PersonaSettings(selection_mode="fixed", fixed_persona="gladys"))

    response = post_webhook(client, INCOMING_PATH, _incoming())

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/xml")
    body = response.text
    assert "<Say" in body
    assert "Polly.Joanna" in body
    assert f'url="{STREAM_URL}"' in body
    assert 'name="persona"' in body
    assert 'value="gladys"' in body

    call = db.query(Call).filter(Call.twilio_sid == "CA300").one()
    assert call.status is CallStatus.RINGING
    assert call.persona == "gladys"
    assert call.from_number == "+15551234567"


def test_round_robin_advances_and_persists(client, db, settings_store):
    settings_store.save(PersonaSettings(selection_mode="round_robin", last_used_persona_index=0))

    post_webhook(client, INCOMING_PATH, _incoming("CA301"))
    post_webhook(client, INCOMING_PATH, _incoming("CA302"))

    personas = dict(db.query(Call.twilio_sid, Call.persona).all())
    assert personas == {"CA301": "gladys", "CA302": "kevin"}
    assert settings_store.load().last_used_persona_index == 2


def test_redelivered_call_is_answered_once_stored(client, db):
    post_webhook(client, INCOMING_PATH, _incoming("CA303"))
    response = post_webhook(client, INCOMING_PATH, _incoming("CA303"))

    assert response.status_code == 200
    assert "<Connect>" in response.text
    assert db.query(Call).filter(Call.twilio_sid == "CA303").count() == 1


def test_missing_parameters_get_error_twiml(client, db):
    params = {"CallSid": "CA304", "To": "+15550000000"}

    response = post_webhook(client, INCOMING_PATH, params)

    assert response.status_code == 200
    assert "<Hangup" in response.text
    assert "<Connect>" not in response.text
    assert db.query(Call).count() == 0


def test_invalid_signature_is_forbidden(client, db):
    response = post_webhook(client, INCOMING_PATH, _incoming("CA305"), signature="forged")

    assert response.status_code == 403
    assert response.text == "Forbidden"
    assert db.query(Call).count() == 0


def test_database_failure_still_answers(client, monkeypatch):
    from sqlalchemy.exc import OperationalError

    def boom(self, *args, **kwargs):
        raise OperationalError("INSERT INTO calls", {}, Exception("database is locked"))

    monkeypatch.setattr("scambait.database.repository.CallRepository.create", boom)

    response = post_webhook(client, INCOMING_PATH, _incoming("CA306"))

    assert response.status_code == 200
    assert "<Connect>" in response.text


def test_choose_persona_random_uses_enabled_only():
    store = InMemorySettingsStore(PersonaSettings(enabled_personas=["kevin", "brenda"]))
    rng = random.Random(7)

    chosen = {choose_persona(store, rng).id for _ in range(40)}

    assert chosen == {"kevin", "brenda"}
    assert store.load().last_used_persona_index == 0


def test_choose_persona_survives_unwritable_store():
    class ReadOnlyStore(InMemorySettingsStore):
        def save(self, settings):
            raise OSError("read-only file system")

    store = ReadOnlyStore(PersonaSettings(selection_mode="round_robin"))

    assert choose_persona(store) is PERSONAS["gladys"]
