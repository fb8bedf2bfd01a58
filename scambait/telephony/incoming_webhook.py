"""Incoming call webhook: record the call and answer it with a persona."""

import random
from dataclasses import replace
from typing import Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import settings
from scambait.database.repository import CallRepository
from scambait.personas.catalog import Persona
from scambait.personas.selection import SettingsStore, select_persona
from scambait.telephony.twilio_handler import (
    WebhookResult,
    build_error_twiml,
    build_greeting_twiml,
    validate_signature,
)
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

TWIML_MEDIA_TYPE = "text/xml"


def _twiml(body: str) -> WebhookResult:
    return WebhookResult(200, body, media_type=TWIML_MEDIA_TYPE)


def choose_persona(store: SettingsStore, rng: Optional[random.Random] = None) -> Persona:
    """Select a persona and persist the round-robin position."""
    current = store.load()
    persona, new_index = select_persona(current, rng)
    if new_index is not None:
        try:
            store.save(replace(current, last_used_persona_index=new_index))
        except OSError as exc:
            logger.error("Could not persist round-robin index: %s", exc)
    return persona


def _record_call(repo: CallRepository, call_sid: str, from_number: str, to_number: str, persona: str) -> None:
    try:
        call = repo.create(call_sid, from_number, to_number, persona=persona)
        logger.info("Created call %s for %s", call.id, call_sid)
    except IntegrityError:
        logger.info("Call record already exists for %s", call_sid)
    except SQLAlchemyError as exc:
        logger.error("Could not create call record for %s: %s", call_sid, exc)


def handle_incoming_call(
    db: Session,
    params: Dict[str, str],
    url: str,
    signature: Optional[str],
    store: SettingsStore,
    rng: Optional[random.Random] = None,
) -> WebhookResult:
    if not validate_signature(url, params, signature):
        logger.warning("Rejected incoming call with invalid signature (CallSid=%s)", params.get("CallSid"))
        return WebhookResult(403, "Forbidden", media_type="text/plain")

    call_sid = params.get("CallSid")
    from_number = params.get("From")
    to_number = params.get("To")
    if not (call_sid and from_number and to_number):
        logger.error(
            "Incoming call missing parameters: CallSid=%s From=%s To=%s", call_sid, from_number, to_number
        )
        return _twiml(build_error_twiml())

    try:
        logger.info(
            "Incoming call %s from %s to %s (status: %s)",
            call_sid,
            from_number,
            to_number,
            params.get("CallStatus"),
        )
        persona = choose_persona(store, rng)
        _record_call(CallRepository(db), call_sid, from_number, to_number, persona.id)
        return _twiml(build_greeting_twiml(persona.greeting, settings.stream_url, persona.id, persona.voice))
    except Exception:
        logger.exception("Failed to answer incoming call %s", call_sid)
        return _twiml(build_error_twiml())
