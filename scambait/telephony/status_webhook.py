"""Call status callbacks: move a call through RINGING -> IN_PROGRESS -> terminal.

Twilio delivers these at least once and not necessarily in order, so:

* a callback for a call we have not stored yet is acknowledged with 200
  (the incoming-call webhook may still be creating the row);
* once a call is COMPLETED, FAILED or NO_ANSWER nothing moves it again;
* only an unexpected error answers 500, which makes Twilio redeliver.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy.orm import Session

from scambait.database.models import CallStatus
from scambait.database.repository import CallRepository
from scambait.telephony.twilio_handler import WebhookResult, validate_signature
from scambait.utils.errors import AuthError, ValidationError
from scambait.utils.helpers import parse_seconds
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

# https://www.twilio.com/docs/voice/twiml#callstatus-values
PROVIDER_STATUS_MAP: Dict[str, CallStatus] = {
    "queued": CallStatus.RINGING,
    "initiated": CallStatus.RINGING,
    "ringing": CallStatus.RINGING,
    "in-progress": CallStatus.IN_PROGRESS,
    "completed": CallStatus.COMPLETED,
    "busy": CallStatus.FAILED,
    "failed": CallStatus.FAILED,
    "no-answer": CallStatus.NO_ANSWER,
    "canceled": CallStatus.FAILED,
}


@dataclass(frozen=True)
class StatusPayload:
    call_sid: str
    provider_status: str
    status: CallStatus
    duration: Optional[int]


def map_provider_status(value: str) -> CallStatus:
    status = PROVIDER_STATUS_MAP.get(value)
    if status is None:
        # Unknown statuses are treated as failures rather than dropped
        logger.warning("Unknown Twilio call status %r, recording as FAILED", value)
        return CallStatus.FAILED
    return status


def parse_duration(value: Optional[str]) -> Optional[int]:
    """Parse ``CallDuration`` seconds; anything but a non-negative integer is ignored."""
    if value is None or value == "":
        return None
    seconds = parse_seconds(value)
    if seconds is None:
        logger.warning("Ignoring invalid CallDuration %r", value)
    return seconds


def _require(params: Dict[str, str], field: str) -> str:
    value = params.get(field)
    if not value:
        raise ValidationError(f"Missing {field}", details={field: "Required"})
    return value


def parse_status_payload(params: Dict[str, str]) -> StatusPayload:
    call_sid = _require(params, "CallSid")
    provider_status = _require(params, "CallStatus")
    return StatusPayload(
        call_sid=call_sid,
        provider_status=provider_status,
        status=map_provider_status(provider_status),
        duration=parse_duration(params.get("CallDuration")),
    )


def apply_status(repo: CallRepository, payload: StatusPayload) -> WebhookResult:
    call = repo.find_by_sid(payload.call_sid)
    if call is None:
        logger.warning(
            "Status %s for unknown call %s, acknowledging", payload.provider_status, payload.call_sid
        )
        return WebhookResult(200, {"warning": "Call not found", "callSid": payload.call_sid})

    if call.is_terminal:
        logger.info(
            "Call %s already %s, ignoring status %s",
            call.id,
            call.status.value,
            payload.provider_status,
        )
        return WebhookResult(200, {"success": True, "status": "already_terminal"})

    previous = call.status
    fields = {"status": payload.status}
    if payload.status == CallStatus.COMPLETED and payload.duration is not None:
        fields["duration"] = payload.duration
    call = repo.update_fields(call, **fields)

    logger.info(
        "Call %s status %s -> %s (duration=%s)",
        call.id,
        previous.value,
        call.status.value,
        call.duration,
    )
    return WebhookResult(
        200,
        {
            "success": True,
            "callId": call.id,
            "status": call.status.value,
            "duration": call.duration,
        },
    )


def handle_status_callback(
    db: Session, params: Dict[str, str], url: str, signature: Optional[str]
) -> WebhookResult:
    if not validate_signature(url, params, signature):
        logger.warning("Rejected status callback with invalid signature (CallSid=%s)", params.get("CallSid"))
        error = AuthError.invalid_signature()
        return WebhookResult(error.status_code, {"error": error.message})

    try:
        payload = parse_status_payload(params)
    except ValidationError as exc:
        logger.warning("Rejected status callback: %s", exc.message)
        return WebhookResult(400, {"error": exc.message})

    logger.info(
        "Status callback for %s: %s -> %s (duration=%s)",
        payload.call_sid,
        payload.provider_status,
        payload.status.value,
        payload.duration,
    )

    try:
        return apply_status(CallRepository(db), payload)
    except Exception:
        logger.exception("Status callback for %s failed", payload.call_sid)
        return WebhookResult(500, {"error": "Internal server error"})
