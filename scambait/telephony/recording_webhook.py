"""Recording status callbacks: copy finished recordings into our own storage.

Apart from a bad signature (403) or missing fields (400) this always answers
200, including on internal errors. Twilio would otherwise keep redelivering
a recording we may never be able to fetch.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from scambait.database.models import Call
from scambait.database.repository import CallRepository
from scambait.storage.s3 import StorageClient, get_storage_client
from scambait.telephony.twilio_handler import WebhookResult, fetch_recording_audio, validate_signature
from scambait.utils.errors import AuthError, ValidationError
from scambait.utils.helpers import parse_seconds
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

REQUIRED_FIELDS = ("CallSid", "RecordingSid", "RecordingStatus")


@dataclass(frozen=True)
class RecordingPayload:
    call_sid: str
    recording_sid: str
    recording_status: str
    recording_url: Optional[str]
    duration: Optional[int]
    error_code: Optional[str]


def _parse_seconds(value: Optional[str]) -> Optional[int]:
    seconds = parse_seconds(value)
    if value and seconds is None:
        logger.warning("Ignoring invalid RecordingDuration %r", value)
    return seconds


def parse_recording_payload(params: Dict[str, str]) -> RecordingPayload:
    for field in REQUIRED_FIELDS:
        if not params.get(field):
            raise ValidationError(f"Missing {field}", details={field: "Required"})
    return RecordingPayload(
        call_sid=params["CallSid"],
        recording_sid=params["RecordingSid"],
        recording_status=params["RecordingStatus"],
        recording_url=params.get("RecordingUrl") or None,
        duration=_parse_seconds(params.get("RecordingDuration")),
        error_code=params.get("ErrorCode") or None,
    )


async def _store_recording(
    repo: CallRepository,
    call: Call,
    payload: RecordingPayload,
    storage_factory: Callable[[], StorageClient],
) -> WebhookResult:
    if call.recording_url:
        logger.info("Call %s already has a recording, ignoring %s", call.id, payload.recording_sid)
        return WebhookResult(200, {"success": True, "status": "already_recorded"})

    audio = await fetch_recording_audio(payload.recording_url) if payload.recording_url else None
    if not audio:
        logger.error("Could not fetch recording %s for call %s", payload.recording_sid, call.id)
        await asyncio.to_thread(repo.append_note, call, "[Recording fetch failed]")
        return WebhookResult(200, {"success": True, "warning": "Recording fetch failed"})

    try:
        storage = storage_factory()
        key = await asyncio.to_thread(storage.upload_recording, call.id, audio)
    except Exception as exc:
        logger.error("Could not upload recording for call %s: %s", call.id, exc)
        await asyncio.to_thread(repo.append_note, call, "[Recording upload failed]")
        return WebhookResult(200, {"success": True, "warning": "Recording upload failed"})

    try:
        recording_url = await asyncio.to_thread(storage.get_recording_url, key)
    except Exception as exc:
        logger.warning("Could not build URL for %s, storing key instead: %s", key, exc)
        recording_url = key

    fields = {"recording_url": recording_url}
    if call.duration is None and payload.duration is not None:
        fields["duration"] = payload.duration
    call = await asyncio.to_thread(repo.update_fields, call, **fields)

    logger.info("Recording %s stored for call %s at %s", payload.recording_sid, call.id, key)
    return WebhookResult(200, {"success": True, "callId": call.id, "recordingUrl": recording_url})


async def process_recording(
    repo: CallRepository,
    payload: RecordingPayload,
    storage_factory: Callable[[], StorageClient] = get_storage_client,
) -> WebhookResult:
    call = await asyncio.to_thread(repo.find_by_sid, payload.call_sid)
    if call is None:
        logger.warning("Recording callback for unknown call %s", payload.call_sid)
        return WebhookResult(200, {"success": True, "warning": "Call not found", "callSid": payload.call_sid})

    if payload.recording_status == "completed":
        return await _store_recording(repo, call, payload, storage_factory)

    if payload.recording_status == "failed":
        note = "[Recording failed]"
        if payload.error_code:
            note += f" (error {payload.error_code})"
        logger.error("Recording %s failed for call %s: %s", payload.recording_sid, call.id, note)
        await asyncio.to_thread(repo.append_note, call, note)
        return WebhookResult(200, {"success": True, "status": "recording_failed"})

    logger.info(
        "Recording %s for call %s is %s, nothing to do",
        payload.recording_sid,
        call.id,
        payload.recording_status,
    )
    return WebhookResult(200, {"success": True, "status": "ignored"})


async def handle_recording_callback(
    db: Session,
    params: Dict[str, str],
    url: str,
    signature: Optional[str],
    storage_factory: Callable[[], StorageClient] = get_storage_client,
) -> WebhookResult:
    if not validate_signature(url, params, signature):
        logger.warning("Rejected recording callback with invalid signature (CallSid=%s)", params.get("CallSid"))
        error = AuthError.invalid_signature()
        return WebhookResult(error.status_code, {"error": error.message})

    try:
        payload = parse_recording_payload(params)
    except ValidationError as exc:
        logger.warning("Rejected recording callback: %s", exc.message)
        return WebhookResult(400, {"error": exc.message})

    logger.info(
        "Recording callback for %s: %s is %s (duration=%s)",
        payload.call_sid,
        payload.recording_sid,
        payload.recording_status,
        payload.duration,
    )

    try:
        return await process_recording(CallRepository(db), payload, storage_factory)
    except Exception:
        logger.exception("Recording callback for %s failed", payload.call_sid)
        return WebhookResult(200, {"success": True, "warning": "Recording processing failed"})
