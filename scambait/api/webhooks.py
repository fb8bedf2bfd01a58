"""Twilio webhook endpoints.

Handlers do blocking database work, so they run in a worker thread and hand
back a ``WebhookResult`` that is rendered here.
"""

import asyncio

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from scambait.database.db import get_db
from scambait.personas.selection import SettingsStore, get_settings_store
from scambait.storage import s3
from scambait.telephony.incoming_webhook import handle_incoming_call
from scambait.telephony.recording_webhook import handle_recording_callback
from scambait.telephony.status_webhook import handle_status_callback
from scambait.telephony.twilio_handler import SIGNATURE_HEADER, WebhookResult, read_form_params, webhook_request_url

router = APIRouter(prefix="/api/twilio", tags=["twilio"])


def _render(result: WebhookResult) -> Response:
    if result.media_type == "application/json":
        return JSONResponse(result.body, status_code=result.status_code)
    return Response(content=result.body, status_code=result.status_code, media_type=result.media_type)


@router.post("/incoming")
async def incoming_call(
    request: Request,
    db: Session = Depends(get_db),
    store: SettingsStore = Depends(get_settings_store),
) -> Response:
    params = await read_form_params(request)
    result = await asyncio.to_thread(
        handle_incoming_call,
        db,
        params,
        webhook_request_url(request),
        request.headers.get(SIGNATURE_HEADER),
        store,
    )
    return _render(result)


@router.post("/status")
async def call_status(request: Request, db: Session = Depends(get_db)) -> Response:
    params = await read_form_params(request)
    result = await asyncio.to_thread(
        handle_status_callback,
        db,
        params,
        webhook_request_url(request),
        request.headers.get(SIGNATURE_HEADER),
    )
    return _render(result)


@router.api_route("/status", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def call_status_method_not_allowed() -> JSONResponse:
    return JSONResponse({"error": "Method not allowed"}, status_code=405, headers={"Allow": "POST"})


@router.post("/recording")
async def recording_status(request: Request, db: Session = Depends(get_db)) -> Response:
    params = await read_form_params(request)
    result = await handle_recording_callback(
        db,
        params,
        webhook_request_url(request),
        request.headers.get(SIGNATURE_HEADER),
        storage_factory=s3.get_storage_client,
    )
    return _render(result)
