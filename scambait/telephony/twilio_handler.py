"""Twilio webhook utilities: signatures, TwiML and recording downloads."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional, Union

import httpx
from fastapi import Request
from twilio.request_validator import RequestValidator
from twilio.rest import Client
from twilio.twiml.voice_response import Connect, VoiceResponse

from config.settings import settings
from scambait.utils.errors import ExternalServiceError
from scambait.utils.helpers import retry_async
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Twilio-Signature"
ERROR_MESSAGE = "We're sorry, an error occurred. Please try again later."


@dataclass(frozen=True)
class WebhookResult:
    """Status code and body a webhook handler wants sent back to Twilio."""

    status_code: int
    body: Union[Dict[str, Any], str]
    media_type: str = "application/json"


def validate_signature(url: str, params: Dict[str, str], signature: Optional[str]) -> bool:
    """Check ``X-Twilio-Signature`` against the URL and form params Twilio signed."""
    token = settings.twilio_auth_token
    if not token:
        if settings.is_development and not settings.validate_twilio_in_dev:
            logger.warning("TWILIO_AUTH_TOKEN not set, skipping signature validation in development")
            return True
        logger.error("TWILIO_AUTH_TOKEN not set, rejecting webhook")
        return False

    if not signature:
        logger.warning("Webhook received without %s header", SIGNATURE_HEADER)
        return False

    return RequestValidator(token).validate(url, params, signature)


def webhook_request_url(request: Request) -> str:
    """The URL Twilio signed, which differs from ``request.url`` behind a proxy."""
    if not settings.public_base_url:
        return str(request.url)
    url = settings.public_base_url.rstrip("/") + request.url.path
    if request.url.query:
        url += "?" + request.url.query
    return url


async def read_form_params(request: Request) -> Dict[str, str]:
    form = await request.form()
    return {key: str(value) for key, value in form.items()}


def build_greeting_twiml(greeting: str, stream_url: str, persona: str, voice: str) -> str:
    """Greet the caller, then hand the call to the voice agent's media stream."""
    response = VoiceResponse()
    response.say(greeting, voice=voice, language="en-US")
    connect = Connect()
    stream = connect.stream(url=stream_url)
    stream.parameter(name="persona", value=persona)
    response.append(connect)
    return str(response)


def build_error_twiml() -> str:
    response = VoiceResponse()
    response.say(ERROR_MESSAGE, voice="Polly.Matthew", language="en-US")
    response.hangup()
    return str(response)


@retry_async(max_attempts=3, delay=1.0, exceptions=(httpx.HTTPError,))
async def _download(url: str, auth: tuple) -> bytes:
    async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
        response = await client.get(url, auth=auth)
        response.raise_for_status()
        return response.content


async def fetch_recording_audio(recording_url: str) -> Optional[bytes]:
    """Download a finished recording as MP3, or return None if it cannot be fetched."""
    if not settings.twilio_configured:
        logger.error("Twilio credentials not configured, cannot fetch recording")
        return None

    url = recording_url if recording_url.endswith(".mp3") else f"{recording_url}.mp3"
    try:
        return await _download(url, (settings.twilio_account_sid, settings.twilio_auth_token))
    except httpx.HTTPError as exc:
        logger.error("Recording download failed for %s: %s", url, exc)
        return None


@lru_cache(maxsize=1)
def get_twilio_client() -> Client:
    if not settings.twilio_configured:
        raise ExternalServiceError.twilio(
            "Twilio credentials not configured. Set TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN.",
            status_code=503,
        )
    return Client(settings.twilio_account_sid, settings.twilio_auth_token)
