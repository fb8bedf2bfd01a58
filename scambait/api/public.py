"""Unauthenticated endpoints behind the embeddable player and the Hall of Fame page."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scambait.database.db import get_db
from scambait.database.models import Call, CallStatus
from scambait.database.repository import CallRepository, CallStatsRepository
from scambait.personas.catalog import DEFAULT_PERSONA, PERSONAS, get_persona
from scambait.utils.helpers import mask_phone_number, truncate
from scambait.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/public", tags=["public"])

EMBED_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Max-Age": "86400",
}
HALL_OF_FAME_CACHE = "public, s-maxage=300, stale-while-revalidate=600"


def _embed_error(message: str, code: str, status_code: int = 404) -> JSONResponse:
    return JSONResponse({"error": message, "code": code}, status_code=status_code, headers=EMBED_CORS_HEADERS)


def persona_info(persona: Optional[str], tags: Optional[List[str]]) -> dict:
    """Persona for a public entry: the call's own field, else a tag naming one, else Earl."""
    if persona and persona.lower() in PERSONAS:
        found = get_persona(persona)
        return {"id": found.id, "name": found.name}

    for tag in tags or []:
        lowered = tag.lower()
        for persona_id in ("gladys", "kevin", "brenda"):
            if persona_id in lowered:
                return {"id": persona_id, "name": PERSONAS[persona_id].name}

    earl = PERSONAS[DEFAULT_PERSONA]
    return {"id": earl.id, "name": earl.name}


def to_public_entry(call: Call) -> dict:
    """Strip a call down to what is safe to show publicly."""
    persona = persona_info(call.persona, call.tags)
    return {
        "id": call.id,
        "duration": call.duration or 0,
        "rating": call.rating,
        "maskedPhoneNumber": mask_phone_number(call.from_number),
        "personaId": persona["id"],
        "personaName": persona["name"],
        "excerpt": call.title or truncate(call.notes, 100),
        "createdAt": call.created_at.isoformat() if call.created_at else None,
        "recordingUrl": call.recording_url,
    }


@router.options("/embed/{call_id}")
def embed_preflight(call_id: str) -> Response:
    return Response(status_code=204, headers=EMBED_CORS_HEADERS)


@router.get("/embed/{call_id}")
def get_embed(call_id: str, db: Session = Depends(get_db)) -> JSONResponse:
    try:
        call = CallRepository(db).get(call_id)
    except SQLAlchemyError as exc:
        logger.error("Embed lookup for %s failed: %s", call_id, exc)
        return _embed_error("Failed to fetch call data", "DATABASE_QUERY_FAILED", status_code=500)

    if call is None:
        return _embed_error("Call not found", "NOT_FOUND")
    if not call.is_public:
        return _embed_error("This call is not available for public viewing", "PRIVATE")
    if not call.recording_url:
        return _embed_error("No recording available for this call", "NO_RECORDING")

    persona = None
    if call.persona:
        persona_id = call.persona.lower()
        name = PERSONAS[persona_id].name if persona_id in PERSONAS else call.persona
        persona = {"id": persona_id, "name": name}

    body = {
        "id": call.id,
        "persona": persona,
        "duration": call.duration or 0,
        "recordingUrl": call.recording_url,
        "title": call.title,
    }
    return JSONResponse(body, headers=EMBED_CORS_HEADERS)


@router.get("/hall-of-fame")
def hall_of_fame(db: Session = Depends(get_db)) -> JSONResponse:
    stats = CallStatsRepository(db)
    try:
        longest = stats.public_longest(10)
        highest_rated = stats.public_highest_rated(10)
        featured = stats.public_featured(6)
        total_seconds, average = stats.duration_totals(status=CallStatus.COMPLETED)
        total_calls = stats.total_calls(status=CallStatus.COMPLETED)
    except SQLAlchemyError as exc:
        logger.error("Hall of Fame query failed: %s", exc)
        return JSONResponse({"error": "Failed to fetch Hall of Fame data"}, status_code=500)

    body = {
        "longest": [to_public_entry(call) for call in longest],
        "highestRated": [to_public_entry(call) for call in highest_rated],
        "featured": [to_public_entry(call) for call in featured],
        "stats": {
            "totalTimeWasted": total_seconds,
            "totalCalls": total_calls,
            "averageDuration": int(average + 0.5),
        },
    }
    return JSONResponse(body, headers={"Cache-Control": HALL_OF_FAME_CACHE})
